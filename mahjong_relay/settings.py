# mahjong_relay/settings.py
from __future__ import annotations

from pydantic import BaseModel
import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y", "on")


class Settings(BaseModel):
    APP_NAME: str = "mahjong-relay"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Dev
    LOG_LEVEL: str = "INFO"

    # WebSocket origin policy (comma-separated, "*" allows any origin)
    WS_ALLOWED_ORIGINS: str = "*"
    # Dev helper: allow any private LAN IP origin (phones on the same wifi)
    WS_ALLOW_LAN_ORIGINS: bool = True

    # Rooms
    MAX_PLAYERS: int = 4
    MIN_PLAYERS_TO_START: int = 2
    ROOM_ID_LENGTH: int = 6
    # Delay before re-sending the stored game state after a player action
    STATE_RESYNC_DELAY_MS: int = 100

    # Optional directory holding the web client (index.html)
    STATIC_DIR: str = ""

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.WS_ALLOWED_ORIGINS.split(",") if o.strip()]


def get_settings() -> Settings:
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "mahjong-relay"),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "3000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),

        WS_ALLOWED_ORIGINS=os.getenv("WS_ALLOWED_ORIGINS", "*"),
        WS_ALLOW_LAN_ORIGINS=_env_bool("WS_ALLOW_LAN_ORIGINS", "true"),

        MAX_PLAYERS=int(os.getenv("MAX_PLAYERS", "4")),
        MIN_PLAYERS_TO_START=int(os.getenv("MIN_PLAYERS_TO_START", "2")),
        ROOM_ID_LENGTH=int(os.getenv("ROOM_ID_LENGTH", "6")),
        STATE_RESYNC_DELAY_MS=int(os.getenv("STATE_RESYNC_DELAY_MS", "100")),

        STATIC_DIR=os.getenv("STATIC_DIR", ""),
    )
