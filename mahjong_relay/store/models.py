# mahjong_relay/store/models.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


RoomStatus = Literal["waiting", "playing"]

DEFAULT_ROOM_SETTINGS: Dict[str, Any] = {
    "basePoints": 2000,
    "perFanPoints": 1000,
    "initialPoints": 100000,
}


class StoreModel(BaseModel):
    """snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlayerStore(StoreModel):
    id: str                 # connection id
    name: str
    seat: int
    is_host: bool = False


class RoomStore(StoreModel):
    id: str
    players: List[PlayerStore] = Field(default_factory=list)
    host_id: Optional[str] = None
    status: RoomStatus = "waiting"
    game_ready: bool = False
    settings: Dict[str, Any] = Field(default_factory=dict)
    game_state: Any = None    # opaque, owned by clients
    generation: int = 0
    created_at: int = 0
    last_activity: int = 0

    def get_player(self, pid: str) -> Optional[PlayerStore]:
        for p in self.players:
            if p.id == pid:
                return p
        return None

    def has_player(self, pid: str) -> bool:
        return self.get_player(pid) is not None

    @property
    def is_empty(self) -> bool:
        return not self.players

    def to_wire(self) -> Dict[str, Any]:
        """Full room record as clients see it (generation is server-internal)."""
        return self.model_dump(by_alias=True, exclude={"generation"})
