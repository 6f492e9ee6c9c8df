# mahjong_relay/main.py
from __future__ import annotations

import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from mahjong_relay.domain.lifecycle.manager import RoomLifecycle
from mahjong_relay.log import get_logger, setup_logging
from mahjong_relay.settings import Settings, get_settings
from mahjong_relay.store.room_repo import RoomRepo
from mahjong_relay.transport.admin import router as admin_router
from mahjong_relay.transport.relay import BroadcastRelay
from mahjong_relay.transport.ws import router as ws_router
from mahjong_relay.transport.ws_manager import WSManager

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Each app owns its registry; nothing is shared between instances
    repo = RoomRepo(id_length=settings.ROOM_ID_LENGTH)
    wsman = WSManager()
    app.state.settings = settings
    app.state.repo = repo
    app.state.wsman = wsman
    app.state.rooms = RoomLifecycle(
        repo,
        wsman,
        max_players=settings.MAX_PLAYERS,
        min_players_to_start=settings.MIN_PLAYERS_TO_START,
    )
    app.state.relay = BroadcastRelay(wsman)

    @app.on_event("startup")
    async def _startup() -> None:
        logger.info("%s listening on %s:%d", settings.APP_NAME, settings.HOST, settings.PORT)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await app.state.relay.shutdown()

    @app.get("/health")
    async def health():
        return {"ok": True, "rooms": app.state.repo.count()}

    app.include_router(ws_router)
    app.include_router(admin_router)

    # the web client, when deployed next to the server
    if settings.STATIC_DIR and os.path.isdir(settings.STATIC_DIR):
        app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static")

    return app




app = create_app()
