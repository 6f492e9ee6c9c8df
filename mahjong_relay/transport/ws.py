# mahjong_relay/transport/ws.py
from __future__ import annotations

import ipaddress
import json
import uuid
from urllib.parse import urlparse

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from mahjong_relay.domain.lifecycle.handlers import handle_disconnect
from mahjong_relay.log import get_logger
from mahjong_relay.settings import Settings
from mahjong_relay.transport.dispatcher import dispatch_message
from mahjong_relay.transport.protocols import OutConnected, dump_event

router = APIRouter()
logger = get_logger(__name__)


def _is_private_ip(host: str) -> bool:
    """Return True if host is a private IP (192.168.x.x, 10.x.x.x, 172.16-31.x.x)."""
    try:
        ip = ipaddress.ip_address(host)
        return ip.is_private
    except ValueError:
        return False


def origin_allowed(origin: str | None, settings: Settings) -> bool:
    if origin is None:
        return True
    allowed = set(settings.allowed_origins)
    if "*" in allowed or origin in allowed:
        return True
    if settings.WS_ALLOW_LAN_ORIGINS:
        host = urlparse(origin).hostname or ""
        if _is_private_ip(host):
            return True
    return False


async def _check_origin_or_close(websocket: WebSocket) -> bool:
    settings: Settings = websocket.app.state.settings
    origin = websocket.headers.get("origin")
    if origin_allowed(origin, settings):
        return True
    logger.warning("rejected websocket origin=%s", origin)
    await websocket.close(code=1008)
    return False


@router.websocket("/ws")
async def ws_endpoint(websocket: WebSocket):
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()

    pid = uuid.uuid4().hex[:10]
    app = websocket.app
    wsman = app.state.wsman
    relay = app.state.relay
    wsman.add(pid, websocket)
    logger.info("connected pid=%s", pid)

    try:
        await websocket.send_json(dump_event(OutConnected(id=pid)))
        while True:
            text = await websocket.receive_text()
            try:
                raw = json.loads(text)
            except ValueError:
                logger.warning("dropped non-JSON frame pid=%s", pid)
                continue

            outbox = await dispatch_message(app=app, pid=pid, raw=raw)
            await relay.deliver(pid, outbox)

    except WebSocketDisconnect:
        logger.info("disconnected pid=%s", pid)

    finally:
        # forget the socket first so nothing is sent to it during cleanup
        wsman.remove(pid)
        for outbox in await handle_disconnect(app=app, pid=pid):
            await relay.deliver(pid, outbox)
