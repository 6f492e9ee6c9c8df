# mahjong_relay/transport/dispatcher.py
from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Type

from pydantic import ValidationError

from mahjong_relay.domain.common.events import Outbox
from mahjong_relay.domain.lifecycle.handlers import (
    handle_create_room,
    handle_join,
    handle_leave,
    handle_get_room_state,
    handle_ping,
    handle_start_game,
    handle_game_ready,
    handle_game_state_update,
    handle_player_action,
    handle_request_turn_info,
)
from mahjong_relay.log import get_logger
from mahjong_relay.transport.protocols import (
    parse_incoming,
    InBase,
    InCreateRoom,
    InJoinRoom,
    InLeaveRoom,
    InGetRoomState,
    InPing,
    InStartGame,
    InGameReady,
    InGameStateUpdate,
    InPlayerAction,
    InRequestTurnInfo,
)

logger = get_logger(__name__)

Handler = Callable[..., Awaitable[Outbox]]

_HANDLERS: Dict[Type[InBase], Handler] = {
    # lifecycle
    InCreateRoom: handle_create_room,
    InJoinRoom: handle_join,
    InLeaveRoom: handle_leave,
    InGetRoomState: handle_get_room_state,
    InPing: handle_ping,
    # game relay
    InStartGame: handle_start_game,
    InGameReady: handle_game_ready,
    InGameStateUpdate: handle_game_state_update,
    InPlayerAction: handle_player_action,
    InRequestTurnInfo: handle_request_turn_info,
}


async def dispatch_message(*, app, pid: str, raw: Any) -> Outbox:
    """
    Transport layer calls this.
    - Parses + validates raw JSON
    - Routes to the correct domain handler
    - Returns the handler's Outbox

    Malformed frames are logged and dropped; the client gets nothing back.
    """
    try:
        msg = parse_incoming(raw)
    except ValidationError as e:
        logger.warning("dropped bad message pid=%s: %s", pid, e.errors(include_url=False))
        return Outbox()

    handler = _HANDLERS.get(type(msg))
    if handler is None:
        logger.warning("no handler pid=%s type=%s", pid, msg.type)
        return Outbox()

    return await handler(app=app, pid=pid, msg=msg)
