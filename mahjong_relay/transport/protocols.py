# mahjong_relay/transport/protocols.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from mahjong_relay.store.models import RoomStatus


AckId = Union[int, str]


class WireModel(BaseModel):
    # snake_case attributes, camelCase JSON keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =========================
# Incoming (Client -> Server)
# =========================

class InBase(WireModel):
    type: str
    # present when the client wants an acknowledgement
    ack: Optional[AckId] = None


class InRoomBase(InBase):
    room_id: str


# ---- Lifecycle ----

class InCreateRoom(InBase):
    type: Literal["createRoom"] = "createRoom"
    settings: Dict[str, Any] = Field(default_factory=dict)
    player_name: Optional[str] = None


class InJoinRoom(InRoomBase):
    type: Literal["joinRoom"] = "joinRoom"
    player_name: Optional[str] = None


class InLeaveRoom(InRoomBase):
    type: Literal["leaveRoom"] = "leaveRoom"


class InGetRoomState(InRoomBase):
    type: Literal["getRoomState"] = "getRoomState"


class InPing(InBase):
    type: Literal["ping"] = "ping"
    data: Any = None


# ---- Game flow ----

class InStartGame(InRoomBase):
    type: Literal["startGame"] = "startGame"


class InGameReady(InRoomBase):
    type: Literal["gameReady"] = "gameReady"


class InGameStateUpdate(InRoomBase):
    """gameState is opaque: whatever the client sends is stored and relayed."""
    type: Literal["gameStateUpdate"] = "gameStateUpdate"
    game_state: Any = None


class InPlayerAction(InRoomBase):
    type: Literal["playerAction"] = "playerAction"
    action: Any = None
    params: Any = None


class InRequestTurnInfo(InRoomBase):
    type: Literal["requestTurnInfo"] = "requestTurnInfo"


IncomingMessage = Union[
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
]


# =========================
# Outgoing (Server -> Client)
# =========================

class OutBase(WireModel):
    type: str


class OutConnected(OutBase):
    type: Literal["connected"] = "connected"
    id: str


class OutAck(OutBase):
    """
    Reply to a message that carried an "ack" id.
    Extra fields (roomId, seat, room, turn, ...) depend on the request.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    type: Literal["ack"] = "ack"
    ack: AckId
    success: bool
    error: Optional[str] = None
    code: Optional[str] = None


class OutError(OutBase):
    type: Literal["error"] = "error"
    code: str
    message: str


class OutPong(OutBase):
    type: Literal["pong"] = "pong"
    data: Any = None


class OutRoomCreated(OutBase):
    type: Literal["roomCreated"] = "roomCreated"
    room_id: str
    seat: int = 0
    is_host: bool = True


class OutRoomJoined(OutBase):
    type: Literal["roomJoined"] = "roomJoined"
    room_id: str
    seat: int
    is_host: bool = False
    player: Dict[str, Any]


class OutRoomState(OutBase):
    type: Literal["roomState"] = "roomState"
    players: List[Dict[str, Any]]
    status: RoomStatus
    settings: Dict[str, Any]
    host_id: Optional[str] = None
    game_ready: bool = False


class OutGameStarted(OutBase):
    type: Literal["gameStarted"] = "gameStarted"
    players: List[Dict[str, Any]]
    settings: Dict[str, Any]
    status: RoomStatus = "playing"
    host_id: Optional[str] = None


class OutGameReadyNotify(OutBase):
    type: Literal["gameReadyNotify"] = "gameReadyNotify"
    game_state: Any = None


class OutGameStateSync(OutBase):
    type: Literal["gameStateSync"] = "gameStateSync"
    game_state: Any = None
    from_player: int
    is_host: bool


class OutActionBroadcast(OutBase):
    type: Literal["actionBroadcast"] = "actionBroadcast"
    action: Any = None
    params: Any = None
    player_seat: int
    player_name: str
    is_host: bool


class OutPlayerDisconnected(OutBase):
    type: Literal["playerDisconnected"] = "playerDisconnected"
    player_id: str
    new_host_id: Optional[str] = None


OutgoingEvent = Union[
    OutConnected,
    OutAck,
    OutError,
    OutPong,
    OutRoomCreated,
    OutRoomJoined,
    OutRoomState,
    OutGameStarted,
    OutGameReadyNotify,
    OutGameStateSync,
    OutActionBroadcast,
    OutPlayerDisconnected,
]


def dump_event(event: OutgoingEvent) -> Dict[str, Any]:
    """pydantic event -> JSON dict with wire (camelCase) keys."""
    return event.model_dump(by_alias=True)


# =========================
# Parser helpers
# =========================

_INCOMING_BY_TYPE = {
    "createRoom": InCreateRoom,
    "joinRoom": InJoinRoom,
    "leaveRoom": InLeaveRoom,
    "getRoomState": InGetRoomState,
    "ping": InPing,
    "startGame": InStartGame,
    "gameReady": InGameReady,
    "gameStateUpdate": InGameStateUpdate,
    "playerAction": InPlayerAction,
    "requestTurnInfo": InRequestTurnInfo,
}


def parse_incoming(payload: Dict[str, Any]) -> IncomingMessage:
    """
    Convert raw dict -> validated message model.
    Raises ValidationError if invalid.
    """
    if not isinstance(payload, dict):
        raise ValidationError.from_exception_data(
            title="IncomingMessage",
            line_errors=[{"loc": (), "input": payload, "type": "dict_type"}],
        )

    t = payload.get("type")
    if not isinstance(t, str):
        raise ValidationError.from_exception_data(
            title="IncomingMessage",
            line_errors=[{"loc": ("type",), "input": t, "type": "string_type"}],
        )

    cls = _INCOMING_BY_TYPE.get(t)
    if cls is None:
        raise ValidationError.from_exception_data(
            title="IncomingMessage",
            line_errors=[{"loc": ("type",), "input": t, "type": "literal_error",
                          "ctx": {"expected": ", ".join(sorted(_INCOMING_BY_TYPE))}}],
        )

    return cls.model_validate(payload)
