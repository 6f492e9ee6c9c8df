# mahjong_relay/domain/lifecycle/handlers.py
from __future__ import annotations

from typing import Any, Callable, List, Optional

from mahjong_relay.domain.common.errors import RoomError, RoomNotFound
from mahjong_relay.domain.common.events import Deferred, Outbox
from mahjong_relay.domain.lifecycle.manager import RoomLifecycle
from mahjong_relay.log import get_logger
from mahjong_relay.store.models import RoomStore
from mahjong_relay.store.room_repo import RoomRepo
from mahjong_relay.transport.protocols import (
    OutgoingEvent,
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

GAME_NOT_STARTED = "GAME_NOT_STARTED"


def _rooms(app) -> RoomLifecycle:
    return app.state.rooms


def _repo(app) -> RoomRepo:
    return app.state.rooms.repo


def _ack(msg: InBase, success: bool, **fields: Any) -> List[OutgoingEvent]:
    """Ack only when the client asked for one."""
    if msg.ack is None:
        return []
    return [OutAck(ack=msg.ack, success=success, **fields)]


def _ack_error(msg: InBase, err: RoomError) -> List[OutgoingEvent]:
    return _ack(msg, False, error=err.message, code=err.code)


def build_room_state(room: RoomStore) -> OutRoomState:
    """Snapshot sent after every membership or status change."""
    return OutRoomState(
        players=[p.model_dump(by_alias=True) for p in room.players],
        status=room.status,
        settings=dict(room.settings),
        host_id=room.host_id,
        game_ready=room.game_ready,
    )


def _state_resync(repo: RoomRepo, room_id: str, generation: int, pid: str) -> Callable[[], List[OutgoingEvent]]:
    """
    Deferred gameStateSync after an action.
    Captures ids only; by the time it runs the room may be gone, or a new
    room may hold the same id (different generation), or the actor left.
    """
    def build() -> List[OutgoingEvent]:
        room = repo.get(room_id)
        if room is None or room.generation != generation:
            return []
        player = room.get_player(pid)
        if player is None or room.game_state is None:
            return []
        return [OutGameStateSync(game_state=room.game_state, from_player=player.seat, is_host=player.is_host)]

    return build


# -------------------------
# Handlers
# -------------------------

async def handle_create_room(*, app, pid: str, msg: InCreateRoom) -> Outbox:
    name = msg.player_name
    if name is None and isinstance(msg.settings.get("playerName"), str):
        name = msg.settings["playerName"]

    room = _rooms(app).create_room(pid, msg.settings, name=name)

    return Outbox(
        room_id=room.id,
        to_sender=[OutRoomCreated(room_id=room.id, seat=0, is_host=True), *_ack(msg, True, roomId=room.id)],
        to_room=[build_room_state(room)],
    )


async def handle_join(*, app, pid: str, msg: InJoinRoom) -> Outbox:
    try:
        player = _rooms(app).join_room(msg.room_id, pid, name=msg.player_name)
    except RoomError as e:
        logger.info("join rejected room=%s pid=%s code=%s", msg.room_id, pid, e.code)
        return Outbox(to_sender=_ack_error(msg, e))

    room = _repo(app).get(msg.room_id)
    player_out = player.model_dump(by_alias=True)
    return Outbox(
        room_id=room.id,
        to_sender=[
            OutRoomJoined(room_id=room.id, seat=player.seat, is_host=player.is_host, player=player_out),
            *_ack(msg, True, roomId=room.id, seat=player.seat, player=player_out),
        ],
        to_room=[build_room_state(room)],
    )


async def handle_leave(*, app, pid: str, msg: InLeaveRoom) -> Outbox:
    _rooms(app).leave_room(msg.room_id, pid)

    room = _repo(app).get(msg.room_id)
    if room is None:
        return Outbox()
    return Outbox(room_id=room.id, to_room=[build_room_state(room)])


async def handle_start_game(*, app, pid: str, msg: InStartGame) -> Outbox:
    try:
        room = _rooms(app).start_game(msg.room_id, pid)
    except RoomError as e:
        return Outbox(to_sender=[OutError(code=e.code, message=e.message)])

    return Outbox(
        room_id=room.id,
        to_room=[
            OutGameStarted(
                players=[p.model_dump(by_alias=True) for p in room.players],
                settings=dict(room.settings),
                status="playing",
                host_id=room.host_id,
            )
        ],
    )


async def handle_get_room_state(*, app, pid: str, msg: InGetRoomState) -> Outbox:
    room = _repo(app).get(msg.room_id)
    if room is None:
        return Outbox(to_sender=_ack_error(msg, RoomNotFound()))
    return Outbox(
        to_sender=_ack(msg, True, room=room.to_wire(), hostId=room.host_id, gameReady=room.game_ready),
    )


async def handle_game_ready(*, app, pid: str, msg: InGameReady) -> Outbox:
    room = _rooms(app).set_game_ready(msg.room_id, pid)
    if room is None:
        return Outbox()
    return Outbox(room_id=room.id, to_room=[OutGameReadyNotify(game_state=room.game_state)])


async def handle_game_state_update(*, app, pid: str, msg: InGameStateUpdate) -> Outbox:
    player = _rooms(app).update_game_state(msg.room_id, pid, msg.game_state)
    if player is None:
        logger.debug("state update dropped room=%s pid=%s (not a member)", msg.room_id, pid)
        return Outbox()

    # the submitter already holds this state
    return Outbox(
        room_id=msg.room_id,
        to_others=[OutGameStateSync(game_state=msg.game_state, from_player=player.seat, is_host=player.is_host)],
    )


async def handle_player_action(*, app, pid: str, msg: InPlayerAction) -> Outbox:
    player = _rooms(app).resolve_actor(msg.room_id, pid)
    if player is None:
        logger.debug("action dropped room=%s pid=%s (not a member)", msg.room_id, pid)
        return Outbox()

    room = _repo(app).get(msg.room_id)
    logger.debug("action room=%s player=%s action=%s", room.id, player.name, msg.action)

    outbox = Outbox(
        room_id=room.id,
        to_room=[
            OutActionBroadcast(
                action=msg.action,
                params=msg.params,
                player_seat=player.seat,
                player_name=player.name,
                is_host=player.is_host,
            )
        ],
    )
    if room.game_state is not None:
        # clients usually follow an action with gameStateUpdate; resend the
        # stored state shortly after in case one of them missed it
        delay = app.state.settings.STATE_RESYNC_DELAY_MS / 1000.0
        outbox.deferred.append(
            Deferred(
                delay_sec=delay,
                room_id=room.id,
                build=_state_resync(_repo(app), room.id, room.generation, pid),
            )
        )
    return outbox


async def handle_request_turn_info(*, app, pid: str, msg: InRequestTurnInfo) -> Outbox:
    room = _repo(app).get(msg.room_id)
    if room is None or room.game_state is None:
        return Outbox(to_sender=_ack(msg, False, error="Game has not started", code=GAME_NOT_STARTED))

    state = room.game_state if isinstance(room.game_state, dict) else {}
    return Outbox(
        to_sender=_ack(msg, True, turn=state.get("turn"), phase=state.get("phase"), hostId=room.host_id),
    )


async def handle_ping(*, app, pid: str, msg: InPing) -> Outbox:
    return Outbox(to_sender=[OutPong(data=msg.data)])


async def handle_disconnect(*, app, pid: Optional[str]) -> List[Outbox]:
    """
    Called by transport when the socket goes away.
    Leaves every room the connection sits in.
    """
    if not pid:
        return []

    rooms = _rooms(app)
    outboxes: List[Outbox] = []
    for room in rooms.rooms_of(pid):
        was_playing = room.status == "playing"
        departure = rooms.leave_room(room.id, pid)
        if departure is None or departure.deleted:
            continue

        to_room: List[OutgoingEvent] = [build_room_state(room)]
        if was_playing:
            to_room.append(OutPlayerDisconnected(player_id=pid, new_host_id=room.host_id))
        outboxes.append(Outbox(room_id=room.id, to_room=to_room))
    return outboxes
