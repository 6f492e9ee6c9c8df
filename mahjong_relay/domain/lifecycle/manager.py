# mahjong_relay/domain/lifecycle/manager.py
"""
Room lifecycle: every rule about who may change a room and how.

All methods are plain (non-async) calls. Handlers run them to completion
before awaiting any send, so on a single event loop each call is atomic
with respect to every other inbound message and no lock is needed.

Registry membership and fan-out group subscription are changed together
here, never separately, so a connection receives room broadcasts exactly
while it is a player of that room.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from mahjong_relay.domain.common.errors import (
    GameAlreadyStarted,
    InsufficientPlayers,
    NotHost,
    RoomFull,
    RoomNotFound,
)
from mahjong_relay.log import get_logger
from mahjong_relay.store.models import DEFAULT_ROOM_SETTINGS, PlayerStore, RoomStore
from mahjong_relay.store.room_repo import RoomRepo
from mahjong_relay.util.timeutil import now_ts

logger = get_logger(__name__)


class GroupSubscriptions(Protocol):
    """Transport side of room membership (implemented by WSManager)."""

    def subscribe(self, group: str, pid: str) -> None: ...

    def unsubscribe(self, group: str, pid: str) -> None: ...

    def drop_group(self, group: str) -> None: ...


@dataclass
class Departure:
    room: RoomStore
    player: PlayerStore
    deleted: bool
    new_host_id: Optional[str] = None   # only set when the host changed


def default_player_name(seat: int) -> str:
    return f"Player{seat + 1}"


def merge_settings(settings: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {**DEFAULT_ROOM_SETTINGS, **(settings or {})}


class RoomLifecycle:
    def __init__(
        self,
        repo: RoomRepo,
        groups: Optional[GroupSubscriptions] = None,
        *,
        max_players: int = 4,
        min_players_to_start: int = 2,
    ) -> None:
        self.repo = repo
        self.groups = groups
        self.max_players = max_players
        self.min_players_to_start = min_players_to_start

    # -------------------------
    # Membership
    # -------------------------

    def create_room(
        self,
        host_id: str,
        settings: Optional[Dict[str, Any]] = None,
        name: Optional[str] = None,
    ) -> RoomStore:
        host = PlayerStore(id=host_id, name=name or default_player_name(0), seat=0, is_host=True)
        room = self.repo.create(host, merge_settings(settings))
        if self.groups is not None:
            self.groups.subscribe(room.id, host_id)
        logger.info("room created room=%s host=%s", room.id, host_id)
        return room

    def join_room(self, room_id: str, pid: str, name: Optional[str] = None) -> PlayerStore:
        room = self.repo.get(room_id)
        if room is None:
            raise RoomNotFound()
        existing = room.get_player(pid)
        if existing is not None:
            # already seated: joining again changes nothing
            return existing
        if len(room.players) >= self.max_players:
            raise RoomFull()
        if room.status != "waiting":
            raise GameAlreadyStarted()

        seat = len(room.players)
        player = PlayerStore(id=pid, name=name or default_player_name(seat), seat=seat, is_host=False)
        room.players.append(player)
        room.last_activity = now_ts()
        if self.groups is not None:
            self.groups.subscribe(room.id, pid)
        logger.info("player joined room=%s pid=%s seat=%d", room.id, pid, seat)
        return player

    def leave_room(self, room_id: str, pid: str) -> Optional[Departure]:
        if self.groups is not None:
            self.groups.unsubscribe(room_id, pid)

        room = self.repo.get(room_id)
        if room is None:
            return None
        player = room.get_player(pid)
        if player is None:
            return None

        room.players = [p for p in room.players if p.id != pid]
        room.last_activity = now_ts()
        logger.info("player left room=%s pid=%s seat=%d", room.id, pid, player.seat)

        if room.is_empty:
            self.repo.remove(room.id)
            if self.groups is not None:
                self.groups.drop_group(room.id)
            logger.info("room deleted room=%s", room.id)
            return Departure(room=room, player=player, deleted=True)

        new_host_id = None
        if player.is_host:
            new_host_id = self._transfer_host(room)
        return Departure(room=room, player=player, deleted=False, new_host_id=new_host_id)

    def close_room(self, room_id: str) -> Optional[RoomStore]:
        """Force-remove a room and its fan-out group (admin)."""
        room = self.repo.remove(room_id)
        if room is None:
            return None
        if self.groups is not None:
            self.groups.drop_group(room_id)
        logger.info("room closed room=%s players=%d", room_id, len(room.players))
        return room

    def _transfer_host(self, room: RoomStore) -> str:
        # earliest seat left in the room; seats keep join order
        heir = room.players[0]
        for p in room.players:
            p.is_host = p is heir
        room.host_id = heir.id
        logger.info("host transferred room=%s host=%s", room.id, heir.id)
        return heir.id

    # -------------------------
    # Game flow
    # -------------------------

    def start_game(self, room_id: str, requester: str) -> RoomStore:
        room = self.repo.get(room_id)
        if room is None:
            raise RoomNotFound()
        if len(room.players) < self.min_players_to_start:
            raise InsufficientPlayers(
                f"At least {self.min_players_to_start} players are needed to start the game"
            )
        player = room.get_player(requester)
        if player is None or not player.is_host:
            raise NotHost()

        room.status = "playing"
        room.game_ready = False
        room.last_activity = now_ts()
        logger.info(
            "game started room=%s players=%d host=%s", room.id, len(room.players), room.host_id
        )
        return room

    def set_game_ready(self, room_id: str, requester: str) -> Optional[RoomStore]:
        room = self.repo.get(room_id)
        if room is None or room.host_id != requester:
            return None
        room.game_ready = True
        room.last_activity = now_ts()
        logger.info("game ready room=%s", room.id)
        return room

    def update_game_state(self, room_id: str, pid: str, game_state: Any) -> Optional[PlayerStore]:
        """Last write wins: no version check, no merge."""
        room = self.repo.get(room_id)
        if room is None:
            return None
        player = room.get_player(pid)
        if player is None:
            return None
        room.game_state = game_state
        room.last_activity = now_ts()
        return player

    def resolve_actor(self, room_id: str, pid: str) -> Optional[PlayerStore]:
        room = self.repo.get(room_id)
        if room is None:
            return None
        player = room.get_player(pid)
        if player is not None:
            room.last_activity = now_ts()
        return player

    # -------------------------
    # Session binding
    # -------------------------

    def rooms_of(self, pid: str) -> List[RoomStore]:
        return self.repo.rooms_with_player(pid)
