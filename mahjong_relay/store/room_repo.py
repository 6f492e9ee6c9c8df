# mahjong_relay/store/room_repo.py
from __future__ import annotations

import itertools
import random
import string
from typing import Any, Dict, List, Optional

from mahjong_relay.store.models import PlayerStore, RoomStore
from mahjong_relay.util.timeutil import now_ts

_ROOM_ID_ALPHABET = string.ascii_uppercase + string.digits


class RoomRepo:
    """
    In-memory room registry: room_id -> RoomStore.
    Storage only; membership rules live in RoomLifecycle.

    One instance per app. Nothing here survives a restart.
    """
    def __init__(self, id_length: int = 6, rng: Optional[random.Random] = None) -> None:
        self.id_length = id_length
        self._rng = rng or random.Random()
        self._rooms: Dict[str, RoomStore] = {}
        self._generations = itertools.count(1)

    def _gen_room_id(self) -> str:
        return "".join(self._rng.choice(_ROOM_ID_ALPHABET) for _ in range(self.id_length))

    def new_room_id(self) -> str:
        # best effort: a few redraws on collision, then give up and use the last draw
        code = self._gen_room_id()
        for _ in range(5):
            if code not in self._rooms:
                break
            code = self._gen_room_id()
        return code

    # ----------------------------
    # Rooms
    # ----------------------------
    def create(self, host: PlayerStore, settings: Dict[str, Any]) -> RoomStore:
        ts = now_ts()
        room = RoomStore(
            id=self.new_room_id(),
            players=[host],
            host_id=host.id,
            status="waiting",
            game_ready=False,
            settings=settings,
            generation=next(self._generations),
            created_at=ts,
            last_activity=ts,
        )
        self._rooms[room.id] = room
        return room

    def get(self, room_id: Optional[str]) -> Optional[RoomStore]:
        if not room_id:
            return None
        return self._rooms.get(room_id)

    def exists(self, room_id: str) -> bool:
        return room_id in self._rooms

    def remove(self, room_id: str) -> Optional[RoomStore]:
        return self._rooms.pop(room_id, None)

    def list_rooms(self) -> List[RoomStore]:
        return sorted(self._rooms.values(), key=lambda r: r.created_at)

    def count(self) -> int:
        return len(self._rooms)

    # ----------------------------
    # Session binding
    # ----------------------------
    def rooms_with_player(self, pid: str) -> List[RoomStore]:
        """Every room the connection currently sits in (normally zero or one)."""
        return [room for room in self._rooms.values() if room.has_player(pid)]
