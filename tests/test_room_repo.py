import random
import string

from mahjong_relay.store.models import PlayerStore
from mahjong_relay.store.room_repo import RoomRepo


def host(pid="h"):
    return PlayerStore(id=pid, name="Host", seat=0, is_host=True)


def test_create_get_remove():
    repo = RoomRepo()
    room = repo.create(host(), {"basePoints": 2000})

    assert len(room.id) == 6
    assert set(room.id) <= set(string.ascii_uppercase + string.digits)
    assert repo.get(room.id) is room
    assert repo.exists(room.id)
    assert repo.count() == 1

    assert repo.remove(room.id) is room
    assert repo.get(room.id) is None
    assert repo.remove(room.id) is None
    assert repo.get(None) is None


def test_generations_increase():
    repo = RoomRepo()
    a = repo.create(host("a"), {})
    b = repo.create(host("b"), {})
    assert b.generation > a.generation > 0


def test_id_collision_is_redrawn():
    class ScriptedRng(random.Random):
        def __init__(self, ids):
            super().__init__()
            self._chars = iter("".join(ids))

        def choice(self, seq):
            return next(self._chars)

    repo = RoomRepo(id_length=4, rng=ScriptedRng(["AAAA", "AAAA", "BBBB"]))
    first = repo.create(host("a"), {})
    second = repo.create(host("b"), {})
    assert (first.id, second.id) == ("AAAA", "BBBB")


def test_rooms_with_player():
    repo = RoomRepo()
    a = repo.create(host("x"), {})
    repo.create(host("y"), {})

    assert [r.id for r in repo.rooms_with_player("x")] == [a.id]
    assert repo.rooms_with_player("nobody") == []


def test_to_wire_uses_camel_case():
    repo = RoomRepo()
    room = repo.create(host(), {"basePoints": 2000})
    room.game_state = {"turn": 2}

    wire = room.to_wire()
    assert wire["hostId"] == "h"
    assert wire["gameReady"] is False
    assert wire["gameState"] == {"turn": 2}
    assert wire["players"][0] == {"id": "h", "name": "Host", "seat": 0, "isHost": True}
    assert "generation" not in wire
