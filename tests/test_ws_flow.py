"""
End-to-end over /ws with FastAPI's TestClient.
"""
from fastapi.testclient import TestClient

from mahjong_relay.main import create_app
from mahjong_relay.settings import Settings
from mahjong_relay.transport.ws import origin_allowed


def make_client():
    return TestClient(create_app(Settings(STATE_RESYNC_DELAY_MS=0, LOG_LEVEL="DEBUG")))


def recv_until(ws, type_):
    while True:
        m = ws.receive_json()
        if m["type"] == type_:
            return m


def test_health_and_admin_listing():
    with make_client() as client:
        assert client.get("/health").json() == {"ok": True, "rooms": 0}

        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "createRoom", "ack": 1})
            room_id = recv_until(ws, "ack")["roomId"]

            rooms = client.get("/admin/rooms").json()["rooms"]
            assert [(r["roomId"], r["players"], r["status"]) for r in rooms] == [(room_id, 1, "waiting")]

        assert client.post("/admin/rooms/NOPE/close").status_code == 404


def test_two_players_start_play_and_disconnect():
    with make_client() as client:
        with client.websocket_connect("/ws") as host, client.websocket_connect("/ws") as guest:
            host_id = host.receive_json()["id"]
            guest_id = guest.receive_json()["id"]

            host.send_json({"type": "createRoom", "settings": {"basePoints": 500}, "ack": "c1"})
            created = host.receive_json()
            assert created == {"type": "roomCreated", "roomId": created["roomId"], "seat": 0, "isHost": True}
            ack = host.receive_json()
            assert (ack["type"], ack["ack"], ack["success"]) == ("ack", "c1", True)
            room_id = created["roomId"]
            state = host.receive_json()
            assert state["type"] == "roomState"
            assert state["settings"] == {"basePoints": 500, "perFanPoints": 1000, "initialPoints": 100000}

            guest.send_json({"type": "joinRoom", "roomId": room_id, "playerName": "Bob", "ack": 2})
            joined = guest.receive_json()
            assert (joined["type"], joined["seat"], joined["isHost"]) == ("roomJoined", 1, False)
            assert guest.receive_json()["success"] is True
            state = guest.receive_json()
            assert [p["name"] for p in state["players"]] == ["Player1", "Bob"]
            assert recv_until(host, "roomState")["players"][1]["id"] == guest_id

            # only the host may start
            guest.send_json({"type": "startGame", "roomId": room_id})
            err = guest.receive_json()
            assert (err["type"], err["code"]) == ("error", "NOT_HOST")

            host.send_json({"type": "startGame", "roomId": room_id})
            for ws in (host, guest):
                started = ws.receive_json()
                assert started["type"] == "gameStarted"
                assert started["status"] == "playing"
                assert started["hostId"] == host_id

            # state sync skips the sender
            host.send_json({"type": "gameStateUpdate", "roomId": room_id, "gameState": {"turn": 0}})
            sync = guest.receive_json()
            assert sync == {"type": "gameStateSync", "gameState": {"turn": 0}, "fromPlayer": 0, "isHost": True}

            # actions reach everyone, then the stored state is resent to the others
            guest.send_json({"type": "playerAction", "roomId": room_id, "action": "discard", "params": {"tile": 3}})
            for ws in (host, guest):
                bc = ws.receive_json()
                assert bc["type"] == "actionBroadcast"
                assert (bc["playerSeat"], bc["playerName"], bc["isHost"]) == (1, "Bob", False)
            resync = host.receive_json()
            assert resync == {"type": "gameStateSync", "gameState": {"turn": 0}, "fromPlayer": 1, "isHost": False}

            guest.send_json({"type": "requestTurnInfo", "roomId": room_id, "ack": 9})
            info = guest.receive_json()
            assert (info["success"], info["turn"], info["hostId"]) == (True, 0, host_id)

            # host drops mid-game: guest is told and becomes host
            host.close()
            state = guest.receive_json()
            assert state["type"] == "roomState"
            assert state["hostId"] == guest_id
            assert state["players"] == [{"id": guest_id, "name": "Bob", "seat": 1, "isHost": True}]
            gone = guest.receive_json()
            assert gone == {"type": "playerDisconnected", "playerId": host_id, "newHostId": guest_id}


def test_long_names_and_room_ids_get_an_answer():
    long_name = "A Very Long Display Name Indeed"
    with make_client() as client:
        with client.websocket_connect("/ws") as host, client.websocket_connect("/ws") as guest:
            host.receive_json()
            guest.receive_json()

            host.send_json({"type": "createRoom", "ack": 1})
            room_id = recv_until(host, "ack")["roomId"]
            recv_until(host, "roomState")

            guest.send_json({"type": "joinRoom", "roomId": "Z" * 40, "ack": 2})
            ack = guest.receive_json()
            assert (ack["type"], ack["ack"], ack["success"], ack["code"]) == ("ack", 2, False, "ROOM_NOT_FOUND")

            guest.send_json({"type": "joinRoom", "roomId": room_id, "playerName": long_name, "ack": 3})
            joined = guest.receive_json()
            assert (joined["type"], joined["player"]["name"]) == ("roomJoined", long_name)
            ack = guest.receive_json()
            assert (ack["ack"], ack["success"]) == (3, True)
            state = recv_until(host, "roomState")
            assert [p["name"] for p in state["players"]] == ["Player1", long_name]


def test_bad_frames_are_dropped():
    with make_client() as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("not json")
            ws.send_json({"type": "nope"})
            ws.send_json({"type": "startGame"})
            ws.send_json({"type": "ping", "data": "still here"})
            assert ws.receive_json() == {"type": "pong", "data": "still here"}


def test_origin_policy():
    open_policy = Settings()
    assert origin_allowed("http://example.com", open_policy)
    assert origin_allowed(None, open_policy)

    strict = Settings(WS_ALLOWED_ORIGINS="http://localhost:5173", WS_ALLOW_LAN_ORIGINS=False)
    assert origin_allowed("http://localhost:5173", strict)
    assert not origin_allowed("http://example.com", strict)
    assert not origin_allowed("http://192.168.1.20:3000", strict)

    lan = Settings(WS_ALLOWED_ORIGINS="http://localhost:5173", WS_ALLOW_LAN_ORIGINS=True)
    assert origin_allowed("http://192.168.1.20:3000", lan)
    assert not origin_allowed("http://example.com", lan)
