# mahjong_relay/domain/common/errors.py
from __future__ import annotations


class RoomError(Exception):
    """Recoverable room failure, reported to the requester only."""
    code = "ROOM_ERROR"
    message = "Room error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class RoomNotFound(RoomError):
    code = "ROOM_NOT_FOUND"
    message = "Room does not exist"


class RoomFull(RoomError):
    code = "ROOM_FULL"
    message = "Room is full"


class GameAlreadyStarted(RoomError):
    code = "GAME_ALREADY_STARTED"
    message = "Game has already started"


class InsufficientPlayers(RoomError):
    code = "INSUFFICIENT_PLAYERS"
    message = "At least 2 players are needed to start the game"


class NotHost(RoomError):
    code = "NOT_HOST"
    message = "Only the host can start the game"
