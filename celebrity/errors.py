"""Exception hierarchy for the game server.

Only ``RoomNotFound`` and ``GameAlreadyStarted`` ever reach a client, and only
as the ``error`` field of a create/join reply. ``CommandIgnored`` never leaves
the dispatcher: it is converted into an ignored ``CommandResult``.
"""
from __future__ import annotations

from .constants import ERROR_GAME_ALREADY_STARTED, ERROR_ROOM_NOT_FOUND


class CelebrityError(Exception):
    """Base exception for all game server errors."""


class RoomNotFound(CelebrityError):
    """Raised when a room code does not resolve to a live room."""

    code = ERROR_ROOM_NOT_FOUND

    def __init__(self, room_code: str):
        self.room_code = room_code
        super().__init__(f"Room '{room_code}' not found")


class GameAlreadyStarted(CelebrityError):
    """Raised when joining a room that has left the lobby."""

    code = ERROR_GAME_ALREADY_STARTED

    def __init__(self, room_code: str):
        self.room_code = room_code
        super().__init__(f"Room '{room_code}' is no longer accepting players")


class CommandIgnored(CelebrityError):
    """A command whose role or phase precondition does not hold.

    *reason* is a short machine-readable tag such as ``"not_host"`` or
    ``"turn_not_active"``.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


__all__ = [
    "CelebrityError",
    "RoomNotFound",
    "GameAlreadyStarted",
    "CommandIgnored",
]
