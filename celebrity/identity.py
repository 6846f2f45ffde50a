"""Identifier generation for participants, name entries and rooms."""
from __future__ import annotations

import secrets
import uuid
from typing import Callable, Optional

from .constants import ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH


class IdentityProvider:
    """Issues opaque ids and human-readable room codes.

    Participant and name-entry ids are random UUIDs. Room codes are sampled
    from ``A-Z0-9``; the caller supplies *taken* so that a code already in use
    is regenerated instead of silently replacing a live room.
    """

    def __init__(self, choose: Optional[Callable[[str], str]] = None):
        self._choose = choose or secrets.choice

    def new_participant_id(self) -> str:
        return str(uuid.uuid4())

    def new_entry_id(self) -> str:
        return str(uuid.uuid4())

    def new_room_code(self, taken: Callable[[str], bool] = lambda code: False) -> str:
        while True:
            code = "".join(self._choose(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
            if not taken(code):
                return code


def normalise_room_code(code: str) -> str:
    """Room codes are case-insensitive on input and stored upper-case."""
    return code.strip().upper()


__all__ = ["IdentityProvider", "normalise_room_code"]
