"""Process-wide mapping from room code to live ``Room``.

The registry is owned by the application (``app.state.registry``) and passed
explicitly to everything that needs it. Its lock only guards the mapping
itself; it is never held while waiting for a room's lock.
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Dict, Optional

from .constants import TURN_DURATION_MS
from .identity import IdentityProvider, normalise_room_code
from .room import Room
from .schemas import Participant
from .turn import now_ms

logger = logging.getLogger(__name__)


class RoomRegistry:
    def __init__(
        self,
        identity: Optional[IdentityProvider] = None,
        rng: Optional[random.Random] = None,
        turn_duration_ms: int = TURN_DURATION_MS,
        clock: Callable[[], int] = now_ms,
    ):
        self.identity = identity or IdentityProvider()
        self._rng = rng
        self._turn_duration_ms = turn_duration_ms
        self._clock = clock
        self._rooms: Dict[str, Room] = {}
        self._lock = asyncio.Lock()

    async def create(self, host: Participant) -> Room:
        """Create a room under a fresh, unused code with *host* as its host."""
        async with self._lock:
            code = self.identity.new_room_code(taken=self._rooms.__contains__)
            room = Room(
                code,
                host,
                identity=self.identity,
                rng=self._rng,
                turn_duration_ms=self._turn_duration_ms,
                clock=self._clock,
            )
            self._rooms[code] = room
        logger.info("room %s created by %s", code, host.id)
        return room

    async def get(self, code: str) -> Optional[Room]:
        async with self._lock:
            return self._rooms.get(normalise_room_code(code))

    async def remove(self, code: str) -> Optional[Room]:
        async with self._lock:
            room = self._rooms.pop(normalise_room_code(code), None)
        if room is not None:
            logger.info("room %s destroyed", room.code)
        return room

    async def find_by_participant(self, participant_id: str) -> Optional[Room]:
        async with self._lock:
            rooms = list(self._rooms.values())
        return next((r for r in rooms if r.participant(participant_id) is not None), None)

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and normalise_room_code(code) in self._rooms


__all__ = ["RoomRegistry"]
