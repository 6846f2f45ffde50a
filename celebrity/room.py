from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Dict, List, Optional

from fastapi import WebSocket

from .bowl import Bowl
from .constants import STATUS_LOBBY, TURN_DURATION_MS
from .identity import IdentityProvider
from .schemas import NameEntry, Participant, RoomSnapshot, TeamCounts, Team, Turn
from .turn import TurnEngine, now_ms

logger = logging.getLogger(__name__)

# NOTE: command handling lives in ``celebrity.game_logic``; this module only
# holds the aggregate, its membership helpers and broadcasting.


class Room:
    """Runtime state and active websocket connections for one game session.

    Every mutation must happen while holding ``lock``.
    """

    def __init__(
        self,
        code: str,
        host: Participant,
        identity: Optional[IdentityProvider] = None,
        rng: Optional[random.Random] = None,
        turn_duration_ms: int = TURN_DURATION_MS,
        clock: Callable[[], int] = now_ms,
    ):
        self.code = code
        self.identity = identity or IdentityProvider()
        host.is_host = True
        self.participants: List[Participant] = [host]
        self.status = STATUS_LOBBY
        self.name_entries: List[NameEntry] = []
        self.rng = rng or random.SystemRandom()
        self.bowl = Bowl(self.rng)
        self.current_round = 1
        self.scores = TeamCounts()
        self.round_scores: List[TeamCounts] = []
        self.turn_cursor = TeamCounts()
        self.turns = TurnEngine(
            self.bowl,
            self.scores,
            self.turn_cursor,
            self.roster,
            duration_ms=turn_duration_ms,
            clock=clock,
        )

        # active websocket connections: participant id -> websocket
        self.connections: Dict[str, WebSocket] = {}
        self.lock = asyncio.Lock()
        # Set once the last participant leaves and the registry drops the room
        self.closed = False

        # Server-side turn timeout, see ``celebrity.timer``
        self.timer_task: Optional[asyncio.Task] = None
        self.timer_generation: Optional[int] = None

    # ---------------------------------------------------------------------
    # Helper utilities
    # ---------------------------------------------------------------------

    @property
    def current_turn(self) -> Optional[Turn]:
        return self.turns.turn

    @property
    def host(self) -> Optional[Participant]:
        return next((p for p in self.participants if p.is_host), None)

    def participant(self, participant_id: str) -> Optional[Participant]:
        return next((p for p in self.participants if p.id == participant_id), None)

    def roster(self, team: Team) -> List[str]:
        """Ids of *team*'s members in join order."""
        return [p.id for p in self.participants if p.team == team]

    def entry_ids(self) -> List[str]:
        return [entry.id for entry in self.name_entries]

    # -------------------- Participant management -------------------- #

    def add_participant(self, participant: Participant) -> None:
        participant.is_host = False
        self.participants.append(participant)

    def remove_participant(self, participant_id: str) -> Optional[Participant]:
        """Drop *participant_id*; promote the earliest joiner if the host left."""
        participant = self.participant(participant_id)
        if participant is None:
            return None
        self.participants.remove(participant)
        self.connections.pop(participant_id, None)
        if participant.is_host and self.participants:
            self.participants[0].is_host = True
            logger.info(
                "room %s: host %s left, promoted %s",
                self.code,
                participant_id,
                self.participants[0].id,
            )
        return participant

    # -------------------- Broadcasting helpers -------------------- #

    def snapshot(self) -> RoomSnapshot:
        """Detached copy of the whole room, safe to hand to the transport."""
        host = self.host
        turn = self.current_turn
        return RoomSnapshot(
            code=self.code,
            host_id=host.id if host else None,
            participants=[p.model_copy(deep=True) for p in self.participants],
            status=self.status,
            name_entries=list(self.name_entries),
            bowl=self.bowl.ids(),
            current_round=self.current_round,
            current_turn=turn.model_copy(deep=True) if turn else None,
            scores=self.scores.model_copy(),
            round_scores=[s.model_copy() for s in self.round_scores],
            turn_cursor=self.turn_cursor.model_copy(),
        )

    async def broadcast_state(self) -> None:
        """Send the *entire* room state snapshot to all connected clients."""
        await self.broadcast({"type": "room_update", "data": self.snapshot().model_dump()})

    async def broadcast(self, payload: dict) -> None:
        """Broadcast *payload* to every active websocket connection in the room."""
        for participant_id, ws in list(self.connections.items()):
            await self.send(participant_id, payload, ws)

    async def send(self, participant_id: str, payload: dict, ws: Optional[WebSocket] = None) -> None:
        ws = ws or self.connections.get(participant_id)
        if ws is None:
            return
        try:
            await ws.send_json(payload)
        except Exception as exc:
            logger.warning("room %s: dropping connection %s after send failure: %s", self.code, participant_id, exc)
            self.connections.pop(participant_id, None)


__all__ = ["Room"]
