"""Turn engine: one pending-or-active turn and the hand-off between turns.

A turn is *pending* (actor assigned, clock not running), then *active*
(clock running, names can be drawn and resolved), and is finally replaced by
its successor. The engine never touches room status itself; it reports a
``TurnOutcome`` and the room decides what a finished round means.
"""
from __future__ import annotations

import enum
import logging
import time
from typing import Callable, List, Optional

from .bowl import Bowl
from .constants import TEAM_A, TEAM_B, TURN_DURATION_MS
from .errors import CommandIgnored
from .schemas import TeamCounts, Team, Turn, TurnWindow

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def other_team(team: Team) -> Team:
    return TEAM_B if team == TEAM_A else TEAM_A


class TurnOutcome(enum.Enum):
    HANDED_OFF = "handed_off"
    ROUND_OVER = "round_over"


class TurnEngine:
    """Owns ``turn`` and advances it.

    *roster* returns the ids of a team's members in join order. *scores* and
    *cursor* are the room's own ``TeamCounts`` objects and are mutated in
    place.
    """

    def __init__(
        self,
        bowl: Bowl,
        scores: TeamCounts,
        cursor: TeamCounts,
        roster: Callable[[Team], List[str]],
        duration_ms: int = TURN_DURATION_MS,
        clock: Callable[[], int] = now_ms,
    ):
        self.bowl = bowl
        self.scores = scores
        self.cursor = cursor
        self.roster = roster
        self.duration_ms = duration_ms
        self.clock = clock
        self.turn: Optional[Turn] = None
        self._generation = 0

    # -------------------- Construction -------------------- #

    def open_round(self, team: Team) -> Turn:
        """Install a pending turn for *team* at the start of a round."""
        self.turn = self._pending_turn(team)
        return self.turn

    def _pending_turn(self, team: Team) -> Turn:
        self._generation += 1
        return Turn(team=team, actor_id=self._select_actor(team), generation=self._generation)

    def _select_actor(self, team: Team) -> Optional[str]:
        members = self.roster(team)
        if not members:
            # Nobody can act for this team; the turn stays pending.
            logger.warning("team %s has no members, turn has no actor", team)
            return None
        return members[self.cursor.get(team) % len(members)]

    def reassign_actor(self) -> None:
        """Reselect the actor of a pending turn whose actor has left."""
        turn = self.turn
        if turn is None or not turn.pending:
            return
        turn.actor_id = self._select_actor(turn.team)

    # -------------------- Transitions -------------------- #

    def _require_actor(self, by: str) -> Turn:
        turn = self.turn
        if turn is None:
            raise CommandIgnored("no_turn")
        if turn.actor_id is None or turn.actor_id != by:
            raise CommandIgnored("not_actor")
        return turn

    def start(self, by: str) -> Turn:
        turn = self._require_actor(by)
        if not turn.pending:
            raise CommandIgnored("turn_not_pending")
        start = self.clock()
        turn.active = True
        turn.window = TurnWindow(start=start, end=start + self.duration_ms)
        turn.in_hand = self.bowl.draw()
        return turn

    def resolve(self, by: str, guessed: bool) -> Optional[TurnOutcome]:
        """Score or skip the entry in hand, then draw the next one.

        Returns the end-of-turn outcome if the bowl ran dry, else ``None``.
        """
        turn = self._require_actor(by)
        if not turn.active:
            raise CommandIgnored("turn_not_active")
        if turn.in_hand is not None:
            if guessed:
                turn.guessed_this_turn.append(turn.in_hand)
                self.scores.increment(turn.team)
            else:
                self.bowl.return_and_reshuffle(turn.in_hand)
        turn.in_hand = self.bowl.draw()
        if turn.in_hand is None:
            return self._finish()
        return None

    def end(self, by: Optional[str] = None, forced: bool = False) -> TurnOutcome:
        """Finish the active turn; *forced* skips the actor check (disconnect, timeout)."""
        turn = self.turn
        if turn is None:
            raise CommandIgnored("no_turn")
        if not forced:
            self._require_actor(by or "")
        if not turn.active:
            raise CommandIgnored("turn_not_active")
        if turn.in_hand is not None:
            self.bowl.return_and_reshuffle(turn.in_hand)
            turn.in_hand = None
        return self._finish()

    def _finish(self) -> TurnOutcome:
        turn = self.turn
        assert turn is not None and turn.active
        turn.active = False
        if len(self.bowl) == 0 and turn.in_hand is None:
            return TurnOutcome.ROUND_OVER
        self.cursor.increment(turn.team)
        self.turn = self._pending_turn(other_team(turn.team))
        return TurnOutcome.HANDED_OFF


__all__ = ["TurnEngine", "TurnOutcome", "now_ms", "other_team"]
