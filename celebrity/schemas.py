"""Pydantic data schemas used across the game server.

Runtime entities (participants, name entries, turns) are mutable pydantic
models held by ``celebrity.room.Room``. ``RoomSnapshot`` is the wire shape
broadcast after every mutation; it is always built from deep copies so the
transport never holds a reference into live room state.
"""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .constants import TEAM_A

Team = Literal["A", "B"]
Status = Literal["lobby", "submitting", "playing", "round_end", "game_over"]

# -----------------------------
# Runtime entities
# -----------------------------


class Participant(BaseModel):
    """A connection taking part in a room."""

    id: str
    display_name: str
    team: Optional[Team] = None  # unassigned until join_team
    is_host: bool = False
    has_submitted_names: bool = False


class NameEntry(BaseModel):
    """One submitted name. Never mutated or deleted once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    submitted_by: str


class TurnWindow(BaseModel):
    start: int  # epoch milliseconds
    end: int


class Turn(BaseModel):
    team: Team
    actor_id: Optional[str] = None
    window: Optional[TurnWindow] = None
    in_hand: Optional[str] = None
    guessed_this_turn: List[str] = Field(default_factory=list)
    active: bool = False
    # Unique per Turn object within a room; lets a stale timer recognise that
    # the turn it was scheduled for has been replaced.
    generation: int = Field(default=0, exclude=True)

    @property
    def pending(self) -> bool:
        return not self.active and self.window is None


class TeamCounts(BaseModel):
    """Per-team integer pair, used for scores and turn cursors."""

    team_a: int = 0
    team_b: int = 0

    def get(self, team: Team) -> int:
        return self.team_a if team == TEAM_A else self.team_b

    def increment(self, team: Team) -> None:
        if team == TEAM_A:
            self.team_a += 1
        else:
            self.team_b += 1


class RoomSnapshot(BaseModel):
    code: str
    host_id: Optional[str] = None
    participants: List[Participant]
    status: Status
    name_entries: List[NameEntry] = []
    bowl: List[str] = []
    current_round: int = 1
    current_turn: Optional[Turn] = None
    scores: TeamCounts
    round_scores: List[TeamCounts] = []
    turn_cursor: TeamCounts


# -----------------------------
# Inbound command payloads
# -----------------------------


class CreateRoomRequest(BaseModel):
    name: str


class JoinRoomRequest(BaseModel):
    code: str
    name: str


class JoinTeamRequest(BaseModel):
    team: Team


class SubmitNamesRequest(BaseModel):
    names: List[str]


class NextNameRequest(BaseModel):
    guessed: bool


# -----------------------------
# Private replies
# -----------------------------


class JoinReply(BaseModel):
    """Reply sent only to the requester of create_room / join_room."""

    success: bool
    room: Optional[RoomSnapshot] = None
    participant: Optional[Participant] = None
    error: Optional[str] = None


__all__ = [
    "Team",
    "Status",
    "Participant",
    "NameEntry",
    "TurnWindow",
    "Turn",
    "TeamCounts",
    "RoomSnapshot",
    "CreateRoomRequest",
    "JoinRoomRequest",
    "JoinTeamRequest",
    "SubmitNamesRequest",
    "NextNameRequest",
    "JoinReply",
]
