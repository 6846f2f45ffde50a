"""Core Celebrity game mechanics.

This module implements the room and turn rules while staying
transport-agnostic. Handlers mutate an in-memory ``celebrity.room.Room`` and
raise ``CommandIgnored`` when the sender lacks the role or the room is in the
wrong phase; ``dispatch`` turns that into an ignored ``CommandResult`` so
nothing is broadcast and nothing is sent back. The websocket router only
calls the async entry points at the bottom of the file.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Tuple

from fastapi import WebSocket
from pydantic import BaseModel, ConfigDict, ValidationError

from .constants import (
    STATUS_GAME_OVER,
    STATUS_LOBBY,
    STATUS_PLAYING,
    STATUS_ROUND_END,
    STATUS_SUBMITTING,
    TEAMS,
    TOTAL_ROUNDS,
)
from .errors import CommandIgnored, GameAlreadyStarted, RoomNotFound
from .registry import RoomRegistry
from .room import Room
from .schemas import (
    CreateRoomRequest,
    JoinRoomRequest,
    JoinTeamRequest,
    NameEntry,
    NextNameRequest,
    Participant,
    SubmitNamesRequest,
)
from .timer import cancel_turn_timer, sync_turn_timer
from .turn import TurnOutcome, other_team

logger = logging.getLogger(__name__)


class CommandResult(BaseModel):
    """What dispatch did with a command. Never sent to clients."""

    model_config = ConfigDict(frozen=True)

    applied: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "CommandResult":
        return cls(applied=True)

    @classmethod
    def ignored(cls, reason: str) -> "CommandResult":
        return cls(applied=False, reason=reason)


# ---------------------------------------------------------------------------
# Precondition helpers
# ---------------------------------------------------------------------------

def _require_participant(room: Room, user_id: str) -> Participant:
    participant = room.participant(user_id)
    if participant is None:
        raise CommandIgnored("not_participant")
    return participant


def _require_host(room: Room, user_id: str) -> Participant:
    participant = _require_participant(room, user_id)
    if not participant.is_host:
        raise CommandIgnored("not_host")
    return participant


def _require_status(room: Room, status: str) -> None:
    if room.status != status:
        raise CommandIgnored(f"not_{status}")


def apply_turn_outcome(room: Room, outcome: Optional[TurnOutcome]) -> None:
    """Close the round when the turn engine reports the bowl is exhausted."""
    if outcome is not TurnOutcome.ROUND_OVER:
        return
    room.status = STATUS_ROUND_END
    room.round_scores.append(room.scores.model_copy())
    logger.info(
        "room %s: round %d over, scores A=%d B=%d",
        room.code,
        room.current_round,
        room.scores.team_a,
        room.scores.team_b,
    )


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------

def handle_join_team(room: Room, user_id: str, data: dict) -> None:
    participant = _require_participant(room, user_id)
    _require_status(room, STATUS_LOBBY)
    participant.team = JoinTeamRequest.model_validate(data).team


def handle_start_submitting(room: Room, user_id: str, data: dict) -> None:
    _require_host(room, user_id)
    _require_status(room, STATUS_LOBBY)
    room.status = STATUS_SUBMITTING


def handle_submit_names(room: Room, user_id: str, data: dict) -> None:
    participant = _require_participant(room, user_id)
    _require_status(room, STATUS_SUBMITTING)
    names = SubmitNamesRequest.model_validate(data).names
    # Repeat submissions add to what the participant already sent.
    for text in names:
        text = text.strip()
        if text:
            room.name_entries.append(
                NameEntry(id=room.identity.new_entry_id(), text=text, submitted_by=user_id)
            )
    participant.has_submitted_names = True


def handle_start_game(room: Room, user_id: str, data: dict) -> None:
    _require_host(room, user_id)
    _require_status(room, STATUS_SUBMITTING)
    if not all(room.roster(team) for team in TEAMS):
        raise CommandIgnored("teams_incomplete")
    room.status = STATUS_PLAYING
    room.current_round = 1
    room.bowl.refill(room.entry_ids())
    team = room.rng.choice(TEAMS)
    room.turns.open_round(team)
    logger.info("room %s: game started with %d names, team %s first", room.code, len(room.bowl), team)


def handle_start_turn(room: Room, user_id: str, data: dict) -> None:
    _require_status(room, STATUS_PLAYING)
    room.turns.start(user_id)


def handle_next_name(room: Room, user_id: str, data: dict) -> None:
    _require_status(room, STATUS_PLAYING)
    guessed = NextNameRequest.model_validate(data).guessed
    apply_turn_outcome(room, room.turns.resolve(user_id, guessed))


def handle_end_turn(room: Room, user_id: str, data: dict) -> None:
    _require_status(room, STATUS_PLAYING)
    apply_turn_outcome(room, room.turns.end(user_id))


def handle_next_round(room: Room, user_id: str, data: dict) -> None:
    _require_status(room, STATUS_ROUND_END)
    _require_host(room, user_id)
    if room.current_round >= TOTAL_ROUNDS:
        room.status = STATUS_GAME_OVER
        logger.info("room %s: game over", room.code)
        return
    last_turn = room.current_turn
    assert last_turn is not None, "round ended without a turn"
    room.current_round += 1
    room.status = STATUS_PLAYING
    room.bowl.refill(room.entry_ids())
    room.turns.open_round(other_team(last_turn.team))


HANDLERS: Dict[str, Callable[[Room, str, dict], None]] = {
    "join_team": handle_join_team,
    "start_submitting": handle_start_submitting,
    "submit_names": handle_submit_names,
    "start_game": handle_start_game,
    "start_turn": handle_start_turn,
    "next_name": handle_next_name,
    "end_turn": handle_end_turn,
    "next_round": handle_next_round,
}


def dispatch(room: Room, user_id: str, data: dict) -> CommandResult:
    """Apply one in-room command. Caller must hold ``room.lock``."""
    msg_type = data.get("type")
    handler = HANDLERS.get(msg_type) if isinstance(msg_type, str) else None
    if handler is None:
        result = CommandResult.ignored("unknown_command")
    elif room.closed:
        result = CommandResult.ignored("room_closed")
    else:
        try:
            handler(room, user_id, data)
        except CommandIgnored as exc:
            result = CommandResult.ignored(exc.reason)
        except ValidationError:
            result = CommandResult.ignored("invalid_payload")
        else:
            result = CommandResult.ok()
    if not result.applied:
        logger.debug("room %s: ignored %r from %s (%s)", room.code, msg_type, user_id, result.reason)
    return result


# ---------------------------------------------------------------------------
# Async entry points used by the websocket gateway
# ---------------------------------------------------------------------------

async def handle_ws_message(room: Room, user_id: str, data: dict) -> CommandResult:
    async with room.lock:
        result = dispatch(room, user_id, data)
        if result.applied:
            sync_turn_timer(room, expire_turn)
            await room.broadcast_state()
    return result


async def expire_turn(room: Room, generation: int) -> None:
    """Force-end the turn stamped *generation* if it is still running."""
    async with room.lock:
        turn = room.current_turn
        if room.closed or turn is None or turn.generation != generation or not turn.active:
            logger.debug("room %s: stale timer for turn %d ignored", room.code, generation)
            return
        logger.info("room %s: turn %d timed out", room.code, generation)
        apply_turn_outcome(room, room.turns.end(forced=True))
        sync_turn_timer(room, expire_turn)
        await room.broadcast_state()


async def create_room(
    registry: RoomRegistry,
    user_id: str,
    data: dict,
    ws: Optional[WebSocket] = None,
) -> Tuple[Room, Participant]:
    req = CreateRoomRequest.model_validate(data)
    participant = Participant(id=user_id, display_name=req.name.strip())
    room = await registry.create(participant)
    if ws is not None:
        async with room.lock:
            room.connections[user_id] = ws
    return room, participant


async def find_joinable_room(registry: RoomRegistry, data: dict) -> Room:
    """Look up the lobby a ``join_room`` payload names without changing anything.

    Raises
    ------
    RoomNotFound
        No live room has the requested code.
    GameAlreadyStarted
        The room has left the lobby.
    """
    req = JoinRoomRequest.model_validate(data)
    room = await registry.get(req.code)
    if room is None or room.closed:
        raise RoomNotFound(req.code)
    if room.status != STATUS_LOBBY:
        raise GameAlreadyStarted(room.code)
    return room


async def join_room(
    registry: RoomRegistry,
    user_id: str,
    data: dict,
    ws: Optional[WebSocket] = None,
) -> Tuple[Room, Participant]:
    """Add *user_id* to an existing lobby.

    Raises the same errors as ``find_joinable_room``.
    """
    req = JoinRoomRequest.model_validate(data)
    room = await find_joinable_room(registry, data)
    async with room.lock:
        # The last member may have left while we waited for the lock.
        if room.closed:
            raise RoomNotFound(req.code)
        if room.status != STATUS_LOBBY:
            raise GameAlreadyStarted(room.code)
        participant = Participant(id=user_id, display_name=req.name.strip())
        room.add_participant(participant)
        if ws is not None:
            room.connections[user_id] = ws
        logger.info("room %s: %s joined", room.code, user_id)
        await room.broadcast_state()
    return room, participant


async def disconnect(registry: RoomRegistry, user_id: str, room: Optional[Room] = None) -> Optional[Room]:
    """Remove *user_id* from its room, ending its turn and destroying an empty room."""
    room = room or await registry.find_by_participant(user_id)
    if room is None:
        return None
    async with room.lock:
        if room.participant(user_id) is None:
            return room
        turn = room.current_turn
        if room.status == STATUS_PLAYING and turn is not None and turn.actor_id == user_id:
            if turn.active:
                logger.info("room %s: actor %s left mid-turn", room.code, user_id)
                apply_turn_outcome(room, room.turns.end(forced=True))
                room.remove_participant(user_id)
            else:
                room.remove_participant(user_id)
                room.turns.reassign_actor()
        else:
            room.remove_participant(user_id)

        if not room.participants:
            room.closed = True
            cancel_turn_timer(room)
        else:
            sync_turn_timer(room, expire_turn)
            await room.broadcast_state()
    if room.closed:
        await registry.remove(room.code)
    return room


__all__ = [
    "CommandResult",
    "HANDLERS",
    "apply_turn_outcome",
    "dispatch",
    "handle_ws_message",
    "expire_turn",
    "create_room",
    "find_joinable_room",
    "join_room",
    "disconnect",
]
