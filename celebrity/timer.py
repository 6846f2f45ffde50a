"""Server-enforced turn timeout.

When a turn becomes active an asyncio task is scheduled for the end of its
window. The task carries the turn's generation token; if the room's current
turn no longer has that generation (or is no longer active) when it fires,
it does nothing. The client's own countdown is never trusted.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from .room import Room

logger = logging.getLogger(__name__)

ExpireCallback = Callable[[Room, int], Awaitable[None]]


def cancel_turn_timer(room: Room) -> None:
    task = room.timer_task
    room.timer_task = None
    room.timer_generation = None
    if task is not None and not task.done() and task is not asyncio.current_task():
        task.cancel()


def sync_turn_timer(room: Room, on_expire: ExpireCallback) -> None:
    """Make the scheduled timer match the room's current turn.

    Must be called with ``room.lock`` held, after every applied command.
    """
    turn = room.current_turn
    if turn is None or not turn.active or turn.window is None:
        cancel_turn_timer(room)
        return
    task = room.timer_task
    if room.timer_generation == turn.generation and task is not None and not task.done():
        return

    cancel_turn_timer(room)
    delay = max(0.0, (turn.window.end - room.turns.clock()) / 1000)
    room.timer_generation = turn.generation
    room.timer_task = asyncio.create_task(_expire_after(room, turn.generation, delay, on_expire))
    logger.debug("room %s: turn %d times out in %.1fs", room.code, turn.generation, delay)


async def _expire_after(room: Room, generation: int, delay: float, on_expire: ExpireCallback) -> None:
    try:
        await asyncio.sleep(delay)
    except asyncio.CancelledError:
        logger.debug("room %s: timer for turn %d cancelled", room.code, generation)
        raise
    if room.timer_task is asyncio.current_task():
        room.timer_task = None
        room.timer_generation = None
    await on_expire(room, generation)


__all__ = ["cancel_turn_timer", "sync_turn_timer"]
