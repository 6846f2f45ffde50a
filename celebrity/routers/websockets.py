from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ..errors import GameAlreadyStarted, RoomNotFound
from ..game_logic import create_room, disconnect, find_joinable_room, handle_ws_message, join_room
from ..registry import RoomRegistry
from ..room import Room
from ..schemas import CreateRoomRequest, JoinReply, Participant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["ws"])

JOIN_COMMANDS = {"create_room", "join_room"}


def _reply(command: str, reply: JoinReply) -> dict:
    data = {key: value for key, value in reply.model_dump().items() if value is not None}
    return {"type": "reply", "command": command, "data": data}


async def _send_joined(ws: WebSocket, command: str, room: Room, participant: Participant) -> None:
    async with room.lock:
        snapshot = room.snapshot()
    await ws.send_json(
        _reply(command, JoinReply(success=True, room=snapshot, participant=participant.model_copy()))
    )


async def _enter_room(
    registry: RoomRegistry,
    ws: WebSocket,
    user_id: str,
    command: str,
    data: dict,
    current: Optional[Room] = None,
) -> Optional[Room]:
    """Run create_room / join_room and answer the requester privately.

    Returns the room the connection belongs to afterwards. A rejected request
    leaves the connection in *current*.
    """
    try:
        if command == "create_room":
            CreateRoomRequest.model_validate(data)
        else:
            target = await find_joinable_room(registry, data)
            if target is current:
                participant = current.participant(user_id)
                if participant is not None:
                    await _send_joined(ws, command, current, participant)
                    return current
        # A connection belongs to at most one room at a time.
        if current is not None:
            await disconnect(registry, user_id, current)
            current = None
        if command == "create_room":
            room, participant = await create_room(registry, user_id, data, ws)
        else:
            room, participant = await join_room(registry, user_id, data, ws)
    except (RoomNotFound, GameAlreadyStarted) as exc:
        await ws.send_json(_reply(command, JoinReply(success=False, error=exc.code)))
        return current
    except ValidationError:
        logger.debug("malformed %s from %s", command, user_id)
        await ws.send_json(_reply(command, JoinReply(success=False)))
        return current

    await _send_joined(ws, command, room, participant)
    return room


@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    registry: RoomRegistry = ws.app.state.registry
    # The connection is the identity; clients never choose their own id.
    user_id = registry.identity.new_participant_id()
    room: Optional[Room] = None
    try:
        while True:
            try:
                data = await ws.receive_json()
            except (ValueError, KeyError):
                # KeyError: a binary frame has no "text" field.
                logger.warning("connection %s sent a non-JSON frame", user_id)
                continue
            if not isinstance(data, dict):
                continue
            command = data.get("type")
            if command in JOIN_COMMANDS:
                room = await _enter_room(registry, ws, user_id, command, data, room)
            elif room is not None:
                await handle_ws_message(room, user_id, data)
    except WebSocketDisconnect:
        logger.debug("connection %s closed", user_id)
    finally:
        if room is not None:
            await disconnect(registry, user_id, room)
