from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from ..registry import RoomRegistry
from ..schemas import RoomSnapshot

router = APIRouter(prefix="", tags=["rooms"])


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry


@router.get("/api/health")
async def health(registry: RoomRegistry = Depends(get_registry)):
    return {"status": "ok", "rooms": len(registry)}


@router.get("/rooms/{code}", response_model=RoomSnapshot)
async def get_room(code: str, registry: RoomRegistry = Depends(get_registry)):
    room = await registry.get(code)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    async with room.lock:
        return room.snapshot()
