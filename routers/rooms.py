from fastapi import APIRouter, HTTPException, Request

from logging_config import get_logger
from registry import RoomRegistry
from schemas.rooms import RoomDetailsResponse, RoomMember, RoomSummary

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry


@rooms_router.get("", response_model=list[RoomSummary])
async def list_rooms(request: Request):
    registry = get_registry(request)
    return [
        RoomSummary(room_id=room_id, user_count=registry.user_count(room_id))
        for room_id in registry.room_ids()
    ]


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    registry = get_registry(request)
    if room_id not in registry:
        logger.debug(f"Room details requested for unknown room {room_id}")
        raise HTTPException(status_code=404, detail="Room not found")
    members = registry.members(room_id)
    return RoomDetailsResponse(
        room_id=room_id,
        user_count=len(members),
        members=[RoomMember(session_id=m.session_id, username=m.display_name) for m in members],
    )
