"""
PotTogether Backend: Room Route Handlers
=========================================

What:  Room creation, listings, overview and membership changes.
Who:   Called by the room list and room detail screens.

Status codes:
    201 room created · 200 everything else that succeeds
    400 invalid input · 401 no identity · 404 room missing
    409 already member / not member / room full
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pottogether.database import get_db_session
from pottogether.identity import get_current_user_id
from pottogether.schemas.common import Envelope
from pottogether.schemas.record import RecordDetail
from pottogether.schemas.room import (
    RoomCreated,
    RoomCreateRequest,
    RoomMembership,
    RoomOverview,
    RoomSummary,
)
from pottogether.services.record_service import record_service
from pottogether.services.room_service import room_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rooms", tags=["Rooms"])


@router.post(
    "",
    status_code=201,
    response_model=Envelope[RoomCreated],
    summary="Create a room with its first pot",
)
async def create_room(
    body: RoomCreateRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Envelope[RoomCreated]:
    created = await room_service.create_room(
        db,
        name=body.name,
        member_limit=body.member_limit,
        privacy=body.privacy,
        category=body.category,
        creator_id=user_id,
    )
    return Envelope[RoomCreated].ok(created)


@router.get(
    "",
    response_model=Envelope[List[RoomSummary]],
    summary="Rooms the caller belongs to",
)
async def list_my_rooms(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Envelope[List[RoomSummary]]:
    rooms = await room_service.list_user_rooms(db, user_id)
    return Envelope[List[RoomSummary]].ok(rooms)


@router.get(
    "/public",
    response_model=Envelope[List[RoomSummary]],
    summary="All public rooms",
)
async def list_public_rooms(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Envelope[List[RoomSummary]]:
    rooms = await room_service.list_public_rooms(db)
    return Envelope[List[RoomSummary]].ok(rooms)


@router.get(
    "/{room_id}",
    response_model=Envelope[RoomOverview],
    summary="Room overview for the caller",
    description=(
        "Members, level, cooking and done lists, and the week comparison. "
        "`week` is sparse: only dates with at least one record are present."
    ),
)
async def get_room_overview(
    room_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Envelope[RoomOverview]:
    overview = await room_service.get_room_overview(db, room_id, user_id)
    return Envelope[RoomOverview].ok(overview)


@router.post(
    "/{room_id}/join",
    response_model=Envelope[RoomMembership],
    summary="Join a room",
)
async def join_room(
    room_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Envelope[RoomMembership]:
    membership = await room_service.join_room(db, user_id=user_id, room_id=room_id)
    return Envelope[RoomMembership].ok(membership)


@router.post(
    "/{room_id}/leave",
    response_model=Envelope[RoomMembership],
    summary="Leave a room",
)
async def leave_room(
    room_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Envelope[RoomMembership]:
    membership = await room_service.leave_room(db, user_id=user_id, room_id=room_id)
    return Envelope[RoomMembership].ok(membership)


@router.get(
    "/{room_id}/records",
    response_model=Envelope[List[RecordDetail]],
    summary="Records cooked in a room, active first",
)
async def list_room_records(
    room_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Envelope[List[RecordDetail]]:
    records = await record_service.list_records(db, owner_kind="room", owner_id=room_id)
    return Envelope[List[RecordDetail]].ok(records)
