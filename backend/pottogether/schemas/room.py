"""
PotTogether Backend: Room Schemas
==================================

Requests and responses for room creation, membership changes and the room
overview.

Day series are SPARSE: `RoomOverview.week` only contains dates on which at
least one record was started. Clients must not assume seven entries.
"""

import datetime as dt
from typing import List, Optional

from pydantic import Field

from pottogether.schemas.common import APIModel, LevelInfo, RecordThumb


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class RoomCreateRequest(APIModel):
    """
    Body of POST /api/rooms.

    Range checks (positive limit, non-blank name, privacy value) happen in
    RoomService so scripts calling the service get the same errors.
    """

    name: str
    member_limit: int = Field(alias="memberLimit")
    privacy: str = Field(default="public", description="public or private")
    category: List[str] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class RoomCreated(APIModel):
    room_id: int = Field(alias="roomID")
    pot_id: str = Field(alias="potID")


class RoomMembership(APIModel):
    """Result of a join or leave: the member count after the change."""

    room_id: int = Field(alias="roomID")
    user_id: int = Field(alias="userID")
    member_count: int = Field(alias="memberCnt")


class RoomSummary(APIModel):
    room_id: int = Field(alias="roomID")
    name: str
    member_count: int = Field(alias="memberCnt")
    member_limit: int = Field(alias="memberLimit")
    privacy: str
    category: List[str]


class RoomMember(APIModel):
    user_id: int = Field(alias="userID")
    avatar: Optional[int] = None


class RoomDayTotal(APIModel):
    date: dt.date
    user_total: int = Field(alias="userTotal")
    room_total: int = Field(alias="roomTotal")


class RoomOverview(APIModel):
    room_id: int = Field(alias="roomID")
    current_pot: str = Field(alias="currentPot")
    name: str
    members: List[RoomMember]
    week: List[RoomDayTotal] = Field(description="Sparse, ascending by date")
    level: LevelInfo
    cooking: List[RecordThumb] = Field(description="Active records, newest first")
    done: List[RecordThumb] = Field(description="Finished records, newest first")


class MemberCountDrift(APIModel):
    """One room whose stored counter disagrees with its membership rows."""

    room_id: int = Field(alias="roomID")
    stored: int
    actual: int
