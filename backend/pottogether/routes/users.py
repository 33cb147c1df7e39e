"""
PotTogether Backend: User Route Handlers
=========================================

Read-only views of the caller: the profile card and the progress overview.
`week` and `month` in the overview are sparse series.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pottogether.database import get_db_session
from pottogether.identity import get_current_user_id
from pottogether.schemas.common import Envelope
from pottogether.schemas.user import UserOverview, UserProfile
from pottogether.services.overview_service import overview_service

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/me/profile", response_model=Envelope[UserProfile], summary="Caller's profile card")
async def get_profile(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Envelope[UserProfile]:
    profile = await overview_service.get_user_profile(db, user_id)
    return Envelope[UserProfile].ok(profile)


@router.get("/me/overview", response_model=Envelope[UserOverview], summary="Caller's progress")
async def get_overview(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Envelope[UserOverview]:
    overview = await overview_service.get_user_overview(db, user_id)
    return Envelope[UserOverview].ok(overview)
