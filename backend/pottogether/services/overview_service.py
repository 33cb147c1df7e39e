"""
PotTogether Backend: Overview Service (Aggregation)
====================================================

What:  Builds the read-only composite views: user overview, user profile
       and room overview.
How:   Each view is a handful of small SELECTs in the caller's session.
       Day bucketing happens in Python (services/calendar.py) against UTC
       window bounds, so the SQL stays portable between PostgreSQL and
       SQLite and "today" follows the configured zone.
Who:   Called by the users routes and by RoomService.get_room_overview.

Series Semantics:
    week / month series are SPARSE. A date appears only when at least one
    record was started on it; entries are ascending by date. Totals sum
    `time_interval` over every record of the day, whatever its status.

Level Rule:
    level = 1 + total_time // settings.level_step_seconds
    The "next" image is the image of an ingredient whose requirement is
    f"level{level + 1}"; None when no such ingredient exists.
"""

import logging
from datetime import date, datetime, tzinfo
from typing import Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pottogether.config import settings
from pottogether.exceptions import DatabaseError, NotFoundError
from pottogether.models import Ingredient, Record, RecordStatus, Room, RoomUser, User
from pottogether.schemas.common import LevelInfo, RecordThumb
from pottogether.schemas.room import RoomDayTotal, RoomMember, RoomOverview
from pottogether.schemas.user import DayTotal, UserOverview, UserProfile, UserStatus
from pottogether.services.calendar import (
    bucket_by_day,
    day_window,
    ensure_utc,
    month_window,
    utcnow,
    week_window,
)

logger = logging.getLogger(__name__)

PROFILE_DONE_LIMIT = 5


def level_for(total_time: int, step: Optional[int] = None) -> int:
    return 1 + total_time // (step or settings.level_step_seconds)


class OverviewService:
    """
    Aggregation layer over records, rooms and users.

    Args:
        clock: Returns the current aware UTC time; tests pin it.
        zone: Calendar zone for day / week / month boundaries.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utcnow,
        zone: Optional[tzinfo] = None,
    ):
        self.clock = clock
        self.zone = zone or settings.zone

    # ── Shared Blocks ─────────────────────────────────────────────────────
    async def _level_info(self, db: AsyncSession, level: int, total_time: int) -> LevelInfo:
        next_image = await db.scalar(
            select(Ingredient.image)
            .where(Ingredient.requirement == f"level{level + 1}")
            .order_by(Ingredient.id)
            .limit(1)
        )
        return LevelInfo(level=level, total_time=total_time, next=next_image)

    async def _series(self, db: AsyncSession, start: datetime, end: datetime, *criteria) -> Dict[date, int]:
        rows = await db.execute(
            select(Record.created_at, Record.time_interval).where(
                Record.created_at >= start,
                Record.created_at < end,
                *criteria,
            )
        )
        return bucket_by_day(rows.all(), self.zone)

    @staticmethod
    def _thumbs(rows) -> List[RecordThumb]:
        return [RecordThumb(record_id=rid, image=image) for rid, image in rows]

    # ── User Overview ─────────────────────────────────────────────────────
    async def get_user_overview(self, db: AsyncSession, user_id: int) -> UserOverview:
        """
        Level block, records finished today, and sparse week / month series.

        Raises:
            NotFoundError: the user does not exist
            DatabaseError: a query failed
        """
        try:
            user = (
                await db.execute(select(User.level, User.total_time).where(User.id == user_id))
            ).first()
            if user is None:
                raise NotFoundError("user", user_id)

            now = self.clock()
            level = await self._level_info(db, user.level, user.total_time)

            day_start, day_end = day_window(now, self.zone)
            today_rows = await db.execute(
                select(Record.id, Ingredient.image)
                .join(Ingredient, Ingredient.id == Record.ingredient_id)
                .where(
                    Record.user_id == user_id,
                    Record.finish_time >= day_start,
                    Record.finish_time < day_end,
                )
                .order_by(Record.finish_time, Record.id)
            )

            week = await self._series(db, *week_window(now, self.zone), Record.user_id == user_id)
            month = await self._series(db, *month_window(now, self.zone), Record.user_id == user_id)

        except NotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error("get_user_overview failed for user_id=%s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "get_user_overview", "user_id": user_id})

        return UserOverview(
            user_id=user_id,
            level=level,
            today=self._thumbs(today_rows.all()),
            week=[DayTotal(date=d, length=week[d]) for d in sorted(week)],
            month=[DayTotal(date=d, length=month[d]) for d in sorted(month)],
        )

    # ── User Profile ──────────────────────────────────────────────────────
    async def get_user_profile(self, db: AsyncSession, user_id: int) -> UserProfile:
        """
        Identity, current cooking time, latest status and recent completions.

        cooking_time is measured from the newest ACTIVE record; the status
        block reflects the newest record in any state.
        """
        try:
            user = (
                await db.execute(
                    select(User.username, User.avatar).where(User.id == user_id)
                )
            ).first()
            if user is None:
                raise NotFoundError("user", user_id)

            active_since = await db.scalar(
                select(Record.created_at)
                .where(Record.user_id == user_id, Record.status == RecordStatus.ACTIVE)
                .order_by(Record.created_at.desc(), Record.id.desc())
                .limit(1)
            )

            latest = (
                await db.execute(
                    select(Record.status, Ingredient.name)
                    .join(Ingredient, Ingredient.id == Record.ingredient_id)
                    .where(Record.user_id == user_id)
                    .order_by(Record.created_at.desc(), Record.id.desc())
                    .limit(1)
                )
            ).first()

            done = (
                await db.scalars(
                    select(Ingredient.name)
                    .join(Record, Record.ingredient_id == Ingredient.id)
                    .where(Record.user_id == user_id, Record.status == RecordStatus.COMPLETED)
                    .order_by(Record.created_at.desc(), Record.id.desc())
                    .limit(PROFILE_DONE_LIMIT)
                )
            ).all()

        except NotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error("get_user_profile failed for user_id=%s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "get_user_profile", "user_id": user_id})

        cooking_time = 0
        if active_since is not None:
            elapsed = (self.clock() - ensure_utc(active_since)).total_seconds()
            cooking_time = max(0, int(elapsed))

        status = UserStatus(code=0, ingredient="")
        if latest is not None:
            status = UserStatus(code=latest.status, ingredient=latest.name)

        return UserProfile(
            user_id=user_id,
            name=user.username,
            avatar=user.avatar,
            cooking_time=cooking_time,
            status=status,
            done=list(done),
        )

    # ── Room Overview ─────────────────────────────────────────────────────
    async def get_room_overview(self, db: AsyncSession, room_id: int, user_id: int) -> RoomOverview:
        """
        Room identity, members, week comparison and cooking / done lists.

        The week series merges the room-wide and the requesting user's
        per-day totals by date. A date present in either side is emitted,
        the missing side reports 0.

        Raises:
            NotFoundError: the room does not exist
        """
        try:
            room = (
                await db.execute(
                    select(
                        Room.id, Room.roomname, Room.current_pot, Room.level, Room.total_time
                    ).where(Room.id == room_id)
                )
            ).first()
            if room is None:
                raise NotFoundError("room", room_id)

            members = await db.execute(
                select(User.id, User.avatar)
                .join(RoomUser, RoomUser.user_id == User.id)
                .where(RoomUser.room_id == room_id)
                .order_by(User.id)
            )

            now = self.clock()
            start, end = week_window(now, self.zone)
            room_days = await self._series(db, start, end, Record.room_id == room_id)
            user_days = await self._series(
                db, start, end, Record.room_id == room_id, Record.user_id == user_id
            )

            cooking = await db.execute(
                select(Record.id, Ingredient.image)
                .join(Ingredient, Ingredient.id == Record.ingredient_id)
                .where(Record.room_id == room_id, Record.status == RecordStatus.ACTIVE)
                .order_by(Record.created_at.desc(), Record.id.desc())
            )
            done = await db.execute(
                select(Record.id, Ingredient.image)
                .join(Ingredient, Ingredient.id == Record.ingredient_id)
                .where(Record.room_id == room_id, Record.status != RecordStatus.ACTIVE)
                .order_by(Record.created_at.desc(), Record.id.desc())
            )

            level = await self._level_info(db, room.level, room.total_time)

        except NotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(
                "get_room_overview failed for room_id=%s user_id=%s: %s",
                room_id, user_id, str(e),
            )
            raise DatabaseError(context={"operation": "get_room_overview", "room_id": room_id})

        week = [
            RoomDayTotal(
                date=d,
                user_total=user_days.get(d, 0),
                room_total=room_days.get(d, 0),
            )
            for d in sorted(set(room_days) | set(user_days))
        ]

        return RoomOverview(
            room_id=room.id,
            current_pot=room.current_pot,
            name=room.roomname,
            members=[RoomMember(user_id=uid, avatar=avatar) for uid, avatar in members.all()],
            week=week,
            level=level,
            cooking=self._thumbs(cooking.all()),
            done=self._thumbs(done.all()),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
overview_service = OverviewService()
