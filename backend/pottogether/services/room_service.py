"""
PotTogether Backend: Room Service (Membership Manager)
=======================================================

What:  Creates rooms and moves users in and out of them while keeping the
       denormalized `room.member_cnt` equal to the number of memberships.
How:   Every operation runs inside the caller's session; the caller owns
       the transaction (get_db_session / Database.session_scope) and rolls
       it back whenever one of these methods raises.
Who:   Called by the rooms routes.

Join Critical Section:
    ┌───────────────┐   ┌───────────────┐   ┌──────────────────────┐   ┌────────────┐
    │ lock room row │──▶│ member check  │──▶│ conditional increment│──▶│ insert     │
    │ (FOR UPDATE)  │   │ AlreadyMember │   │ RoomFull if 0 rows   │   │ membership │
    └───────────────┘   └───────────────┘   └──────────────────────┘   └────────────┘

    The increment carries its own capacity predicate:
        UPDATE room SET member_cnt = member_cnt + 1
        WHERE id = :id AND member_cnt < member_limit
    so two concurrent joins can never both pass the capacity check. The row
    lock serializes joins and leaves per room on PostgreSQL; on SQLite the
    database-level write lock gives the same ordering.

Leave:
    The membership DELETE and a decrement guarded by `member_cnt > 0` run in
    the same transaction. A guarded decrement that touches no row means the
    counter had already drifted; that is raised as InvariantViolationError,
    never clamped.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pottogether.exceptions import (
    AlreadyMemberError,
    DatabaseError,
    InvariantViolationError,
    NotFoundError,
    NotMemberError,
    PotTogetherError,
    RoomFullError,
    ValidationError,
)
from pottogether.models import Pot, Room, RoomUser
from pottogether.models.room import CATEGORY_SEPARATOR, PRIVACY_VALUES
from pottogether.schemas.room import (
    MemberCountDrift,
    RoomCreated,
    RoomMembership,
    RoomOverview,
    RoomSummary,
)
from pottogether.services.calendar import utcnow
from pottogether.services.overview_service import OverviewService, overview_service

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
SQLITE_DUPLICATE_KEY = ("SQLITE_CONSTRAINT_PRIMARYKEY", "SQLITE_CONSTRAINT_UNIQUE")


def is_duplicate_key(error: IntegrityError) -> bool:
    """
    True when the violated constraint is a primary key or unique index.

    Foreign-key, NOT NULL and check violations return False.
    """
    orig = error.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate:
        return sqlstate == UNIQUE_VIOLATION
    errorname = getattr(orig, "sqlite_errorname", None)
    if errorname:
        return errorname in SQLITE_DUPLICATE_KEY
    return "UNIQUE constraint failed" in str(orig)


MAX_ROOM_NAME = 64


class RoomService:
    """
    Business logic for rooms and memberships.

    Error Handling Strategy:
        Expected outcomes (missing room, duplicate membership, full room)
        raise their ConflictError / NotFoundError subclass. Anything
        SQLAlchemy raises beyond that is logged with the operation and ids
        and wrapped in DatabaseError.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utcnow,
        overviews: Optional[OverviewService] = None,
    ):
        self.clock = clock
        self.overviews = overviews or overview_service

    # ── Validation ────────────────────────────────────────────────────────
    @staticmethod
    def _normalize_categories(category: Sequence[str]) -> List[str]:
        tags = []
        for raw in category or []:
            tag = (raw or "").strip()
            if not tag:
                raise ValidationError(message="Category tags must not be empty", field="category")
            if CATEGORY_SEPARATOR in tag:
                raise ValidationError(
                    message=f"Category tags must not contain '{CATEGORY_SEPARATOR}'",
                    field="category",
                )
            if tag not in tags:
                tags.append(tag)
        return tags

    def _validate_new_room(self, name: str, member_limit: int, privacy: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError(message="Room name must not be empty", field="name")
        if len(name) > MAX_ROOM_NAME:
            raise ValidationError(
                message=f"Room name must be at most {MAX_ROOM_NAME} characters",
                field="name",
            )
        if member_limit is None or member_limit <= 0:
            raise ValidationError(message="memberLimit must be a positive integer", field="memberLimit")
        if privacy not in PRIVACY_VALUES:
            raise ValidationError(
                message=f"privacy must be one of: {', '.join(PRIVACY_VALUES)}",
                field="privacy",
            )
        return name

    # ── Create ────────────────────────────────────────────────────────────
    async def create_room(
        self,
        db: AsyncSession,
        name: str,
        member_limit: int,
        privacy: str,
        category: Sequence[str],
        creator_id: int,
    ) -> RoomCreated:
        """
        Creates a room, its first pot and the creator's membership.

        All three rows are written in the caller's transaction, so a failure
        at any step leaves no partial room behind once it rolls back.

        Returns:
            RoomCreated with the new room id and the generated pot id

        Raises:
            ValidationError: blank name, non-positive limit, unknown privacy
            DatabaseError: an insert failed
        """
        name = self._validate_new_room(name, member_limit, privacy)
        tags = self._normalize_categories(category)
        pot_id = str(uuid.uuid4())

        try:
            room = Room(
                roomname=name,
                current_pot=pot_id,
                member_cnt=1,
                member_limit=member_limit,
                privacy=privacy,
                category=CATEGORY_SEPARATOR.join(tags),
                level=1,
                total_time=0,
                created_at=self.clock(),
            )
            db.add(room)
            # Flush assigns room.id without committing
            await db.flush()

            db.add_all([
                Pot(id=pot_id, room_id=room.id),
                RoomUser(user_id=creator_id, room_id=room.id),
            ])
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("create_room failed for creator_id=%s: %s", creator_id, str(e))
            raise DatabaseError(context={"operation": "create_room", "creator_id": creator_id})

        logger.info(
            "Room %s created by user %s (pot=%s, limit=%d)",
            room.id, creator_id, pot_id, member_limit,
        )
        return RoomCreated(room_id=room.id, pot_id=pot_id)

    # ── Membership ────────────────────────────────────────────────────────
    async def _lock_room(self, db: AsyncSession, room_id: int):
        room = (
            await db.execute(
                select(Room.id, Room.member_cnt, Room.member_limit)
                .where(Room.id == room_id)
                .with_for_update()
            )
        ).first()
        if room is None:
            raise NotFoundError("room", room_id)
        return room

    async def _is_member(self, db: AsyncSession, user_id: int, room_id: int) -> bool:
        found = await db.scalar(
            select(RoomUser.user_id).where(
                RoomUser.user_id == user_id, RoomUser.room_id == room_id
            )
        )
        return found is not None

    async def _member_cnt(self, db: AsyncSession, room_id: int) -> int:
        return await db.scalar(select(Room.member_cnt).where(Room.id == room_id))

    async def join_room(self, db: AsyncSession, user_id: int, room_id: int) -> RoomMembership:
        """
        Adds user_id to the room.

        Raises:
            NotFoundError: the room does not exist
            AlreadyMemberError: the membership exists (including a concurrent
                join of the same pair that committed first)
            RoomFullError: member_cnt already equals member_limit
            DatabaseError: unexpected persistence failure
        """
        try:
            room = await self._lock_room(db, room_id)

            if await self._is_member(db, user_id, room_id):
                raise AlreadyMemberError(user_id, room_id)

            result = await db.execute(
                update(Room)
                .where(Room.id == room_id, Room.member_cnt < Room.member_limit)
                .values(member_cnt=Room.member_cnt + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise RoomFullError(room_id, room.member_limit)

            db.add(RoomUser(user_id=user_id, room_id=room_id))
            await db.flush()

            member_count = await self._member_cnt(db, room_id)

        except PotTogetherError:
            raise
        except IntegrityError as e:
            if not is_duplicate_key(e):
                logger.error(
                    "join_room integrity failure for room_id=%s user_id=%s: %s",
                    room_id, user_id, str(e),
                )
                raise DatabaseError(
                    context={"operation": "join_room", "room_id": room_id, "user_id": user_id}
                )
            # Composite primary key on room_user: a concurrent join won the race
            logger.info("Duplicate join for user %s in room %s: %s", user_id, room_id, str(e))
            raise AlreadyMemberError(user_id, room_id)
        except SQLAlchemyError as e:
            logger.error("join_room failed for room_id=%s user_id=%s: %s", room_id, user_id, str(e))
            raise DatabaseError(
                context={"operation": "join_room", "room_id": room_id, "user_id": user_id}
            )

        logger.info("User %s joined room %s (%d/%d)", user_id, room_id, member_count, room.member_limit)
        return RoomMembership(room_id=room_id, user_id=user_id, member_count=member_count)

    async def leave_room(self, db: AsyncSession, user_id: int, room_id: int) -> RoomMembership:
        """
        Removes user_id from the room.

        Raises:
            NotFoundError: the room does not exist
            NotMemberError: the user is not a member
            InvariantViolationError: member_cnt was already 0 while a
                membership row existed
            DatabaseError: unexpected persistence failure
        """
        try:
            await self._lock_room(db, room_id)

            removed = await db.execute(
                delete(RoomUser)
                .where(RoomUser.user_id == user_id, RoomUser.room_id == room_id)
                .execution_options(synchronize_session=False)
            )
            if removed.rowcount == 0:
                raise NotMemberError(user_id, room_id)

            result = await db.execute(
                update(Room)
                .where(Room.id == room_id, Room.member_cnt > 0)
                .values(member_cnt=Room.member_cnt - 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                logger.error(
                    "member_cnt underflow: room_id=%s user_id=%s had a membership "
                    "but member_cnt=0",
                    room_id, user_id,
                )
                raise InvariantViolationError(
                    context={"operation": "leave_room", "room_id": room_id, "user_id": user_id}
                )

            member_count = await self._member_cnt(db, room_id)

        except PotTogetherError:
            raise
        except SQLAlchemyError as e:
            logger.error("leave_room failed for room_id=%s user_id=%s: %s", room_id, user_id, str(e))
            raise DatabaseError(
                context={"operation": "leave_room", "room_id": room_id, "user_id": user_id}
            )

        logger.info("User %s left room %s (%d members left)", user_id, room_id, member_count)
        return RoomMembership(room_id=room_id, user_id=user_id, member_count=member_count)

    # ── Reads ─────────────────────────────────────────────────────────────
    async def get_room_overview(self, db: AsyncSession, room_id: int, user_id: int) -> RoomOverview:
        return await self.overviews.get_room_overview(db, room_id, user_id)

    @staticmethod
    def _summaries(rooms) -> List[RoomSummary]:
        return [
            RoomSummary(
                room_id=r.id,
                name=r.roomname,
                member_count=r.member_cnt,
                member_limit=r.member_limit,
                privacy=r.privacy,
                category=r.categories,
            )
            for r in rooms
        ]

    async def list_user_rooms(self, db: AsyncSession, user_id: int) -> List[RoomSummary]:
        """Rooms user_id currently belongs to, oldest first."""
        try:
            rooms = await db.scalars(
                select(Room)
                .join(RoomUser, RoomUser.room_id == Room.id)
                .where(RoomUser.user_id == user_id)
                .order_by(Room.id)
                .execution_options(populate_existing=True)
            )
            return self._summaries(rooms.all())
        except SQLAlchemyError as e:
            logger.error("list_user_rooms failed for user_id=%s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "list_user_rooms", "user_id": user_id})

    async def list_public_rooms(self, db: AsyncSession) -> List[RoomSummary]:
        try:
            rooms = await db.scalars(
                select(Room).where(Room.privacy == "public").order_by(Room.id)
                .execution_options(populate_existing=True)
            )
            return self._summaries(rooms.all())
        except SQLAlchemyError as e:
            logger.error("list_public_rooms failed: %s", str(e))
            raise DatabaseError(context={"operation": "list_public_rooms"})

    # ── Reconciliation ────────────────────────────────────────────────────
    async def reconcile_member_counts(
        self, db: AsyncSession, repair: bool = False
    ) -> List[MemberCountDrift]:
        """
        Compares every room's member_cnt with its real membership count.

        Args:
            repair: When True, rewrites drifted counters to the real count.

        Returns:
            One MemberCountDrift per room whose counter disagreed (empty
            when everything is consistent).
        """
        actual = (
            select(RoomUser.room_id, func.count().label("actual"))
            .group_by(RoomUser.room_id)
            .subquery()
        )
        try:
            rows = await db.execute(
                select(Room.id, Room.member_cnt, func.coalesce(actual.c.actual, 0))
                .outerjoin(actual, actual.c.room_id == Room.id)
                .order_by(Room.id)
            )
            drifts = [
                MemberCountDrift(room_id=room_id, stored=stored, actual=real)
                for room_id, stored, real in rows.all()
                if stored != real
            ]

            for drift in drifts:
                logger.warning(
                    "member_cnt drift in room %s: stored=%d actual=%d",
                    drift.room_id, drift.stored, drift.actual,
                )
                if repair:
                    await db.execute(
                        update(Room)
                        .where(Room.id == drift.room_id)
                        .values(member_cnt=drift.actual)
                        .execution_options(synchronize_session=False)
                    )
        except SQLAlchemyError as e:
            logger.error("reconcile_member_counts failed: %s", str(e))
            raise DatabaseError(context={"operation": "reconcile_member_counts"})

        if repair and drifts:
            logger.info("Repaired member_cnt for %d room(s)", len(drifts))
        return drifts


# ── Singleton Instance ────────────────────────────────────────────────────
room_service = RoomService()
