"""
PotTogether Backend: Record Service (Lifecycle Manager)
========================================================

What:  Starts cooking records, finishes them exactly once, and lists them.
How:   Completion is a single UPDATE conditioned on `status = ACTIVE`. If it
       touches no row, a follow-up lookup tells "missing" apart from
       "already finished". A lost race therefore reports
       AlreadyCompletedError and never overwrites the first result.
Who:   Called by the records and rooms routes.

Progress Side Effect:
    Finishing with status COMPLETED adds the interval to the owner's and the
    room's total_time and recomputes both levels in the same transaction:
        total_time = total_time + :interval
        level      = 1 + (total_time + :interval) // level_step_seconds
    INTERRUPTED records keep their interval for the day series but do not
    count towards levels.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import case, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pottogether.config import settings
from pottogether.exceptions import (
    AlreadyCompletedError,
    DatabaseError,
    NotFoundError,
    PotTogetherError,
    ValidationError,
)
from pottogether.models import Ingredient, Pot, Record, RecordStatus, Room, User
from pottogether.schemas.record import RecordCreated, RecordDetail
from pottogether.services.calendar import ensure_utc, utcnow

logger = logging.getLogger(__name__)

OWNER_KINDS = ("user", "room")


class RecordService:
    """
    Business logic for the record lifecycle.

    Args:
        clock: Returns the current aware UTC time; used for created_at and
            finish_time so tests can pin both.
        level_step: Seconds per level; defaults to settings.level_step_seconds.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow, level_step: Optional[int] = None):
        self.clock = clock
        self.level_step = level_step or settings.level_step_seconds

    # ── Queries ───────────────────────────────────────────────────────────
    @staticmethod
    def _detail_query():
        # Columns rather than the Record entity: completion uses
        # synchronize_session=False, so an identity-mapped Record could be stale
        return (
            select(
                Record.id,
                Record.user_id,
                User.username,
                Record.room_id,
                Record.pot_id,
                Record.ingredient_id,
                Ingredient.name.label("ingredient_name"),
                Ingredient.image.label("ingredient_image"),
                Record.image,
                Record.caption,
                Record.time_interval,
                Record.interrupt,
                Record.status,
                Record.created_at,
                Record.finish_time,
            )
            .join(Ingredient, Ingredient.id == Record.ingredient_id)
            .outerjoin(User, User.id == Record.user_id)
        )

    @staticmethod
    def _to_detail(row) -> RecordDetail:
        return RecordDetail(
            record_id=row.id,
            user_id=row.user_id,
            username=row.username,
            room_id=row.room_id,
            pot_id=row.pot_id,
            ingredient_id=row.ingredient_id,
            ingredient_name=row.ingredient_name,
            ingredient_image=row.ingredient_image,
            image=row.image,
            caption=row.caption,
            interval=row.time_interval,
            interrupt=row.interrupt,
            status=row.status,
            created_at=ensure_utc(row.created_at),
            finish_time=ensure_utc(row.finish_time) if row.finish_time else None,
        )

    # ── Create ────────────────────────────────────────────────────────────
    async def create_record(
        self,
        db: AsyncSession,
        user_id: int,
        room_id: int,
        pot_id: str,
        ingredient_id: int,
    ) -> RecordCreated:
        """
        Starts a record in the ACTIVE state.

        A user may have several ACTIVE records at once; nothing here
        prevents it.

        Raises:
            NotFoundError: the room, the pot (within that room) or the
                ingredient does not exist
            DatabaseError: the insert failed
        """
        try:
            if await db.scalar(select(Room.id).where(Room.id == room_id)) is None:
                raise NotFoundError("room", room_id)
            pot = await db.scalar(
                select(Pot.id).where(Pot.id == pot_id, Pot.room_id == room_id)
            )
            if pot is None:
                raise NotFoundError("pot", pot_id)
            if await db.scalar(select(Ingredient.id).where(Ingredient.id == ingredient_id)) is None:
                raise NotFoundError("ingredient", ingredient_id)

            record = Record(
                user_id=user_id,
                room_id=room_id,
                pot_id=pot_id,
                ingredient_id=ingredient_id,
                time_interval=0,
                interrupt=0,
                status=RecordStatus.ACTIVE,
                created_at=self.clock(),
            )
            db.add(record)
            await db.flush()

        except PotTogetherError:
            raise
        except SQLAlchemyError as e:
            logger.error(
                "create_record failed for user_id=%s room_id=%s: %s", user_id, room_id, str(e)
            )
            raise DatabaseError(
                context={"operation": "create_record", "user_id": user_id, "room_id": room_id}
            )

        logger.info(
            "Record %s started by user %s in room %s (ingredient=%s)",
            record.id, user_id, room_id, ingredient_id,
        )
        return RecordCreated(record_id=record.id, status=RecordStatus.ACTIVE)

    # ── Complete ──────────────────────────────────────────────────────────
    async def complete_record(
        self,
        db: AsyncSession,
        record_id: int,
        image: Optional[str],
        caption: Optional[str],
        interval: int,
        interrupt: int,
        status: int,
    ) -> RecordDetail:
        """
        Moves an ACTIVE record to COMPLETED (1) or INTERRUPTED (2).

        Returns:
            The record as stored after the transition

        Raises:
            ValidationError: status not terminal, negative interval or interrupt
            NotFoundError: no record with this id
            AlreadyCompletedError: the record already left the ACTIVE state
            DatabaseError: unexpected persistence failure
        """
        if status not in RecordStatus.terminal():
            raise ValidationError(
                message="status must be 1 (completed) or 2 (interrupted)",
                field="status",
                context={"status": status},
            )
        if interval is None or interval < 0:
            raise ValidationError(message="interval must be zero or positive", field="interval")
        if interrupt is None or interrupt < 0:
            raise ValidationError(message="interrupt must be zero or positive", field="interrupt")

        try:
            result = await db.execute(
                update(Record)
                .where(Record.id == record_id, Record.status == RecordStatus.ACTIVE)
                .values(
                    image=image,
                    caption=caption,
                    time_interval=interval,
                    interrupt=interrupt,
                    status=int(status),
                    finish_time=self.clock(),
                )
                .execution_options(synchronize_session=False)
            )

            if result.rowcount != 1:
                current = await db.scalar(select(Record.status).where(Record.id == record_id))
                if current is None:
                    raise NotFoundError("record", record_id)
                raise AlreadyCompletedError(record_id, current)

            if status == RecordStatus.COMPLETED and interval > 0:
                await self._add_progress(db, record_id, interval)

            row = (
                await db.execute(self._detail_query().where(Record.id == record_id))
            ).one()

        except PotTogetherError:
            raise
        except SQLAlchemyError as e:
            logger.error("complete_record failed for record_id=%s: %s", record_id, str(e))
            raise DatabaseError(context={"operation": "complete_record", "record_id": record_id})

        logger.info(
            "Record %s finished with status=%d interval=%ds", record_id, status, interval
        )
        return self._to_detail(row)

    async def _add_progress(self, db: AsyncSession, record_id: int, interval: int) -> None:
        owner = (
            await db.execute(
                select(Record.user_id, Record.room_id).where(Record.id == record_id)
            )
        ).one()

        await db.execute(
            update(User)
            .where(User.id == owner.user_id)
            .values(
                total_time=User.total_time + interval,
                level=1 + (User.total_time + interval) // self.level_step,
            )
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            update(Room)
            .where(Room.id == owner.room_id)
            .values(
                total_time=Room.total_time + interval,
                level=1 + (Room.total_time + interval) // self.level_step,
            )
            .execution_options(synchronize_session=False)
        )

    # ── Reads ─────────────────────────────────────────────────────────────
    async def list_records(self, db: AsyncSession, owner_kind: str, owner_id: int) -> List[RecordDetail]:
        """
        All records of a user or of a room.

        Ordering: ACTIVE records first, then finished ones; creation order
        (id ascending) within each group.
        """
        if owner_kind not in OWNER_KINDS:
            raise ValidationError(
                message=f"owner_kind must be one of: {', '.join(OWNER_KINDS)}",
                field="owner_kind",
            )
        owner_column = Record.user_id if owner_kind == "user" else Record.room_id

        try:
            rows = await db.execute(
                self._detail_query()
                .where(owner_column == owner_id)
                .order_by(
                    case((Record.status == RecordStatus.ACTIVE, 0), else_=1),
                    Record.id,
                )
            )
            return [self._to_detail(row) for row in rows.all()]
        except SQLAlchemyError as e:
            logger.error("list_records failed for %s=%s: %s", owner_kind, owner_id, str(e))
            raise DatabaseError(
                context={"operation": "list_records", "owner_kind": owner_kind, "owner_id": owner_id}
            )

    async def get_record_detail(self, db: AsyncSession, record_id: int) -> RecordDetail:
        """
        Raises:
            NotFoundError: no record with this id
        """
        try:
            row = (
                await db.execute(self._detail_query().where(Record.id == record_id))
            ).first()
        except SQLAlchemyError as e:
            logger.error("get_record_detail failed for record_id=%s: %s", record_id, str(e))
            raise DatabaseError(context={"operation": "get_record_detail", "record_id": record_id})

        if row is None:
            raise NotFoundError("record", record_id)
        return self._to_detail(row)


# ── Singleton Instance ────────────────────────────────────────────────────
record_service = RecordService()
