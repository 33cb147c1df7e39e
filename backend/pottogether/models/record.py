"""
PotTogether Backend: Record SQLAlchemy Model
=============================================

What:  ORM model for the `record` table, one user's timed cooking attempt.
Who:   Written by RecordService; aggregated by OverviewService.

Lifecycle:
    1. Created by "start cooking": status=ACTIVE, interval=0, interrupt=0,
       image / caption / finish_time NULL
    2. Finished exactly once: status becomes COMPLETED or INTERRUPTED and
       image, caption, interval, interrupt and finish_time are filled in.
       The UPDATE is conditioned on status=ACTIVE, so a second finish
       changes nothing.
    3. Never deleted

Query Patterns:
    - Per user / per room listings: indexes on user_id and room_id
    - Week / month series: range scan on created_at
"""

import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from pottogether.database import Base


class RecordStatus(enum.IntEnum):
    ACTIVE = 0
    COMPLETED = 1
    INTERRUPTED = 2

    @classmethod
    def terminal(cls) -> tuple:
        return (cls.COMPLETED, cls.INTERRUPTED)


class Record(Base):
    __tablename__ = "record"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ── Owners ────────────────────────────────────────────────────────────
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("user.id"), nullable=False)
    room_id: Mapped[int] = mapped_column(Integer, ForeignKey("room.id"), nullable=False)
    pot_id: Mapped[str] = mapped_column(String(36), ForeignKey("pot.id"), nullable=False)
    ingredient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ingredient.id"), nullable=False
    )

    # ── Completion Payload ────────────────────────────────────────────────
    # NULL until the record is finished
    image: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    caption: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Seconds actually cooked
    time_interval: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    interrupt: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    status: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=RecordStatus.ACTIVE,
        server_default=text("0"),
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )
    finish_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("idx_record_user_id", "user_id"),
        Index("idx_record_room_id", "room_id"),
        Index("idx_record_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Record(id={self.id}, user_id={self.user_id}, status={self.status})>"
