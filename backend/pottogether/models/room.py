"""
PotTogether Backend: Room, Pot and Membership Models
=====================================================

What:  ORM models for the `room`, `pot` and `room_user` tables.
Who:   Written by RoomService; read by the overview builder.

Invariants:
    - room.member_cnt == number of room_user rows for the room, at all times.
      Every statement that inserts or deletes a membership changes the
      counter in the same transaction.
    - member_cnt never exceeds member_limit; member_limit never changes.
    - (user_id, room_id) is the primary key of room_user, so a user belongs
      to a room at most once.

current_pot carries the pot id without a foreign key: pot.room_id already
points at the room, and a second FK in the other direction would make the
insert order circular.
"""

from datetime import datetime, timezone
from typing import List

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from pottogether.database import Base

PRIVACY_VALUES = ("public", "private")
CATEGORY_SEPARATOR = "|"


class Room(Base):
    __tablename__ = "room"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    roomname: Mapped[str] = mapped_column(String(64), nullable=False)
    current_pot: Mapped[str] = mapped_column(String(36), nullable=False)

    # ── Membership Counter ────────────────────────────────────────────────
    member_cnt: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    member_limit: Mapped[int] = mapped_column(Integer, nullable=False)

    privacy: Mapped[str] = mapped_column(String(16), nullable=False, default="public")

    # Tags joined with CATEGORY_SEPARATOR, e.g. "soup|vegan"
    category: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    level: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default=text("1")
    )
    total_time: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("member_limit > 0", name="ck_room_member_limit_positive"),
        CheckConstraint(
            "member_cnt >= 0 AND member_cnt <= member_limit",
            name="ck_room_member_cnt_range",
        ),
    )

    @property
    def categories(self) -> List[str]:
        return [tag for tag in self.category.split(CATEGORY_SEPARATOR) if tag]

    def __repr__(self) -> str:
        return (
            f"<Room(id={self.id}, roomname='{self.roomname}', "
            f"members={self.member_cnt}/{self.member_limit})>"
        )


class Pot(Base):
    __tablename__ = "pot"

    # UUID4 string generated by RoomService
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    room_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("room.id"), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<Pot(id='{self.id}', room_id={self.room_id})>"


class RoomUser(Base):
    __tablename__ = "room_user"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user.id"), primary_key=True
    )
    room_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("room.id"), primary_key=True, index=True
    )

    def __repr__(self) -> str:
        return f"<RoomUser(user_id={self.user_id}, room_id={self.room_id})>"
