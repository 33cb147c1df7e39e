"""
PotTogether Backend: User SQLAlchemy Model
===========================================

What:  ORM model for the `user` table.
Who:   Owned by the authentication subsystem. The room and record services
       only read identity fields and update `level` / `total_time` when a
       record completes.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from pottogether.database import Base


class User(Base):
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Index into the client's avatar set; nullable for accounts created
    # before avatars existed
    avatar: Mapped[int | None] = mapped_column(Integer, nullable=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # ── Progress ──────────────────────────────────────────────────────────
    # Derived from total_time (seconds of completed cooking), updated in the
    # same transaction that completes a record
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

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', level={self.level})>"
