"""
PotTogether Backend: Ingredient SQLAlchemy Model
=================================================

Catalog entry a record cooks. Read-mostly; rows are added by the
administrative endpoint only.

`requirement` is the unlock tag, e.g. "level3". The overview builder looks
up the ingredient whose requirement is `level<N+1>` to show what the next
level unlocks.
"""

from sqlalchemy import Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from pottogether.database import Base


class Ingredient(Base):
    __tablename__ = "ingredient"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    image: Mapped[str] = mapped_column(String(512), nullable=False, default="")

    # Nominal cooking duration in seconds
    time_interval: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    requirement: Mapped[str] = mapped_column(
        String(32), nullable=False, default="", index=True
    )

    def __repr__(self) -> str:
        return f"<Ingredient(id={self.id}, name='{self.name}')>"
