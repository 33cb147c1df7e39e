"""Create core tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Users, rooms with their pots and memberships, the ingredient catalog
       and cooking records.
How:   Portable column types only, so the same revision runs on PostgreSQL
       and on SQLite for local development.

Rollback: downgrade() drops every table (all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("avatar", sa.Integer(), nullable=True),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("level", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("total_time", sa.Integer(), server_default=sa.text("0"), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "room",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("roomname", sa.String(64), nullable=False),
        sa.Column("current_pot", sa.String(36), nullable=False),
        sa.Column("member_cnt", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("member_limit", sa.Integer(), nullable=False),
        sa.Column("privacy", sa.String(16), nullable=False),
        sa.Column(
            "category",
            sa.String(255),
            nullable=False,
            comment="Tags joined with '|'",
        ),
        sa.Column("level", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("total_time", sa.Integer(), server_default=sa.text("0"), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("member_limit > 0", name="ck_room_member_limit_positive"),
        # member_cnt stays within [0, member_limit]
        sa.CheckConstraint(
            "member_cnt >= 0 AND member_cnt <= member_limit",
            name="ck_room_member_cnt_range",
        ),
    )

    op.create_table(
        "pot",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("room_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["room_id"], ["room.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pot_room_id", "pot", ["room_id"])

    op.create_table(
        "room_user",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("room_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.ForeignKeyConstraint(["room_id"], ["room.id"]),
        # One membership per (user, room)
        sa.PrimaryKeyConstraint("user_id", "room_id"),
    )
    op.create_index("ix_room_user_room_id", "room_user", ["room_id"])

    op.create_table(
        "ingredient",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("image", sa.String(512), nullable=False),
        sa.Column("time_interval", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column(
            "requirement",
            sa.String(32),
            nullable=False,
            comment="Unlock tag such as 'level2'; empty for starters",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ingredient_requirement", "ingredient", ["requirement"])

    op.create_table(
        "record",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("room_id", sa.Integer(), nullable=False),
        sa.Column("pot_id", sa.String(36), nullable=False),
        sa.Column("ingredient_id", sa.Integer(), nullable=False),
        sa.Column("image", sa.String(512), nullable=True),
        sa.Column("caption", sa.Text(), nullable=True),
        sa.Column("time_interval", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("interrupt", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column(
            "status",
            sa.Integer(),
            server_default=sa.text("0"),
            nullable=False,
            comment="0 active, 1 completed, 2 interrupted",
        ),
        _created_at(),
        sa.Column("finish_time", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.ForeignKeyConstraint(["room_id"], ["room.id"]),
        sa.ForeignKeyConstraint(["pot_id"], ["pot.id"]),
        sa.ForeignKeyConstraint(["ingredient_id"], ["ingredient.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_record_user_id", "record", ["user_id"])
    op.create_index("idx_record_room_id", "record", ["room_id"])
    # Week / month series scan a created_at window
    op.create_index("idx_record_created_at", "record", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_record_created_at", table_name="record")
    op.drop_index("idx_record_room_id", table_name="record")
    op.drop_index("idx_record_user_id", table_name="record")
    op.drop_table("record")
    op.drop_index("ix_ingredient_requirement", table_name="ingredient")
    op.drop_table("ingredient")
    op.drop_index("ix_room_user_room_id", table_name="room_user")
    op.drop_table("room_user")
    op.drop_index("ix_pot_room_id", table_name="pot")
    op.drop_table("pot")
    op.drop_table("room")
    op.drop_table("user")
