"""
PotTogether Backend: ORM Models
================================

Importing this package registers every table on `Base.metadata`, which is
what Alembic autogeneration and `Database.create_all()` rely on.
"""

from pottogether.models.ingredient import Ingredient
from pottogether.models.record import Record, RecordStatus
from pottogether.models.room import Pot, Room, RoomUser
from pottogether.models.user import User

__all__ = [
    "Ingredient",
    "Pot",
    "Record",
    "RecordStatus",
    "Room",
    "RoomUser",
    "User",
]
