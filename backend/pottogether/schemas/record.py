"""
PotTogether Backend: Record Schemas
====================================
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from pottogether.schemas.common import APIModel


class RecordCreateRequest(APIModel):
    """Body of POST /api/records. The owner comes from the bearer token."""

    room_id: int = Field(alias="roomID")
    pot_id: str = Field(alias="potID")
    ingredient_id: int = Field(alias="ingredientID")


class RecordCreated(APIModel):
    record_id: int = Field(alias="recordID")
    status: int


class RecordDetail(APIModel):
    """
    A record joined with its ingredient and its owner's name.

    image, caption and finish_time stay null until the record is finished.
    """

    record_id: int = Field(alias="recordID")
    user_id: int = Field(alias="userID")
    username: Optional[str] = None
    room_id: int = Field(alias="roomID")
    pot_id: str = Field(alias="potID")
    ingredient_id: int = Field(alias="ingredientID")
    ingredient_name: str = Field(alias="ingredientName")
    ingredient_image: str = Field(alias="ingredientImage")
    image: Optional[str] = None
    caption: Optional[str] = None
    interval: int
    interrupt: int
    status: int = Field(description="0 active, 1 completed, 2 interrupted")
    created_at: datetime = Field(alias="createdAt")
    finish_time: Optional[datetime] = Field(default=None, alias="finishTime")
