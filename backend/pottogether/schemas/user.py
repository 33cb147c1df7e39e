"""
PotTogether Backend: User Overview & Profile Schemas
=====================================================

`week` and `month` are sparse series: one entry per date with at least one
record, ascending. `length` is the summed interval in seconds.
"""

import datetime as dt
from typing import List, Optional

from pydantic import Field

from pottogether.schemas.common import APIModel, LevelInfo, RecordThumb


class DayTotal(APIModel):
    date: dt.date
    length: int


class UserOverview(APIModel):
    user_id: int = Field(alias="userID")
    level: LevelInfo
    today: List[RecordThumb] = Field(description="Records finished today")
    week: List[DayTotal]
    month: List[DayTotal]


class UserStatus(APIModel):
    code: int = Field(description="Status of the most recent record; 0 when none")
    ingredient: str = Field(default="")


class UserProfile(APIModel):
    user_id: int = Field(alias="userID")
    name: str
    avatar: Optional[int] = None
    cooking_time: int = Field(
        alias="cookingTime",
        description="Seconds since the latest active record started, 0 when idle",
    )
    status: UserStatus
    done: List[str] = Field(description="Last five completed ingredients, newest first")
