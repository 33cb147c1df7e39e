"""
PotTogether Backend: Shared Response Schemas
=============================================

What:  The uniform response envelope plus small blocks reused by several
       overviews.
How:   Python attribute names are snake_case; JSON keys are the camelCase
       aliases the clients already consume. `populate_by_name` lets the
       services build models with the Python names.

Envelope example:
    {"isSuccess": true, "data": {"roomID": 1, "potID": "3f0c..."}, "message": null}
    {"isSuccess": false, "data": null, "message": "Room 1 is full"}
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

DataT = TypeVar("DataT")


class APIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class Envelope(APIModel, Generic[DataT]):
    """Every response body, success or failure, has this shape."""

    is_success: bool = Field(alias="isSuccess")
    data: Optional[DataT] = Field(default=None)
    message: Optional[str] = Field(default=None)

    @classmethod
    def ok(cls, data: Optional[DataT] = None, message: Optional[str] = None):
        return cls(is_success=True, data=data, message=message)

    @classmethod
    def fail(cls, message: str):
        return cls(is_success=False, data=None, message=message)


class LevelInfo(APIModel):
    """Progress block shared by the user and room overviews."""

    level: int
    total_time: int = Field(alias="totalTime", description="Completed cooking seconds")
    next: Optional[str] = Field(
        default=None,
        description="Image of the ingredient the next level unlocks; null at the top level",
    )


class RecordThumb(APIModel):
    record_id: int = Field(alias="recordID")
    image: str = Field(description="Ingredient image URL")


class HealthResponse(APIModel):
    """Returned by GET /health for container probes and load balancers."""

    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str
    database: str = Field(description="connected, disconnected")
    storage: str = Field(description="writable, unavailable")
    uptime_seconds: float = Field(alias="uptimeSeconds")
