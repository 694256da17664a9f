"""
Pydantic schemas for class session request/response validation.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Naive input is taken as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ClassSessionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    category: str = Field(..., min_length=1, max_length=100)
    trainer_id: int
    start_time: datetime
    end_time: datetime
    capacity: int = Field(..., gt=0, le=1000)

    normalize_times = field_validator("start_time", "end_time")(_to_utc)

    @model_validator(mode="after")
    def check_time_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ClassSessionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    trainer_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    capacity: Optional[int] = Field(None, gt=0, le=1000)

    normalize_times = field_validator("start_time", "end_time")(_to_utc)

    @model_validator(mode="after")
    def reject_null_required(self):
        # description is the only column that may be cleared
        cleared = [
            field for field in sorted(self.model_fields_set)
            if field != "description" and getattr(self, field) is None
        ]
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ClassSessionResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    category: str
    trainer_id: int
    start_time: datetime
    end_time: datetime
    capacity: int
    confirmed_count: int
    available_seats: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ClassSessionListResponse(BaseModel):
    sessions: list[ClassSessionResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
