"""
Pydantic schemas for attendance transitions.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.models.attendance import AttendanceStatus


class AttendanceUpdate(BaseModel):
    status: AttendanceStatus
    reason: Optional[str] = Field(None, max_length=50)


class AttendanceResponse(BaseModel):
    booking_id: int
    status: AttendanceStatus
    booking_status: str
    checked_in_at: Optional[datetime]
    marked_at: Optional[datetime]
