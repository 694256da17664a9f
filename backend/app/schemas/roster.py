"""
Pydantic schemas for the read-only class roster.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.schemas.class_session import ClassSessionResponse


class RosterMember(BaseModel):
    booking_id: int
    member_id: int
    member_name: str
    member_email: str
    booking_status: str
    attendance_status: str
    booked_at: datetime
    checked_in_at: Optional[datetime]


class RosterWaitlistEntry(BaseModel):
    entry_id: int
    member_id: int
    member_name: str
    position: int
    queue_rank: int
    joined_at: datetime


class RosterSummary(BaseModel):
    capacity: int
    confirmed: int
    cancelled: int
    available_seats: int
    occupancy_rate: float
    waitlisted: int
    by_attendance: dict[str, int]


class RosterResponse(BaseModel):
    session: ClassSessionResponse
    members: list[RosterMember]
    waitlist: list[RosterWaitlistEntry]
    summary: RosterSummary
