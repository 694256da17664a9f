"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.models.booking import Booking
from app.services.booking_ledger import BookingOutcome, BookingResult


class BookingCreate(BaseModel):
    member_id: int = Field(..., gt=0)


class BookingOutcomeResponse(BaseModel):
    """CONFIRMED carries the booking id, WAITLISTED the waitlist entry id."""

    status: BookingOutcome
    id: int
    class_session_id: int
    member_id: int
    waitlist_position: Optional[int] = None

    @classmethod
    def from_result(cls, result: BookingResult) -> "BookingOutcomeResponse":
        position = result.waitlist_entry.position if result.waitlist_entry is not None else None
        return cls(
            status=result.outcome,
            id=result.id,
            class_session_id=result.session_id,
            member_id=result.member_id,
            waitlist_position=position,
        )


class BookingResponse(BaseModel):
    id: int
    member_id: int
    class_session_id: int
    status: str
    attendance_status: Optional[str]
    cancelled_at: Optional[datetime]
    cancellation_reason: Optional[str]
    created_at: datetime

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            member_id=booking.member_id,
            class_session_id=booking.class_session_id,
            status=booking.status,
            attendance_status=booking.attendance.status if booking.attendance else None,
            cancelled_at=booking.cancelled_at,
            cancellation_reason=booking.cancellation_reason,
            created_at=booking.created_at,
        )


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: str
    attendance_status: str
