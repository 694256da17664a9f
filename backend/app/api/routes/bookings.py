"""
Booking endpoints with concurrency-safe seat reservation.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.booking import BookingCreate, BookingOutcomeResponse, BookingCancelResponse
from app.services.cache_service import invalidate_session_cache
from app.services.interfaces.notification import NotificationGateway
from app.services.notification_service import get_notification_gateway
from app.services.scheduling_service import book_class, cancel_booking
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/classes/{session_id}/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingOutcomeResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    session_id: int,
    booking_data: BookingCreate,
    db: AsyncSession = Depends(get_db),
    gateway: NotificationGateway = Depends(get_notification_gateway),
):
    """
    Book a seat in a class session.

    The capacity check and seat claim are one atomic step. A full class puts
    the member on the waitlist and still answers 201 with status WAITLISTED.
    """
    result = await book_class(db, gateway, session_id, booking_data.member_id)
    await invalidate_session_cache()
    return BookingOutcomeResponse.from_result(result)


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    session_id: int,
    booking_id: int,
    reason: Optional[str] = Query(None, max_length=50),
    db: AsyncSession = Depends(get_db),
    gateway: NotificationGateway = Depends(get_notification_gateway),
):
    """Cancel a booking, release the seat and promote the next waiting member. Idempotent."""
    booking = await cancel_booking(db, gateway, session_id, booking_id, reason=reason)
    await invalidate_session_cache()
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        status=booking.status,
        attendance_status=booking.attendance.status,
    )
