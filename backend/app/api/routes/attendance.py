"""
Attendance and roster endpoints for staff.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.attendance import AttendanceUpdate, AttendanceResponse
from app.schemas.roster import RosterResponse
from app.services.cache_service import invalidate_session_cache
from app.services.interfaces.notification import NotificationGateway
from app.services.notification_service import get_notification_gateway
from app.services.roster_service import build_roster
from app.services.scheduling_service import change_attendance

router = APIRouter(prefix="/classes/{session_id}", tags=["Attendance"])


@router.patch("/attendance/{booking_id}", response_model=AttendanceResponse)
async def update_attendance(
    session_id: int,
    update: AttendanceUpdate,
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    gateway: NotificationGateway = Depends(get_notification_gateway),
):
    """
    Check in, mark no-show, cancel or reinstate a booking.
    Returns the server's post-transition state.
    """
    record, booking = await change_attendance(
        db, gateway, session_id, booking_id, update.status, reason=update.reason
    )
    await invalidate_session_cache()
    return AttendanceResponse(
        booking_id=booking.id,
        status=record.status,
        booking_status=booking.status,
        checked_in_at=record.checked_in_at,
        marked_at=record.marked_at,
    )


@router.get("/roster", response_model=RosterResponse)
async def get_roster(
    session_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Live roster: bookings, attendance, waitlist and occupancy."""
    return await build_roster(db, session_id)
