"""
Attendance state machine for a single booking.

    BOOKED    -> ATTENDED | NO_SHOW | CANCELLED
    ATTENDED  -> BOOKED | NO_SHOW | CANCELLED
    NO_SHOW   -> BOOKED | ATTENDED | CANCELLED
    CANCELLED -> BOOKED (only if a seat is free)

Requesting the current state is a no-op. Entering CANCELLED from a booking
that holds a seat releases it through the ledger (which promotes from the
waitlist). Leaving CANCELLED goes back through the ledger's capacity check and
fails with CapacityExceededError when the session is full.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import IllegalTransitionError
from app.core.logging import get_logger
from app.core.metrics import record_attendance_transition
from app.db.base import utcnow
from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.services.booking_ledger import BookingLedger

logger = get_logger(__name__)

ALLOWED_TRANSITIONS: dict[AttendanceStatus, frozenset[AttendanceStatus]] = {
    AttendanceStatus.BOOKED: frozenset(
        {AttendanceStatus.ATTENDED, AttendanceStatus.NO_SHOW, AttendanceStatus.CANCELLED}
    ),
    AttendanceStatus.ATTENDED: frozenset(
        {AttendanceStatus.BOOKED, AttendanceStatus.NO_SHOW, AttendanceStatus.CANCELLED}
    ),
    AttendanceStatus.NO_SHOW: frozenset(
        {AttendanceStatus.BOOKED, AttendanceStatus.ATTENDED, AttendanceStatus.CANCELLED}
    ),
    AttendanceStatus.CANCELLED: frozenset({AttendanceStatus.BOOKED}),
}


def check_transition(current: AttendanceStatus, target: AttendanceStatus) -> bool:
    """True if the transition changes state, False for a no-op. Raises if illegal."""
    if current is target:
        return False
    if target not in ALLOWED_TRANSITIONS[current]:
        raise IllegalTransitionError(
            f"Cannot change attendance from {current.value} to {target.value}"
        )
    return True


class AttendanceStateMachine:
    def __init__(self, db: AsyncSession, ledger: Optional[BookingLedger] = None):
        self.db = db
        self.ledger = ledger or BookingLedger(db)

    async def transition(
        self,
        booking_id: int,
        target: AttendanceStatus,
        session_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> AttendanceRecord:
        """Apply a transition and return the authoritative record."""
        booking = await self.ledger.get_booking(booking_id, session_id)
        record = booking.attendance
        current = AttendanceStatus(record.status)

        if not check_transition(current, target):
            return record

        now = utcnow()
        if target is AttendanceStatus.CANCELLED:
            record.status = target.value
            record.marked_at = now
            if booking.holds_seat:
                release_reason = reason or (
                    "no_show" if current is AttendanceStatus.NO_SHOW else "cancelled"
                )
                await self.ledger.release_seat(booking.id, release_reason)
        else:
            if not booking.holds_seat:
                await self.ledger.reconfirm(booking)
            record.status = target.value
            record.marked_at = now
            record.checked_in_at = now if target is AttendanceStatus.ATTENDED else None

        await self.db.flush()

        record_attendance_transition(current.value, target.value)
        logger.info(
            "attendance_changed",
            booking_id=booking.id,
            session_id=booking.class_session_id,
            from_status=current.value,
            to_status=target.value,
        )
        return record
