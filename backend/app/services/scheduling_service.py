"""
Unit-of-work coordinator for class scheduling.

Every mutating operation follows the same shape:

  1. take the session's write lock
  2. run the ledger / waitlist / attendance operation
  3. commit (or roll back on error) while still holding the lock
  4. release the lock, then dispatch member notifications

Step 4 is best effort; a failed notification never reverts a committed
booking or promotion.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateBookingError, SchedulingError, SessionFullRaceError
from app.core.logging import get_logger
from app.core.metrics import booking_latency, record_booking_attempt
from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.models.booking import Booking
from app.models.class_session import ClassSession
from app.models.waitlist import WaitlistEntry
from app.schemas.class_session import ClassSessionUpdate
from app.services.attendance_service import AttendanceStateMachine
from app.services.booking_ledger import BookingLedger, BookingResult
from app.services.class_schedule_service import deactivate_class_session, update_class_session
from app.services.interfaces.notification import NotificationGateway
from app.services.notification_service import dispatch_notices
from app.services.session_locks import session_locks
from app.services.waitlist_queue import WaitlistQueue

logger = get_logger(__name__)


@asynccontextmanager
async def unit_of_work(db: AsyncSession, session_id: int) -> AsyncIterator[None]:
    async with session_locks.hold(session_id):
        try:
            yield
            await db.commit()
        except Exception:
            await db.rollback()
            raise


async def book_class(
    db: AsyncSession,
    gateway: NotificationGateway,
    session_id: int,
    member_id: int,
) -> BookingResult:
    started = time.perf_counter()
    ledger = BookingLedger(db)
    try:
        async with unit_of_work(db, session_id):
            result = await ledger.attempt_book(session_id, member_id)
    except DuplicateBookingError:
        record_booking_attempt("duplicate")
        raise
    except SessionFullRaceError:
        record_booking_attempt("contention")
        raise
    except SchedulingError:
        record_booking_attempt("rejected")
        raise
    finally:
        booking_latency.observe(time.perf_counter() - started)

    record_booking_attempt(result.outcome.value.lower())
    await dispatch_notices(gateway, ledger.notices)
    return result


async def change_attendance(
    db: AsyncSession,
    gateway: NotificationGateway,
    session_id: int,
    booking_id: int,
    target: AttendanceStatus,
    reason: Optional[str] = None,
) -> tuple[AttendanceRecord, Booking]:
    """Returns the post-transition record and its booking."""
    ledger = BookingLedger(db)
    machine = AttendanceStateMachine(db, ledger)
    async with unit_of_work(db, session_id):
        record = await machine.transition(booking_id, target, session_id=session_id, reason=reason)
        booking = await ledger.get_booking(booking_id, session_id)

    await dispatch_notices(gateway, ledger.notices)
    return record, booking


async def cancel_booking(
    db: AsyncSession,
    gateway: NotificationGateway,
    session_id: int,
    booking_id: int,
    reason: Optional[str] = None,
) -> Booking:
    """Cancel through the attendance state machine. Cancelling twice is a no-op."""
    _, booking = await change_attendance(
        db, gateway, session_id, booking_id, AttendanceStatus.CANCELLED, reason=reason
    )
    return booking


async def promote_waitlist(
    db: AsyncSession,
    gateway: NotificationGateway,
    session_id: int,
) -> Optional[WaitlistEntry]:
    """Manual admin trigger: one promotion attempt, same rules as automatic promotion."""
    ledger = BookingLedger(db)
    async with unit_of_work(db, session_id):
        session = await ledger.get_session(session_id, for_update=True)
        entry = await ledger.promoter.promote_next(session.id)

    await dispatch_notices(gateway, ledger.notices)
    return entry


async def withdraw_from_waitlist(db: AsyncSession, session_id: int, entry_id: int) -> WaitlistEntry:
    async with unit_of_work(db, session_id):
        entry = await WaitlistQueue(db).withdraw(entry_id, session_id)
    return entry


async def update_class(
    db: AsyncSession,
    gateway: NotificationGateway,
    session_id: int,
    data: ClassSessionUpdate,
) -> ClassSession:
    """Administrative edit. A capacity increase is filled from the waitlist straight away."""
    ledger = BookingLedger(db)
    async with unit_of_work(db, session_id):
        session, previous_capacity = await update_class_session(db, session_id, data)
        if session.capacity > previous_capacity and session.is_active:
            promoted = await ledger.promoter.fill_open_seats(session_id)
            if promoted:
                session = await ledger.get_session(session_id)
                logger.info("capacity_increase_promoted", session_id=session_id, promoted=len(promoted))

    await dispatch_notices(gateway, ledger.notices)
    return session


async def deactivate_class(db: AsyncSession, session_id: int) -> ClassSession:
    async with unit_of_work(db, session_id):
        session = await deactivate_class_session(db, session_id)
    return session


async def sweep_stale_waitlists(db: AsyncSession) -> int:
    """
    Expire WAITING entries of sessions that have already started.
    Each session is expired under its own lock, one commit per session.
    """
    queue = WaitlistQueue(db)
    session_ids = await queue.sessions_with_stale_entries()
    await db.rollback()

    expired = 0
    for session_id in session_ids:
        async with unit_of_work(db, session_id):
            expired += await queue.expire_for_session(session_id, reason="session_started")

    if expired:
        logger.info("waitlist_sweep_completed", sessions=len(session_ids), expired=expired)
    return expired
