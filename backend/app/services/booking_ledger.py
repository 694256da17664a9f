"""
Booking ledger: confirmed seat occupancy per class session.

CONCURRENCY STRATEGY: Conditional UPDATE with optimistic retry
==============================================================

Problem:
  Two members try to book the last seat simultaneously.
  Both count confirmed bookings = capacity - 1, both insert.
  Result: Overbooking.

Solution:
  ClassSession carries a denormalized `confirmed_count` and a `version`.
  Claiming a seat is one statement:

    UPDATE class_sessions
       SET confirmed_count = confirmed_count + 1, version = version + 1
     WHERE id = :id AND version = :seen_version AND confirmed_count < capacity

  rows_affected == 1 means the seat is ours. rows_affected == 0 means either
  the session filled up (re-read shows it full -> waitlist) or another writer
  got in between (re-read and try again, up to BOOKING_MAX_RETRY_ATTEMPTS,
  then SessionFullRaceError).

  The check and the write are never separate steps visible to other writers.
  The CHECK constraint confirmed_count <= capacity is the final safety net.

  On top of that every mutating call runs under the session's write lock and
  the session row is locked FOR UPDATE, so on PostgreSQL the retry loop only
  matters when something bypasses both.

Seat release goes through the same counter and always hands the session to
the WaitlistPromoter, which fills the seat from the head of the queue.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import (
    BookingNotFoundError,
    CapacityExceededError,
    DuplicateBookingError,
    MemberNotFoundError,
    SessionFullRaceError,
    SessionInactiveError,
    SessionNotFoundError,
)
from app.core.logging import get_logger
from app.core.metrics import seat_claim_retries, seat_releases
from app.db.base import as_utc, utcnow
from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.models.booking import Booking, BookingStatus
from app.models.class_session import ClassSession
from app.models.member import Member
from app.models.waitlist import WaitlistEntry, WaitlistStatus
from app.services.interfaces.notification import Notice, NoticeKind
from app.services.waitlist_promoter import WaitlistPromoter
from app.services.waitlist_queue import WaitlistQueue

logger = get_logger(__name__)
settings = get_settings()


class BookingOutcome(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    WAITLISTED = "WAITLISTED"


@dataclass
class BookingResult:
    outcome: BookingOutcome
    session_id: int
    member_id: int
    booking: Optional[Booking] = None
    waitlist_entry: Optional[WaitlistEntry] = None

    @property
    def id(self) -> int:
        if self.booking is not None:
            return self.booking.id
        return self.waitlist_entry.id


class BookingLedger:
    """
    One ledger per unit of work. Notices produced while it runs (booking
    confirmations, promotions) collect in `notices` and are dispatched by the
    caller after commit.
    """

    def __init__(
        self,
        db: AsyncSession,
        waitlist: Optional[WaitlistQueue] = None,
        max_attempts: Optional[int] = None,
    ):
        self.db = db
        self.waitlist = waitlist or WaitlistQueue(db)
        self.max_attempts = max_attempts or settings.BOOKING_MAX_RETRY_ATTEMPTS
        self.notices: list[Notice] = []
        self.promoter = WaitlistPromoter(self)

    async def get_session(self, session_id: int, for_update: bool = False) -> ClassSession:
        query = select(ClassSession).where(ClassSession.id == session_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query.execution_options(populate_existing=True))
        session = result.scalar_one_or_none()
        if not session:
            raise SessionNotFoundError(f"Class session {session_id} not found")
        return session

    async def get_booking(self, booking_id: int, session_id: Optional[int] = None) -> Booking:
        query = select(Booking).where(Booking.id == booking_id)
        if session_id is not None:
            query = query.where(Booking.class_session_id == session_id)
        result = await self.db.execute(query.execution_options(populate_existing=True))
        booking = result.scalar_one_or_none()
        if not booking:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    async def find_booking(self, session_id: int, member_id: int) -> Optional[Booking]:
        result = await self.db.execute(
            select(Booking)
            .where(Booking.class_session_id == session_id, Booking.member_id == member_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def attempt_book(self, session_id: int, member_id: int) -> BookingResult:
        """
        Confirm a seat if one is free, otherwise join the waitlist.
        Waitlisting is a successful outcome, not an error.
        """
        session = await self.get_session(session_id, for_update=True)
        if not session.is_active:
            raise SessionInactiveError(f"Class session {session_id} is not active")
        if as_utc(session.start_time) <= utcnow():
            raise SessionInactiveError(f"Class session {session_id} has already started")

        member = await self.db.get(Member, member_id)
        if member is None or not member.is_active:
            raise MemberNotFoundError(f"Member {member_id} not found")

        booking = await self.find_booking(session_id, member_id)
        if booking is not None and booking.holds_seat:
            raise DuplicateBookingError("Member already has a booking for this class")

        waiting = await self.waitlist.find_waiting(session_id, member_id)
        if waiting:
            return BookingResult(BookingOutcome.WAITLISTED, session_id, member_id, waitlist_entry=waiting)

        if not await self.claim_seat(session_id):
            entry = await self.waitlist.enqueue(session_id, member_id)
            logger.info(
                "booking_waitlisted",
                session_id=session_id,
                member_id=member_id,
                entry_id=entry.id,
                position=entry.position,
            )
            return BookingResult(BookingOutcome.WAITLISTED, session_id, member_id, waitlist_entry=entry)

        booking = await self.confirm_booking(session_id, member_id, booking)
        self.notices.append(Notice(NoticeKind.BOOKING_CONFIRMED, member_id, session_id))
        logger.info(
            "booking_confirmed",
            booking_id=booking.id,
            session_id=session_id,
            member_id=member_id,
        )
        return BookingResult(BookingOutcome.CONFIRMED, session_id, member_id, booking=booking)

    async def claim_seat(self, session_id: int) -> bool:
        """
        Atomically take one seat. False when the session is full.
        Raises SessionFullRaceError when version conflicts outlast the retry budget.
        """
        for attempt in range(1, self.max_attempts + 1):
            row = (
                await self.db.execute(
                    select(
                        ClassSession.capacity,
                        ClassSession.confirmed_count,
                        ClassSession.version,
                    ).where(ClassSession.id == session_id)
                )
            ).one()

            if row.confirmed_count >= row.capacity:
                return False

            result = await self.db.execute(
                update(ClassSession)
                .where(
                    ClassSession.id == session_id,
                    ClassSession.version == row.version,
                    ClassSession.confirmed_count < ClassSession.capacity,
                )
                .values(
                    confirmed_count=ClassSession.confirmed_count + 1,
                    version=ClassSession.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                return True

            seat_claim_retries.inc()
            logger.info(
                "seat_claim_retry",
                session_id=session_id,
                attempt=attempt,
                reason="version_conflict",
            )

        raise SessionFullRaceError("Booking failed due to high demand. Please try again.")

    async def _return_seat(self, session_id: int) -> None:
        await self.db.execute(
            update(ClassSession)
            .where(ClassSession.id == session_id, ClassSession.confirmed_count > 0)
            .values(
                confirmed_count=ClassSession.confirmed_count - 1,
                version=ClassSession.version + 1,
            )
            .execution_options(synchronize_session=False)
        )

    async def confirm_booking(
        self,
        session_id: int,
        member_id: int,
        booking: Optional[Booking] = None,
    ) -> Booking:
        """
        Write the CONFIRMED booking for a seat that has already been claimed.
        A previously cancelled booking row is re-confirmed in place.
        """
        now = utcnow()
        if booking is None:
            booking = Booking(
                member_id=member_id,
                class_session_id=session_id,
                status=BookingStatus.CONFIRMED.value,
            )
            booking.attendance = AttendanceRecord(status=AttendanceStatus.BOOKED.value, marked_at=now)
            self.db.add(booking)
        else:
            booking.status = BookingStatus.CONFIRMED.value
            booking.cancelled_at = None
            booking.cancellation_reason = None
            if booking.attendance is None:
                booking.attendance = AttendanceRecord(status=AttendanceStatus.BOOKED.value, marked_at=now)
            else:
                booking.attendance.status = AttendanceStatus.BOOKED.value
                booking.attendance.checked_in_at = None
                booking.attendance.marked_at = now
        await self.db.flush()
        return booking

    async def release_seat(self, booking_id: int, reason: str = "cancelled") -> Booking:
        """
        Cancel a confirmed booking, give the seat back and promote from the
        waitlist. Releasing an already cancelled booking changes nothing.
        """
        booking = await self.get_booking(booking_id)
        if not booking.holds_seat:
            logger.info("seat_release_noop", booking_id=booking_id, status=booking.status)
            return booking

        now = utcnow()
        booking.status = BookingStatus.CANCELLED.value
        booking.cancelled_at = now
        booking.cancellation_reason = reason
        if booking.attendance is not None and booking.attendance.status != AttendanceStatus.CANCELLED.value:
            booking.attendance.status = AttendanceStatus.CANCELLED.value
            booking.attendance.marked_at = now
        await self.db.flush()
        await self._return_seat(booking.class_session_id)

        seat_releases.labels(reason=reason).inc()
        logger.info(
            "seat_released",
            booking_id=booking.id,
            session_id=booking.class_session_id,
            member_id=booking.member_id,
            reason=reason,
        )

        await self.promoter.promote_next(booking.class_session_id)
        return booking

    async def reconfirm(self, booking: Booking) -> Booking:
        """
        Put a cancelled booking back into a seat, subject to capacity.
        Raises CapacityExceededError when the session is full.
        """
        if booking.holds_seat:
            return booking

        session = await self.get_session(booking.class_session_id, for_update=True)
        if not session.is_active:
            raise SessionInactiveError(f"Class session {session.id} is not active")

        if not await self.claim_seat(session.id):
            raise CapacityExceededError(
                f"Class session {session.id} is full ({session.capacity} seats)"
            )

        booking = await self.confirm_booking(session.id, booking.member_id, booking)

        # The member holds a seat again; a pending waitlist request is moot
        waiting = await self.waitlist.find_waiting(session.id, booking.member_id)
        if waiting:
            await self.waitlist.remove(waiting, WaitlistStatus.EXPIRED, reason="rebooked")

        logger.info(
            "booking_reconfirmed",
            booking_id=booking.id,
            session_id=session.id,
            member_id=booking.member_id,
        )
        return booking
