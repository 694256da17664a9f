"""
Roster projection: read-only view of a class session's bookings, attendance
and waitlist.

Always computed from the ledger tables on request and never cached, so it
cannot drift from the booking state. Nothing here feeds capacity decisions.
"""

from collections import Counter

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import SessionNotFoundError
from app.models.attendance import AttendanceStatus
from app.models.booking import Booking, BookingStatus
from app.models.class_session import ClassSession
from app.models.member import Member
from app.models.waitlist import WaitlistStatus
from app.schemas.class_session import ClassSessionResponse
from app.schemas.roster import RosterMember, RosterResponse, RosterSummary, RosterWaitlistEntry
from app.services.waitlist_queue import WaitlistQueue


async def build_roster(db: AsyncSession, session_id: int) -> RosterResponse:
    session = (
        await db.execute(
            select(ClassSession)
            .where(ClassSession.id == session_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if not session:
        raise SessionNotFoundError(f"Class session {session_id} not found")

    bookings = list(
        (
            await db.execute(
                select(Booking)
                .where(Booking.class_session_id == session_id)
                .order_by(Booking.created_at.asc(), Booking.id.asc())
                .execution_options(populate_existing=True)
            )
        ).scalars().all()
    )

    members = [
        RosterMember(
            booking_id=booking.id,
            member_id=booking.member_id,
            member_name=booking.member.full_name,
            member_email=booking.member.email,
            booking_status=booking.status,
            attendance_status=booking.attendance.status,
            booked_at=booking.created_at,
            checked_in_at=booking.attendance.checked_in_at,
        )
        for booking in bookings
    ]

    waiting = await WaitlistQueue(db).list_entries(session_id, status=WaitlistStatus.WAITING)
    names = {}
    if waiting:
        result = await db.execute(
            select(Member).where(Member.id.in_([entry.member_id for entry in waiting]))
        )
        names = {member.id: member.full_name for member in result.scalars().all()}

    queue = [
        RosterWaitlistEntry(
            entry_id=entry.id,
            member_id=entry.member_id,
            member_name=names.get(entry.member_id, ""),
            position=entry.position,
            queue_rank=rank,
            joined_at=entry.joined_at,
        )
        for rank, entry in enumerate(waiting, start=1)
    ]

    by_attendance = Counter({status.value: 0 for status in AttendanceStatus})
    by_attendance.update(booking.attendance.status for booking in bookings)
    confirmed = sum(1 for booking in bookings if booking.status == BookingStatus.CONFIRMED.value)
    cancelled = len(bookings) - confirmed

    summary = RosterSummary(
        capacity=session.capacity,
        confirmed=confirmed,
        cancelled=cancelled,
        available_seats=max(session.capacity - confirmed, 0),
        occupancy_rate=round(confirmed / session.capacity, 4),
        waitlisted=len(queue),
        by_attendance=dict(by_attendance),
    )

    return RosterResponse(
        session=ClassSessionResponse.model_validate(session),
        members=members,
        waitlist=queue,
        summary=summary,
    )
