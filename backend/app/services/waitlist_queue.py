"""
Waitlist queue: FIFO ordering of pending members per class session.

The queue is a view over WaitlistEntry rows, not a physical FIFO:
  - the head is the WAITING entry with the earliest joined_at, ties broken by
    the smaller id
  - leaving the queue is a status change (PROMOTED / EXPIRED), never a delete,
    so historical order can always be reconstructed
  - `position` is assigned once at join time and never renumbered

Callers must hold the session's write lock (see session_locks) around any
mutating call; position assignment relies on it.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidWaitlistTransitionError, WaitlistEntryNotFoundError
from app.core.logging import get_logger
from app.core.metrics import waitlist_joins, waitlist_expirations
from app.db.base import utcnow
from app.models.class_session import ClassSession
from app.models.waitlist import WaitlistEntry, WaitlistStatus

logger = get_logger(__name__)

_EXIT_STATUSES = {WaitlistStatus.PROMOTED, WaitlistStatus.EXPIRED}


class WaitlistQueue:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_waiting(self, session_id: int, member_id: int) -> Optional[WaitlistEntry]:
        result = await self.db.execute(
            select(WaitlistEntry)
            .where(
                WaitlistEntry.class_session_id == session_id,
                WaitlistEntry.member_id == member_id,
                WaitlistEntry.status == WaitlistStatus.WAITING.value,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def enqueue(self, session_id: int, member_id: int) -> WaitlistEntry:
        """Append a WAITING entry; a member already waiting gets their entry back."""
        existing = await self.find_waiting(session_id, member_id)
        if existing:
            logger.info(
                "waitlist_already_waiting",
                session_id=session_id,
                member_id=member_id,
                entry_id=existing.id,
            )
            return existing

        last_position = (
            await self.db.execute(
                select(func.max(WaitlistEntry.position)).where(
                    WaitlistEntry.class_session_id == session_id
                )
            )
        ).scalar()

        entry = WaitlistEntry(
            class_session_id=session_id,
            member_id=member_id,
            status=WaitlistStatus.WAITING.value,
            position=(last_position or 0) + 1,
            joined_at=utcnow(),
        )
        self.db.add(entry)
        await self.db.flush()

        waitlist_joins.inc()
        logger.info(
            "waitlist_joined",
            session_id=session_id,
            member_id=member_id,
            entry_id=entry.id,
            position=entry.position,
        )
        return entry

    async def peek_next(self, session_id: int) -> Optional[WaitlistEntry]:
        result = await self.db.execute(
            select(WaitlistEntry)
            .where(
                WaitlistEntry.class_session_id == session_id,
                WaitlistEntry.status == WaitlistStatus.WAITING.value,
            )
            .order_by(WaitlistEntry.joined_at.asc(), WaitlistEntry.id.asc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_entry(self, entry_id: int, session_id: Optional[int] = None) -> WaitlistEntry:
        query = select(WaitlistEntry).where(WaitlistEntry.id == entry_id)
        if session_id is not None:
            query = query.where(WaitlistEntry.class_session_id == session_id)
        result = await self.db.execute(query.execution_options(populate_existing=True))
        entry = result.scalar_one_or_none()
        if not entry:
            raise WaitlistEntryNotFoundError(f"Waitlist entry {entry_id} not found")
        return entry

    async def remove(
        self,
        entry: WaitlistEntry,
        next_status: WaitlistStatus,
        *,
        booking_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> WaitlistEntry:
        """Move an entry out of WAITING into PROMOTED or EXPIRED."""
        if next_status not in _EXIT_STATUSES:
            raise InvalidWaitlistTransitionError(
                f"Waitlist entries can only leave the queue as PROMOTED or EXPIRED, not {next_status.value}"
            )
        if entry.status != WaitlistStatus.WAITING.value:
            raise InvalidWaitlistTransitionError(
                f"Waitlist entry {entry.id} is {entry.status}, not WAITING"
            )

        entry.status = next_status.value
        entry.resolved_at = utcnow()
        if next_status is WaitlistStatus.PROMOTED:
            entry.booking_id = booking_id
        else:
            entry.expiry_reason = reason
            waitlist_expirations.labels(reason=reason or "unspecified").inc()
        await self.db.flush()

        logger.info(
            "waitlist_entry_resolved",
            entry_id=entry.id,
            session_id=entry.class_session_id,
            member_id=entry.member_id,
            status=entry.status,
            reason=reason,
        )
        return entry

    async def withdraw(self, entry_id: int, session_id: int) -> WaitlistEntry:
        """Member leaves the queue. Withdrawing an expired entry again is a no-op."""
        entry = await self.get_entry(entry_id, session_id)
        if entry.status == WaitlistStatus.EXPIRED.value:
            return entry
        return await self.remove(entry, WaitlistStatus.EXPIRED, reason="withdrawn")

    async def expire_for_session(self, session_id: int, reason: str) -> int:
        now = utcnow()
        result = await self.db.execute(
            update(WaitlistEntry)
            .where(
                WaitlistEntry.class_session_id == session_id,
                WaitlistEntry.status == WaitlistStatus.WAITING.value,
            )
            .values(
                status=WaitlistStatus.EXPIRED.value,
                resolved_at=now,
                expiry_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        expired = result.rowcount
        if expired:
            waitlist_expirations.labels(reason=reason).inc(expired)
            logger.info("waitlist_expired", session_id=session_id, count=expired, reason=reason)
        return expired

    async def sessions_with_stale_entries(self, now: Optional[datetime] = None) -> list[int]:
        """Ids of started sessions that still have WAITING entries."""
        now = now or utcnow()
        result = await self.db.execute(
            select(WaitlistEntry.class_session_id)
            .join(ClassSession, ClassSession.id == WaitlistEntry.class_session_id)
            .where(
                WaitlistEntry.status == WaitlistStatus.WAITING.value,
                ClassSession.start_time <= now,
            )
            .distinct()
            .order_by(WaitlistEntry.class_session_id)
        )
        return list(result.scalars().all())

    async def list_entries(
        self,
        session_id: int,
        status: Optional[WaitlistStatus] = None,
    ) -> list[WaitlistEntry]:
        """Entries of a session in queue order (history included unless filtered)."""
        query = select(WaitlistEntry).where(WaitlistEntry.class_session_id == session_id)
        if status is not None:
            query = query.where(WaitlistEntry.status == status.value)
        result = await self.db.execute(
            query.order_by(WaitlistEntry.joined_at.asc(), WaitlistEntry.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_member_entries(self, member_id: int, waiting_only: bool = True) -> list[WaitlistEntry]:
        query = select(WaitlistEntry).where(WaitlistEntry.member_id == member_id)
        if waiting_only:
            query = query.where(WaitlistEntry.status == WaitlistStatus.WAITING.value)
        result = await self.db.execute(
            query.order_by(WaitlistEntry.joined_at.desc(), WaitlistEntry.id.desc())
        )
        return list(result.scalars().all())
