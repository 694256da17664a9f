"""Fill freed seats from the head of a session's waitlist."""

from typing import TYPE_CHECKING, Optional

from app.core.exceptions import SessionFullRaceError
from app.core.logging import get_logger
from app.core.metrics import record_promotion
from app.models.waitlist import WaitlistEntry, WaitlistStatus
from app.services.interfaces.notification import Notice, NoticeKind

if TYPE_CHECKING:
    from app.services.booking_ledger import BookingLedger

logger = get_logger(__name__)


class WaitlistPromoter:
    """
    Promotes the head of the waitlist into a confirmed booking.

    The seat is claimed with the ledger's atomic check, because a direct
    booking may have taken it between release and promotion. When the claim
    fails the head entry stays WAITING and the next release retries it; an
    entry is never skipped or expired here.
    """

    def __init__(self, ledger: "BookingLedger"):
        self.ledger = ledger
        self.waitlist = ledger.waitlist

    async def promote_next(self, session_id: int) -> Optional[WaitlistEntry]:
        """One promotion attempt. Returns the promoted entry, or None."""
        while True:
            entry = await self.waitlist.peek_next(session_id)
            if entry is None:
                record_promotion("empty")
                logger.debug("waitlist_empty", session_id=session_id)
                return None

            booking = await self.ledger.find_booking(session_id, entry.member_id)
            if booking is not None and booking.holds_seat:
                # Already seated through another path; close the entry, keep the seat free
                await self.waitlist.remove(entry, WaitlistStatus.PROMOTED, booking_id=booking.id)
                continue

            try:
                claimed = await self.ledger.claim_seat(session_id)
            except SessionFullRaceError:
                logger.warning(
                    "waitlist_promotion_contention",
                    session_id=session_id,
                    entry_id=entry.id,
                )
                claimed = False

            if not claimed:
                record_promotion("deferred")
                logger.info(
                    "waitlist_promotion_deferred",
                    session_id=session_id,
                    entry_id=entry.id,
                    member_id=entry.member_id,
                )
                return None

            booking = await self.ledger.confirm_booking(session_id, entry.member_id, booking)
            await self.waitlist.remove(entry, WaitlistStatus.PROMOTED, booking_id=booking.id)
            self.ledger.notices.append(Notice(NoticeKind.PROMOTION, entry.member_id, session_id))

            record_promotion("promoted")
            logger.info(
                "waitlist_promoted",
                session_id=session_id,
                entry_id=entry.id,
                member_id=entry.member_id,
                booking_id=booking.id,
            )
            return entry

    async def fill_open_seats(self, session_id: int) -> list[WaitlistEntry]:
        """Promote until the session is full or the queue is empty."""
        promoted = []
        while True:
            entry = await self.promote_next(session_id)
            if entry is None:
                return promoted
            promoted.append(entry)
