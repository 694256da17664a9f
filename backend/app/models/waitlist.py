"""
WaitlistEntry: a queued request for a seat in a full class session.

Queue order is derived from (joined_at, id), never from a stored index, so
entries leaving the queue out of order never force a resequence. `position`
is the join sequence within the session and is kept for audit only.
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, UniqueConstraint, CheckConstraint, text

from app.db.base import Base, TimestampMixin, utcnow


class WaitlistStatus(str, enum.Enum):
    WAITING = "WAITING"
    PROMOTED = "PROMOTED"
    EXPIRED = "EXPIRED"


class WaitlistEntry(Base, TimestampMixin):
    __tablename__ = "waitlist_entries"

    id = Column(Integer, primary_key=True, index=True)
    class_session_id = Column(Integer, ForeignKey("class_sessions.id"), nullable=False)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=WaitlistStatus.WAITING.value)
    position = Column(Integer, nullable=False)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    expiry_reason = Column(String(50), nullable=True)

    __table_args__ = (
        UniqueConstraint("class_session_id", "position", name="uq_waitlist_session_position"),
        CheckConstraint("status IN ('WAITING', 'PROMOTED', 'EXPIRED')", name="check_waitlist_status"),
        # peek_next: WAITING entries of a session in join order
        Index("ix_waitlist_session_status_joined", "class_session_id", "status", "joined_at", "id"),
        # At most one WAITING entry per member per session
        Index(
            "uq_waitlist_member_waiting",
            "class_session_id",
            "member_id",
            unique=True,
            postgresql_where=text("status = 'WAITING'"),
            sqlite_where=text("status = 'WAITING'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<WaitlistEntry(id={self.id}, session={self.class_session_id}, "
            f"member={self.member_id}, status={self.status})>"
        )
