"""
Booking model representing a member's claim on a seat in a class session.

Key design decisions:
- Unique constraint on (member_id, class_session_id): a cancelled booking is
  re-confirmed in place, so a member never holds two live bookings
- Status field allows cancellation without deleting records
- Every booking owns exactly one AttendanceRecord
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    class_session_id = Column(Integer, ForeignKey("class_sessions.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(String(50), nullable=True)

    member = relationship("Member", lazy="selectin")
    attendance = relationship(
        "AttendanceRecord", back_populates="booking", uselist=False, lazy="selectin"
    )

    __table_args__ = (
        UniqueConstraint("member_id", "class_session_id", name="uq_member_session_booking"),
        CheckConstraint("status IN ('CONFIRMED', 'CANCELLED')", name="check_booking_status"),
    )

    @property
    def holds_seat(self) -> bool:
        return self.status == BookingStatus.CONFIRMED.value

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, member={self.member_id}, "
            f"session={self.class_session_id}, status={self.status})>"
        )
