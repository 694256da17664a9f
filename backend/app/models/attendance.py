"""
AttendanceRecord: per-booking attendance lifecycle tracked by staff.
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class AttendanceStatus(str, enum.Enum):
    BOOKED = "BOOKED"
    ATTENDED = "ATTENDED"
    NO_SHOW = "NO_SHOW"
    CANCELLED = "CANCELLED"


class AttendanceRecord(Base, TimestampMixin):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default=AttendanceStatus.BOOKED.value)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    marked_at = Column(DateTime(timezone=True), nullable=True)

    booking = relationship("Booking", back_populates="attendance")

    __table_args__ = (
        CheckConstraint(
            "status IN ('BOOKED', 'ATTENDED', 'NO_SHOW', 'CANCELLED')",
            name="check_attendance_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<AttendanceRecord(booking={self.booking_id}, status={self.status})>"
