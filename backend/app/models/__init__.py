from app.models.member import Member, Trainer
from app.models.class_session import ClassSession
from app.models.booking import Booking, BookingStatus
from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.models.waitlist import WaitlistEntry, WaitlistStatus

__all__ = [
    "Member", "Trainer", "ClassSession",
    "Booking", "BookingStatus",
    "AttendanceRecord", "AttendanceStatus",
    "WaitlistEntry", "WaitlistStatus",
]
