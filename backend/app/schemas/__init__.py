from app.schemas.class_session import (
    ClassSessionCreate, ClassSessionUpdate, ClassSessionResponse, ClassSessionListResponse,
)
from app.schemas.booking import BookingCreate, BookingOutcomeResponse, BookingResponse, BookingCancelResponse
from app.schemas.attendance import AttendanceUpdate, AttendanceResponse
from app.schemas.waitlist import WaitlistEntryResponse, PromotionResponse
from app.schemas.roster import RosterResponse
from app.schemas.member import MemberCreate, MemberResponse, TrainerCreate, TrainerResponse

__all__ = [
    "ClassSessionCreate", "ClassSessionUpdate", "ClassSessionResponse", "ClassSessionListResponse",
    "BookingCreate", "BookingOutcomeResponse", "BookingResponse", "BookingCancelResponse",
    "AttendanceUpdate", "AttendanceResponse",
    "WaitlistEntryResponse", "PromotionResponse",
    "RosterResponse",
    "MemberCreate", "MemberResponse", "TrainerCreate", "TrainerResponse",
]
