"""
Domain errors for class scheduling.

Each error carries the HTTP status it maps to; `app.main` renders them as
`{"detail": ..., "error": ...}` so route handlers never translate them by hand.

Taxonomy:
  - validation (404 / 422 / 400): bad ids, inactive sessions, illegal transitions
  - conflict (409): duplicate bookings, capacity exceeded, scheduling clashes
  - transient (409): seat-claim retries exhausted under contention
"""

from fastapi import status


class SchedulingError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "scheduling_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


# Validation

class SessionNotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "session_not_found"


class BookingNotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "booking_not_found"


class WaitlistEntryNotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "waitlist_entry_not_found"


class MemberNotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "member_not_found"


class TrainerNotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "trainer_not_found"


class SessionInactiveError(SchedulingError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "session_inactive"


class InvalidScheduleError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_schedule"


class IllegalTransitionError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "illegal_transition"


class InvalidWaitlistTransitionError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_waitlist_transition"


# Conflicts

class DuplicateBookingError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_booking"


class DuplicateMemberError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_member"


class CapacityExceededError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = "capacity_exceeded"


class CapacityReductionError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = "capacity_reduction_rejected"


class TrainerConflictError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = "trainer_conflict"


# Transient

class SessionFullRaceError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = "session_contention"
