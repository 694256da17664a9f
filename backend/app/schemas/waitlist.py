"""
Pydantic schemas for waitlist entries and promotion results.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.models.waitlist import WaitlistStatus


class WaitlistEntryResponse(BaseModel):
    id: int
    class_session_id: int
    member_id: int
    status: WaitlistStatus
    position: int
    joined_at: datetime
    resolved_at: Optional[datetime]
    booking_id: Optional[int]
    expiry_reason: Optional[str]

    model_config = {"from_attributes": True}


class PromotionResponse(BaseModel):
    promoted: bool
    entry: Optional[WaitlistEntryResponse] = None
