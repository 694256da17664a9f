"""
Waitlist endpoints: queue view, withdrawal and the admin promotion trigger.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.models.waitlist import WaitlistStatus
from app.schemas.waitlist import WaitlistEntryResponse, PromotionResponse
from app.services.cache_service import invalidate_session_cache
from app.services.class_schedule_service import get_class_session
from app.services.interfaces.notification import NotificationGateway
from app.services.notification_service import get_notification_gateway
from app.services.scheduling_service import promote_waitlist, withdraw_from_waitlist
from app.services.waitlist_queue import WaitlistQueue

router = APIRouter(prefix="/classes/{session_id}/waitlist", tags=["Waitlist"])


@router.get("/", response_model=list[WaitlistEntryResponse])
async def list_waitlist(
    session_id: int,
    waiting_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """Queue in promotion order. With waiting_only=false the full history is returned."""
    await get_class_session(db, session_id)
    status_filter = WaitlistStatus.WAITING if waiting_only else None
    return await WaitlistQueue(db).list_entries(session_id, status=status_filter)


@router.delete("/{entry_id}", response_model=WaitlistEntryResponse)
async def leave_waitlist(
    session_id: int,
    entry_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Member withdraws from the queue."""
    return await withdraw_from_waitlist(db, session_id, entry_id)


@router.post("/promote", response_model=PromotionResponse)
async def promote_next(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    gateway: NotificationGateway = Depends(get_notification_gateway),
):
    """Force one promotion attempt for the head of the queue."""
    entry = await promote_waitlist(db, gateway, session_id)
    if entry is None:
        return PromotionResponse(promoted=False)
    await invalidate_session_cache()
    return PromotionResponse(promoted=True, entry=WaitlistEntryResponse.model_validate(entry))
