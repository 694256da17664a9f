"""
Class session endpoints with Redis caching on the listing.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.class_session import (
    ClassSessionCreate,
    ClassSessionUpdate,
    ClassSessionResponse,
    ClassSessionListResponse,
)
from app.services.class_schedule_service import create_class_session, get_class_session, list_class_sessions
from app.services.cache_service import get_cached_sessions, set_cached_sessions, invalidate_session_cache
from app.services.interfaces.notification import NotificationGateway
from app.services.notification_service import get_notification_gateway
from app.services.scheduling_service import update_class, deactivate_class
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/classes", tags=["Classes"])


@router.post("/", response_model=ClassSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_class_endpoint(
    session_data: ClassSessionCreate,
    db: AsyncSession = Depends(get_db),
):
    """Schedule a new class session. The trainer must be free for the whole window."""
    session = await create_class_session(db, session_data)
    await invalidate_session_cache()
    return session


@router.get("/", response_model=ClassSessionListResponse)
async def list_classes_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    active_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """
    List class sessions with pagination.
    Results are cached in Redis; seat counts may lag by up to the cache TTL
    only if an invalidation was missed.
    """
    cached = await get_cached_sessions(page, page_size, upcoming_only, active_only)
    if cached:
        logger.info("classes_list_cache_hit", page=page)
        cached["cached"] = True
        return ClassSessionListResponse(**cached)

    sessions, total = await list_class_sessions(db, page, page_size, upcoming_only, active_only)

    response_data = {
        "sessions": [ClassSessionResponse.model_validate(s).model_dump() for s in sessions],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_sessions(page, page_size, upcoming_only, active_only, response_data)

    return ClassSessionListResponse(**response_data)


@router.get("/{session_id}", response_model=ClassSessionResponse)
async def get_class_endpoint(
    session_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a single class session. Not cached (live seat counts)."""
    return await get_class_session(db, session_id)


@router.patch("/{session_id}", response_model=ClassSessionResponse)
async def update_class_endpoint(
    session_id: int,
    session_data: ClassSessionUpdate,
    db: AsyncSession = Depends(get_db),
    gateway: NotificationGateway = Depends(get_notification_gateway),
):
    """
    Edit a class session. Capacity can't drop below the confirmed bookings;
    a capacity increase promotes from the waitlist immediately.
    """
    session = await update_class(db, gateway, session_id, session_data)
    await invalidate_session_cache()
    return session


@router.delete("/{session_id}", response_model=ClassSessionResponse)
async def deactivate_class_endpoint(
    session_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Cancel a class session. It is deactivated, never deleted; waiting members expire."""
    session = await deactivate_class(db, session_id)
    await invalidate_session_cache()
    return session
