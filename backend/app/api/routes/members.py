"""
Member and trainer directory endpoints.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.booking import BookingResponse
from app.schemas.member import MemberCreate, MemberResponse, TrainerCreate, TrainerResponse
from app.schemas.waitlist import WaitlistEntryResponse
from app.services.member_service import (
    create_member,
    create_trainer,
    get_member,
    get_member_bookings,
    get_member_waitlist,
    search_members,
)

router = APIRouter(tags=["Directory"])


@router.post("/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def register_member(member_data: MemberCreate, db: AsyncSession = Depends(get_db)):
    return await create_member(db, member_data)


@router.get("/members/search", response_model=list[MemberResponse])
async def search_members_endpoint(
    q: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    """Member lookup for the roster quick-add flow."""
    return await search_members(db, q, limit)


@router.get("/members/{member_id}", response_model=MemberResponse)
async def get_member_endpoint(member_id: int, db: AsyncSession = Depends(get_db)):
    return await get_member(db, member_id)


@router.get("/members/{member_id}/bookings", response_model=list[BookingResponse])
async def list_member_bookings(member_id: int, db: AsyncSession = Depends(get_db)):
    bookings = await get_member_bookings(db, member_id)
    return [BookingResponse.from_booking(b) for b in bookings]


@router.get("/members/{member_id}/waitlist", response_model=list[WaitlistEntryResponse])
async def list_member_waitlist(member_id: int, db: AsyncSession = Depends(get_db)):
    return await get_member_waitlist(db, member_id)


@router.post("/trainers", response_model=TrainerResponse, status_code=status.HTTP_201_CREATED)
async def register_trainer(trainer_data: TrainerCreate, db: AsyncSession = Depends(get_db)):
    return await create_trainer(db, trainer_data)
