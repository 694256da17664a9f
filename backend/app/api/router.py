"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from app.api.routes import classes, bookings, attendance, waitlist, members

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(classes.router)
api_router.include_router(bookings.router)
api_router.include_router(attendance.router)
api_router.include_router(waitlist.router)
api_router.include_router(members.router)
