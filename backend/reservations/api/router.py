"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from reservations.api.routes import rooms, guests, bookings, reports, audit

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(rooms.router)
api_router.include_router(guests.router)
api_router.include_router(bookings.router)
api_router.include_router(reports.router)
api_router.include_router(audit.router)
