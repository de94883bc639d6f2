"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from startickets.api.routes import checkout, events, bookings

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(checkout.router)
api_router.include_router(events.router)
api_router.include_router(bookings.router)
