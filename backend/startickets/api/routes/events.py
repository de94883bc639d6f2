"""
Event availability endpoint. Not cached: counts must be live.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from startickets.api.errors import error_responses
from startickets.db.session import get_db
from startickets.schemas.event import EventAvailabilityResponse
from startickets.services.event_service import get_event_availability

router = APIRouter(prefix="/events", tags=["Events"])


@router.get("/{event_id}", response_model=EventAvailabilityResponse, responses=error_responses(404))
async def get_event_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Event with the remaining stock of each active ticket category."""
    return await get_event_availability(db, event_id)
