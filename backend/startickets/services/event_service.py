"""
Event catalog reads needed around checkout.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from startickets.models.event import Event
from startickets.models.ticket_category import TicketCategory
from startickets.services.errors import EventNotFoundError


async def get_event_availability(db: AsyncSession, event_id: int) -> Event:
    """
    Get an event with its active ticket categories and live stock counts.
    Not cached: a failed checkout re-presents the cart from these numbers.
    """
    result = await db.execute(
        select(Event)
        .options(
            selectinload(Event.ticket_categories.and_(TicketCategory.is_active.is_(True)))
        )
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()

    if not event or not event.is_active:
        raise EventNotFoundError(event_id)
    return event
