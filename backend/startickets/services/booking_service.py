"""
Booking reads and cancellation for customers.

Cancellation restocks inventory: every line's quantity goes back to its
ticket category through the inventory ledger, in the same transaction that
flips the booking to cancelled.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from startickets.models.booking import Booking, BookingDetail, BookingStatus
from startickets.services import inventory
from startickets.services.errors import BookingNotFoundError, BookingNotCancellableError
from startickets.services.promotion_service import ensure_utc
from startickets.core.config import get_settings
from startickets.core.metrics import booking_cancellations
from startickets.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def _booking_graph_options():
    return (
        selectinload(Booking.event),
        selectinload(Booking.details).selectinload(BookingDetail.ticket_category),
        selectinload(Booking.details).selectinload(BookingDetail.tickets),
    )


async def get_booking_confirmation(db: AsyncSession, booking_id: int, customer_id: int) -> Booking:
    """
    Load a booking with its event, ordered details and tickets.
    Bookings of other customers are reported as not found.
    """
    result = await db.execute(
        select(Booking)
        .options(*_booking_graph_options())
        .where(Booking.id == booking_id, Booking.customer_id == customer_id)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()

    if not booking:
        raise BookingNotFoundError(booking_id)
    return booking


async def list_customer_bookings(
    db: AsyncSession,
    customer_id: int,
    page: int = 1,
    page_size: int = 10,
    payment_status: Optional[str] = None,
) -> tuple[list[Booking], int]:
    """Newest bookings first, optionally filtered by payment status."""
    query = select(Booking).where(Booking.customer_id == customer_id)

    if payment_status:
        query = query.where(Booking.payment_status == payment_status)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    bookings_query = (
        query
        .options(selectinload(Booking.event), selectinload(Booking.details))
        .order_by(Booking.booking_date.desc(), Booking.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(bookings_query)
    return list(result.scalars().all()), total


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    customer_id: int,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Cancel an active booking for an upcoming event and return its tickets
    to inventory. Bookings with a scanned ticket cannot be cancelled.
    """
    now = now or datetime.now(timezone.utc)
    booking = await get_booking_confirmation(db, booking_id, customer_id)

    if booking.status == BookingStatus.CANCELLED.value:
        raise BookingNotCancellableError(booking_id, "Booking is already cancelled.")

    if booking.event is not None and ensure_utc(booking.event.date) <= now:
        raise BookingNotCancellableError(booking_id, "This event has already occurred.")

    if any(ticket.is_used for detail in booking.details for ticket in detail.tickets):
        raise BookingNotCancellableError(booking_id, "Tickets from this booking have already been used.")

    # Claim the row before restocking. A concurrent cancel matches zero rows.
    claim = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking_id,
            Booking.customer_id == customer_id,
            Booking.status == BookingStatus.ACTIVE.value,
        )
        .values(status=BookingStatus.CANCELLED.value)
    )
    if claim.rowcount == 0:
        logger.warning("booking_cancel_lost_race", booking_id=booking_id, customer_id=customer_id)
        raise BookingNotCancellableError(booking_id, "Booking is already cancelled.")

    if settings.RESTOCK_ON_CANCEL:
        for detail in booking.details:
            await inventory.release(db, detail.ticket_category_id, detail.quantity)

    await db.flush()

    booking_cancellations.inc()
    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        customer_id=customer_id,
        event_id=booking.event_id,
        tickets_restored=booking.ticket_count if settings.RESTOCK_ON_CANCEL else 0,
    )
    return booking
