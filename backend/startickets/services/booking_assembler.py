"""
Booking assembler: turns reserved cart lines into the persisted
Booking -> BookingDetail -> Ticket graph.

Persistence order follows the foreign keys: the booking first (its id and
reference feed ticket numbers), then all details (flushed for their ids),
then `quantity` tickets per detail. Nothing here commits; the checkout
coordinator owns the transaction.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from startickets.models.booking import Booking, BookingDetail, Ticket, BookingStatus, PaymentStatus
from startickets.services.errors import InvalidQuantityError, NoLinesSelectedError, PersistenceFailureError
from startickets.services.inventory import Reservation
from startickets.services.promotion_service import PromotionResult, quantize_cents
from startickets.services import references
from startickets.core.metrics import booking_reference_collisions
from startickets.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CartLine:
    ticket_category_id: int
    quantity: int


@dataclass(frozen=True)
class BookingTotals:
    total_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal


def normalize_cart(lines: Iterable[CartLine], max_per_line: int) -> list[CartLine]:
    """
    Drop unselected (zero) lines and merge repeated categories, keeping the
    order in which categories first appear. The per-line limit applies to
    each submitted line and to each merged category.
    """
    merged: dict[int, int] = {}
    for line in lines:
        if line.quantity < 0 or line.quantity > max_per_line:
            raise InvalidQuantityError(line.ticket_category_id, line.quantity, max_per_line)
        if line.quantity == 0:
            continue
        merged[line.ticket_category_id] = merged.get(line.ticket_category_id, 0) + line.quantity

    if not merged:
        raise NoLinesSelectedError()

    for category_id, quantity in merged.items():
        if quantity > max_per_line:
            raise InvalidQuantityError(category_id, quantity, max_per_line)

    return [CartLine(ticket_category_id=cid, quantity=qty) for cid, qty in merged.items()]


def compute_totals(
    reservations: Sequence[Reservation],
    promotion: Optional[PromotionResult] = None,
) -> BookingTotals:
    total = quantize_cents(sum((r.total_price for r in reservations), Decimal("0")))
    discount = promotion.discount_amount if promotion is not None else Decimal("0.00")
    discount = min(quantize_cents(discount), total)
    return BookingTotals(
        total_amount=total,
        discount_amount=discount,
        final_amount=total - discount,
    )


async def _insert_booking(
    db: AsyncSession,
    *,
    customer_id: int,
    event_id: int,
    totals: BookingTotals,
    promo_code: Optional[str],
    now: datetime,
    reference_factory: Callable[[datetime], str],
    max_attempts: int,
) -> Booking:
    """
    Insert the booking row under a SAVEPOINT so a duplicate reference only
    rolls back this insert, then retry with a fresh reference.
    """
    for attempt in range(1, max_attempts + 1):
        reference = reference_factory(now)
        booking = Booking(
            booking_reference=reference,
            customer_id=customer_id,
            event_id=event_id,
            booking_date=now,
            total_amount=totals.total_amount,
            discount_amount=totals.discount_amount,
            final_amount=totals.final_amount,
            payment_status=PaymentStatus.PENDING.value,
            status=BookingStatus.ACTIVE.value,
            promo_code_used=promo_code,
        )
        try:
            async with db.begin_nested():
                db.add(booking)
                await db.flush()
        except IntegrityError:
            if not await _reference_taken(db, reference):
                raise
            booking_reference_collisions.inc()
            logger.warning(
                "booking_reference_collision",
                reference=reference,
                attempt=attempt,
            )
            continue
        return booking

    raise PersistenceFailureError()


async def _reference_taken(db: AsyncSession, reference: str) -> bool:
    result = await db.execute(select(Booking.id).where(Booking.booking_reference == reference))
    return result.first() is not None


async def assemble(
    db: AsyncSession,
    *,
    customer_id: int,
    event_id: int,
    reservations: Sequence[Reservation],
    totals: BookingTotals,
    promo_code: Optional[str],
    now: datetime,
    max_reference_attempts: int = 5,
    reference_factory: Optional[Callable[[datetime], str]] = None,
) -> Booking:
    """Persist the booking graph for already-reserved lines."""
    if not reservations:
        raise NoLinesSelectedError()

    booking = await _insert_booking(
        db,
        customer_id=customer_id,
        event_id=event_id,
        totals=totals,
        promo_code=promo_code,
        now=now,
        reference_factory=reference_factory or references.generate_booking_reference,
        max_attempts=max_reference_attempts,
    )

    details = [
        BookingDetail(
            booking_id=booking.id,
            ticket_category_id=reservation.ticket_category_id,
            quantity=reservation.quantity,
            unit_price=reservation.unit_price,
            total_price=quantize_cents(reservation.total_price),
        )
        for reservation in reservations
    ]
    db.add_all(details)
    await db.flush()

    tickets = []
    for line_number, detail in enumerate(details, start=1):
        for sequence in range(1, detail.quantity + 1):
            tickets.append(
                Ticket(
                    booking_detail_id=detail.id,
                    ticket_number=references.generate_ticket_number(booking.id, detail.id, sequence),
                    qr_code=references.generate_qr_payload(booking.booking_reference, line_number, sequence),
                    is_used=False,
                    created_at=now,
                )
            )
    db.add_all(tickets)
    await db.flush()

    logger.info(
        "booking_assembled",
        booking_id=booking.id,
        reference=booking.booking_reference,
        lines=len(details),
        tickets=len(tickets),
    )
    return booking
