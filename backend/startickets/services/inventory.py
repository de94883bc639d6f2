"""
Inventory ledger: per-category ticket stock.

CONCURRENCY STRATEGY: Guarded Atomic Decrement
==============================================

Problem:
  Two customers try to buy the last ticket of a category simultaneously.
  Both read available_quantity=1, both decrement to 0, both succeed.
  Result: Oversell.

Solution:
  The decrement is a single conditional statement:

    UPDATE ticket_categories
       SET available_quantity = available_quantity - :q
     WHERE id = :id AND available_quantity >= :q

  If rows_affected == 0 there was not enough stock at the moment the row
  was written, and the reservation fails without touching anything.

  PostgreSQL takes the row lock for the UPDATE and holds it until the
  checkout transaction ends. A concurrent writer blocks, then re-evaluates
  the WHERE clause against the committed row. No version column is needed:
  a blocked checkout succeeds if stock remains and fails with
  InsufficientStock if it does not.

  A checkout holds one row lock per category until it commits. Callers
  reserving several categories must take them in ascending id order
  (CheckoutTransaction does), otherwise two carts listing the same
  categories in opposite orders deadlock and one of them is aborted.

  SQLite serializes writers with BEGIN IMMEDIATE (see db/session.py).

  The CHECK constraint (available_quantity >= 0) is the final safety net.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from startickets.models.ticket_category import TicketCategory
from startickets.services.errors import CategoryNotFoundError, InsufficientStockError
from startickets.core.metrics import record_reservation
from startickets.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Reservation:
    """Stock held for one cart line, with the price snapshot taken at reservation."""

    ticket_category_id: int
    category_name: str
    quantity: int
    unit_price: Decimal

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity


async def reserve(
    db: AsyncSession,
    event_id: int,
    ticket_category_id: int,
    quantity: int,
) -> Reservation:
    """
    Decrement stock for one category of an event.
    Either the full quantity is reserved or nothing changes.
    """
    if quantity <= 0:
        raise ValueError(f"Reservation quantity must be positive, got {quantity}")

    result = await db.execute(
        select(TicketCategory)
        .where(
            TicketCategory.id == ticket_category_id,
            TicketCategory.event_id == event_id,
        )
        .execution_options(populate_existing=True)
    )
    category = result.scalar_one_or_none()

    if category is None or not category.is_active:
        logger.warning(
            "reservation_failed_unknown_category",
            event_id=event_id,
            ticket_category_id=ticket_category_id,
        )
        raise CategoryNotFoundError(ticket_category_id)

    update_result = await db.execute(
        update(TicketCategory)
        .where(
            TicketCategory.id == ticket_category_id,
            TicketCategory.available_quantity >= quantity,
        )
        .values(available_quantity=TicketCategory.available_quantity - quantity)
    )

    if update_result.rowcount == 0:
        available = await _current_available(db, ticket_category_id)
        record_reservation("insufficient")
        logger.warning(
            "reservation_failed_insufficient_stock",
            ticket_category_id=ticket_category_id,
            requested=quantity,
            available=available,
        )
        raise InsufficientStockError(ticket_category_id, category.category_name, available)

    record_reservation("reserved")
    logger.info(
        "inventory_reserved",
        ticket_category_id=ticket_category_id,
        quantity=quantity,
    )
    return Reservation(
        ticket_category_id=category.id,
        category_name=category.category_name,
        quantity=quantity,
        unit_price=category.price,
    )


async def release(db: AsyncSession, ticket_category_id: int, quantity: int) -> None:
    """
    Return stock to a category (booking cancellation).
    Guarded so available_quantity can never exceed total_quantity.
    """
    if quantity <= 0:
        raise ValueError(f"Release quantity must be positive, got {quantity}")

    update_result = await db.execute(
        update(TicketCategory)
        .where(
            TicketCategory.id == ticket_category_id,
            TicketCategory.available_quantity + quantity <= TicketCategory.total_quantity,
        )
        .values(available_quantity=TicketCategory.available_quantity + quantity)
    )

    if update_result.rowcount == 0:
        # Would push stock past capacity: the ledger is already inconsistent
        logger.error(
            "inventory_release_rejected",
            ticket_category_id=ticket_category_id,
            quantity=quantity,
        )
        raise ValueError(
            f"Cannot release {quantity} tickets to category {ticket_category_id}: capacity exceeded"
        )

    record_reservation("released")
    logger.info("inventory_released", ticket_category_id=ticket_category_id, quantity=quantity)


async def _current_available(db: AsyncSession, ticket_category_id: int) -> int:
    result = await db.execute(
        select(TicketCategory.available_quantity).where(TicketCategory.id == ticket_category_id)
    )
    return result.scalar_one()
