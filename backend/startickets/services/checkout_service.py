"""
Checkout transaction coordinator.

One checkout is one database transaction:

  STARTED -> VALIDATING -> RESERVING_INVENTORY -> APPLYING_PROMOTION
          -> PERSISTING -> COMMITTED

Any failure moves to ABORTED and rolls back everything the transaction
touched: inventory decrements, the promotion usage increment and every
partial insert. Callers see either a receipt or a CheckoutError with a
kind and a message, never a half-written booking.

Expected failures (unknown event, sold out, empty cart...) propagate with
their own kind. Anything unexpected is logged with its traceback and
surfaced as PersistenceFailure, which is always safe to retry because
nothing was committed.
"""

import enum
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from startickets.core.config import get_settings
from startickets.core.logging import get_logger
from startickets.core.metrics import checkout_latency, record_checkout_attempt
from startickets.core.security import AuthContext
from startickets.models.event import Event, EventStatus
from startickets.services import booking_assembler, inventory, promotion_service
from startickets.services.booking_assembler import BookingTotals, CartLine
from startickets.services.errors import (
    CheckoutError,
    EventNotBookableError,
    EventNotFoundError,
    PersistenceFailureError,
)
from startickets.services.inventory import Reservation
from startickets.services.promotion_service import PromotionResult, ensure_utc

logger = get_logger(__name__)
settings = get_settings()


class CheckoutState(str, enum.Enum):
    STARTED = "started"
    VALIDATING = "validating"
    RESERVING_INVENTORY = "reserving_inventory"
    APPLYING_PROMOTION = "applying_promotion"
    PERSISTING = "persisting"
    COMMITTED = "committed"
    ABORTED = "aborted"


TERMINAL_STATES = frozenset({CheckoutState.COMMITTED, CheckoutState.ABORTED})


@dataclass(frozen=True)
class CheckoutReceipt:
    booking_id: int
    booking_reference: str
    total_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    ticket_count: int


class CheckoutTransaction:
    """Runs a single checkout through its state machine on one session."""

    def __init__(
        self,
        db: AsyncSession,
        auth: AuthContext,
        event_id: int,
        cart: Iterable[CartLine],
        promo_code: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self.db = db
        self.auth = auth
        self.event_id = event_id
        self.cart = list(cart)
        self.promo_code = promo_code.strip() if promo_code and promo_code.strip() else None
        self.now = now or datetime.now(timezone.utc)
        self.state = CheckoutState.STARTED

    def _enter(self, state: CheckoutState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Checkout already finished in state {self.state.value}")
        logger.debug(
            "checkout_state",
            event_id=self.event_id,
            customer_id=self.auth.user_id,
            from_state=self.state.value,
            to_state=state.value,
        )
        self.state = state

    async def run(self) -> CheckoutReceipt:
        start_time = time.perf_counter()
        try:
            receipt = await self._execute()
        except CheckoutError as exc:
            await self._abort()
            record_checkout_attempt(exc.kind.value.lower())
            logger.warning(
                "checkout_aborted",
                event_id=self.event_id,
                customer_id=self.auth.user_id,
                error_kind=exc.kind.value,
                reason=exc.message,
            )
            raise
        except Exception as exc:
            await self._abort()
            record_checkout_attempt("persistence_failure")
            logger.exception(
                "checkout_failed",
                event_id=self.event_id,
                customer_id=self.auth.user_id,
                error=str(exc),
            )
            raise PersistenceFailureError() from exc
        finally:
            checkout_latency.observe(time.perf_counter() - start_time)

        record_checkout_attempt("committed")
        return receipt

    async def _abort(self) -> None:
        await self.db.rollback()
        if self.state not in TERMINAL_STATES:
            self._enter(CheckoutState.ABORTED)

    async def _execute(self) -> CheckoutReceipt:
        self._enter(CheckoutState.VALIDATING)
        await self._load_bookable_event()
        lines = booking_assembler.normalize_cart(self.cart, settings.MAX_TICKETS_PER_LINE)

        self._enter(CheckoutState.RESERVING_INVENTORY)
        reservations = await self._reserve_all(lines)

        self._enter(CheckoutState.APPLYING_PROMOTION)
        promotion = await self._apply_promotion(reservations)
        totals = booking_assembler.compute_totals(reservations, promotion)

        self._enter(CheckoutState.PERSISTING)
        booking = await booking_assembler.assemble(
            self.db,
            customer_id=self.auth.user_id,
            event_id=self.event_id,
            reservations=reservations,
            totals=totals,
            promo_code=promotion.code if promotion is not None else None,
            now=self.now,
            max_reference_attempts=settings.BOOKING_REFERENCE_ATTEMPTS,
        )

        await self.db.commit()
        self._enter(CheckoutState.COMMITTED)

        logger.info(
            "checkout_committed",
            booking_id=booking.id,
            reference=booking.booking_reference,
            customer_id=self.auth.user_id,
            event_id=self.event_id,
            final_amount=str(totals.final_amount),
        )
        return self._receipt(booking.id, booking.booking_reference, totals, reservations)

    async def _load_bookable_event(self) -> Event:
        result = await self.db.execute(
            select(Event).where(Event.id == self.event_id).execution_options(populate_existing=True)
        )
        event = result.scalar_one_or_none()

        if event is None or not event.is_active:
            raise EventNotFoundError(self.event_id)
        if event.status != EventStatus.PUBLISHED.value:
            raise EventNotBookableError(self.event_id, "Event is not open for booking.")
        if ensure_utc(event.date) <= self.now:
            raise EventNotBookableError(self.event_id, "This event has already occurred.")
        return event

    async def _reserve_all(self, lines: list[CartLine]) -> list[Reservation]:
        """
        Reserve every line, locking category rows in ascending id order so
        two carts over the same categories cannot deadlock. Reservations are
        returned in cart order.
        """
        reserved: dict[int, Reservation] = {}
        for line in sorted(lines, key=lambda cart_line: cart_line.ticket_category_id):
            reserved[line.ticket_category_id] = await inventory.reserve(
                self.db, self.event_id, line.ticket_category_id, line.quantity
            )
        return [reserved[line.ticket_category_id] for line in lines]

    async def _apply_promotion(self, reservations: list[Reservation]) -> Optional[PromotionResult]:
        if self.promo_code is None:
            return None
        subtotal = booking_assembler.compute_totals(reservations).total_amount
        return await promotion_service.evaluate(
            self.db,
            self.promo_code,
            subtotal,
            now=self.now,
            event_id=self.event_id,
        )

    @staticmethod
    def _receipt(
        booking_id: int,
        reference: str,
        totals: BookingTotals,
        reservations: list[Reservation],
    ) -> CheckoutReceipt:
        return CheckoutReceipt(
            booking_id=booking_id,
            booking_reference=reference,
            total_amount=totals.total_amount,
            discount_amount=totals.discount_amount,
            final_amount=totals.final_amount,
            ticket_count=sum(r.quantity for r in reservations),
        )


async def submit_checkout(
    db: AsyncSession,
    auth: AuthContext,
    event_id: int,
    cart: Iterable[CartLine],
    promo_code: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CheckoutReceipt:
    """Run one checkout to completion. Raises CheckoutError on any failure."""
    return await CheckoutTransaction(db, auth, event_id, cart, promo_code, now).run()
