"""
Tests for cart normalization, totals and persistence of the booking graph.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from startickets.models.booking import Booking, BookingDetail, Ticket
from startickets.services import booking_assembler
from startickets.services.booking_assembler import CartLine, compute_totals, normalize_cart
from startickets.services.errors import (
    InvalidQuantityError,
    NoLinesSelectedError,
    PersistenceFailureError,
)
from startickets.services.inventory import Reservation
from startickets.services.promotion_service import PromotionResult


def test_normalize_cart_drops_unselected_lines():
    lines = normalize_cart([CartLine(1, 2), CartLine(2, 0), CartLine(3, 1)], max_per_line=10)
    assert lines == [CartLine(1, 2), CartLine(3, 1)]


def test_normalize_cart_merges_repeated_categories_in_first_seen_order():
    lines = normalize_cart([CartLine(5, 1), CartLine(2, 1), CartLine(5, 3)], max_per_line=10)
    assert lines == [CartLine(5, 4), CartLine(2, 1)]


def test_normalize_cart_all_zero_is_no_lines_selected():
    with pytest.raises(NoLinesSelectedError):
        normalize_cart([CartLine(1, 0), CartLine(2, 0)], max_per_line=10)


def test_normalize_cart_empty_is_no_lines_selected():
    with pytest.raises(NoLinesSelectedError):
        normalize_cart([], max_per_line=10)


@pytest.mark.parametrize("quantity", [-1, 11])
def test_normalize_cart_rejects_out_of_range_quantity(quantity):
    with pytest.raises(InvalidQuantityError) as exc_info:
        normalize_cart([CartLine(1, 1), CartLine(7, quantity)], max_per_line=10)
    assert exc_info.value.ticket_category_id == 7


def test_normalize_cart_limits_merged_quantity():
    with pytest.raises(InvalidQuantityError) as exc_info:
        normalize_cart([CartLine(4, 10), CartLine(2, 1), CartLine(4, 10)], max_per_line=10)
    assert exc_info.value.ticket_category_id == 4
    assert exc_info.value.quantity == 20


def test_normalize_cart_allows_merged_quantity_at_limit():
    lines = normalize_cart([CartLine(4, 6), CartLine(4, 4)], max_per_line=10)
    assert lines == [CartLine(4, 10)]


def test_compute_totals_without_promotion():
    reservations = [
        Reservation(1, "General", 3, Decimal("20.00")),
        Reservation(2, "VIP", 1, Decimal("150.00")),
    ]
    totals = compute_totals(reservations)
    assert totals.total_amount == Decimal("210.00")
    assert totals.discount_amount == Decimal("0.00")
    assert totals.final_amount == Decimal("210.00")


def test_compute_totals_never_discounts_below_zero():
    reservations = [Reservation(1, "General", 1, Decimal("20.00"))]
    promotion = PromotionResult(campaign_id=1, code="BIG", discount_amount=Decimal("35.00"))
    totals = compute_totals(reservations, promotion)
    assert totals.discount_amount == Decimal("20.00")
    assert totals.final_amount == Decimal("0.00")


async def _assemble(db_session, catalog, reservations, **kwargs):
    totals = compute_totals(reservations)
    return await booking_assembler.assemble(
        db_session,
        customer_id=catalog.customer_id,
        event_id=catalog.event_id,
        reservations=reservations,
        totals=totals,
        promo_code=None,
        now=datetime.now(timezone.utc),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_assemble_persists_details_and_one_ticket_per_seat(db_session, catalog):
    reservations = [
        Reservation(catalog.general_id, "General", 3, Decimal("20.00")),
        Reservation(catalog.vip_id, "VIP", 2, Decimal("150.00")),
    ]
    booking = await _assemble(db_session, catalog, reservations)

    result = await db_session.execute(
        select(BookingDetail)
        .options(selectinload(BookingDetail.tickets))
        .where(BookingDetail.booking_id == booking.id)
        .order_by(BookingDetail.id)
        .execution_options(populate_existing=True)
    )
    details = result.scalars().all()

    assert [d.ticket_category_id for d in details] == [catalog.general_id, catalog.vip_id]
    assert [d.total_price for d in details] == [Decimal("60.00"), Decimal("300.00")]
    for detail in details:
        assert len(detail.tickets) == detail.quantity
        assert detail.total_price == detail.unit_price * detail.quantity

    tickets = [t for d in details for t in d.tickets]
    assert len({t.ticket_number for t in tickets}) == 5
    assert len({t.qr_code for t in tickets}) == 5
    assert all(t.qr_code.startswith(booking.booking_reference) for t in tickets)
    assert not any(t.is_used for t in tickets)
    await db_session.rollback()


@pytest.mark.asyncio
async def test_assemble_requires_reservations(db_session, catalog):
    with pytest.raises(NoLinesSelectedError):
        await _assemble(db_session, catalog, [])


@pytest.mark.asyncio
async def test_reference_collision_retries_with_fresh_reference(db_session, catalog, monkeypatch):
    reservations = [Reservation(catalog.general_id, "General", 1, Decimal("20.00"))]
    first = await _assemble(db_session, catalog, reservations, reference_factory=lambda now: "BKTAKEN")
    assert first.booking_reference == "BKTAKEN"

    candidates = iter(["BKTAKEN", "BKFRESH"])
    monkeypatch.setattr(
        booking_assembler.references, "generate_booking_reference", lambda now: next(candidates)
    )
    second = await _assemble(db_session, catalog, reservations)

    assert second.booking_reference == "BKFRESH"
    count = (await db_session.execute(select(func.count()).select_from(Booking))).scalar()
    assert count == 2
    await db_session.rollback()


@pytest.mark.asyncio
async def test_reference_collision_gives_up_after_bounded_attempts(db_session, catalog):
    reservations = [Reservation(catalog.general_id, "General", 1, Decimal("20.00"))]
    await _assemble(db_session, catalog, reservations, reference_factory=lambda now: "BKTAKEN")

    attempts = []

    def always_taken(now):
        attempts.append(now)
        return "BKTAKEN"

    with pytest.raises(PersistenceFailureError):
        await _assemble(
            db_session,
            catalog,
            reservations,
            reference_factory=always_taken,
            max_reference_attempts=3,
        )
    assert len(attempts) == 3

    tickets = (await db_session.execute(select(func.count()).select_from(Ticket))).scalar()
    assert tickets == 1
    await db_session.rollback()
