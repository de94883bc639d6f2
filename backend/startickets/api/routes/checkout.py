"""
Checkout endpoints: purchase and promo code preview.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from startickets.api.errors import error_responses
from startickets.db.session import get_db
from startickets.schemas.checkout import (
    CheckoutRequest,
    CheckoutResponse,
    PromoPreviewRequest,
    PromoPreviewResponse,
)
from startickets.services import promotion_service
from startickets.services.booking_assembler import CartLine
from startickets.services.checkout_service import submit_checkout
from startickets.core.security import AuthContext, require_customer

router = APIRouter(prefix="/checkout", tags=["Checkout"])


@router.post(
    "",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(404, 409, 422, 503),
)
async def checkout_endpoint(
    checkout_data: CheckoutRequest,
    auth: AuthContext = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    """
    Buy tickets for one event in a single all-or-nothing transaction.

    Stock for every line is reserved, the promo code (if any) is redeemed
    and the booking with its tickets is written together. On any failure
    nothing is kept and the response carries an error_kind.
    """
    cart = [CartLine(line.ticket_category_id, line.quantity) for line in checkout_data.lines]
    return await submit_checkout(
        db,
        auth,
        checkout_data.event_id,
        cart,
        promo_code=checkout_data.promo_code,
    )


@router.post("/promo-preview", response_model=PromoPreviewResponse, responses=error_responses(422))
async def promo_preview_endpoint(
    preview_data: PromoPreviewRequest,
    auth: AuthContext = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    """Check a promo code against a cart total without redeeming it."""
    return await promotion_service.preview(
        db,
        preview_data.promo_code,
        preview_data.total_amount,
        event_id=preview_data.event_id,
    )
