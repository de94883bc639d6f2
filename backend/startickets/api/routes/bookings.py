"""
Booking history, confirmation and cancellation endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from startickets.api.errors import error_responses
from startickets.db.session import get_db
from startickets.models.booking import PaymentStatus
from startickets.schemas.booking import (
    BookingCancelResponse,
    BookingConfirmationResponse,
    BookingListResponse,
    BookingSummaryResponse,
)
from startickets.services.booking_service import (
    cancel_booking,
    get_booking_confirmation,
    list_customer_bookings,
)
from startickets.core.security import AuthContext, require_customer

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("", response_model=BookingListResponse)
async def list_bookings_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    payment_status: Optional[PaymentStatus] = Query(None),
    auth: AuthContext = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    """Bookings of the authenticated customer, newest first."""
    bookings, total = await list_customer_bookings(
        db,
        auth.user_id,
        page=page,
        page_size=page_size,
        payment_status=payment_status.value if payment_status else None,
    )
    return BookingListResponse(
        bookings=[BookingSummaryResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{booking_id}", response_model=BookingConfirmationResponse, responses=error_responses(404))
async def get_booking_endpoint(
    booking_id: int,
    auth: AuthContext = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    """Booking confirmation with line items and tickets."""
    return await get_booking_confirmation(db, booking_id, auth.user_id)


@router.post(
    "/{booking_id}/cancel",
    response_model=BookingCancelResponse,
    responses=error_responses(404, 409),
)
async def cancel_booking_endpoint(
    booking_id: int,
    auth: AuthContext = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking and return its tickets to inventory."""
    booking = await cancel_booking(db, booking_id, auth.user_id)
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        status=booking.status,
    )
