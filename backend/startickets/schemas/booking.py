"""
Pydantic schemas for booking confirmation and history responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel


class TicketResponse(BaseModel):
    ticket_number: str
    qr_code: str
    is_used: bool

    model_config = {"from_attributes": True}


class BookingDetailResponse(BaseModel):
    id: int
    ticket_category_id: int
    category_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    tickets: list[TicketResponse]

    model_config = {"from_attributes": True}


class BookingConfirmationResponse(BaseModel):
    id: int
    booking_reference: str
    event_id: int
    event_name: str
    booking_date: datetime
    total_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    payment_status: str
    status: str
    promo_code_used: Optional[str]
    details: list[BookingDetailResponse]

    model_config = {"from_attributes": True}


class BookingSummaryResponse(BaseModel):
    id: int
    booking_reference: str
    event_id: int
    event_name: str
    booking_date: datetime
    final_amount: Decimal
    payment_status: str
    status: str
    ticket_count: int

    model_config = {"from_attributes": True}


class BookingListResponse(BaseModel):
    bookings: list[BookingSummaryResponse]
    total: int
    page: int
    page_size: int


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: str
