"""
Pydantic schemas for checkout request/response validation.
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class CartLineRequest(BaseModel):
    ticket_category_id: int
    quantity: int = 0


class CheckoutRequest(BaseModel):
    event_id: int
    lines: list[CartLineRequest] = Field(default_factory=list, max_length=50)
    promo_code: Optional[str] = None


class CheckoutResponse(BaseModel):
    booking_id: int
    booking_reference: str
    total_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    ticket_count: int

    model_config = {"from_attributes": True}


class PromoPreviewRequest(BaseModel):
    promo_code: str
    total_amount: Decimal = Field(..., max_digits=10, decimal_places=2)
    event_id: Optional[int] = None


class PromoPreviewResponse(BaseModel):
    valid: bool
    discount_amount: Decimal
    final_amount: Decimal
    message: str

    model_config = {"from_attributes": True}


class ErrorResponse(BaseModel):
    """Body of every domain error. Some kinds add fields such as ticket_category_id."""

    error_kind: str
    message: str

    model_config = {"extra": "allow"}
