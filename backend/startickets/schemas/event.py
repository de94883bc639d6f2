"""
Pydantic schemas for event availability responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel


class TicketCategoryResponse(BaseModel):
    id: int
    category_name: str
    price: Decimal
    total_quantity: int
    available_quantity: int
    description: Optional[str]

    model_config = {"from_attributes": True}


class EventAvailabilityResponse(BaseModel):
    id: int
    event_name: str
    description: Optional[str]
    date: datetime
    end_date: Optional[datetime]
    venue_id: int
    status: str
    ticket_categories: list[TicketCategoryResponse]

    model_config = {"from_attributes": True}
