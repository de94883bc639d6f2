from startickets.schemas.checkout import (
    CartLineRequest, CheckoutRequest, CheckoutResponse,
    PromoPreviewRequest, PromoPreviewResponse, ErrorResponse,
)
from startickets.schemas.booking import (
    TicketResponse, BookingDetailResponse, BookingConfirmationResponse,
    BookingSummaryResponse, BookingListResponse, BookingCancelResponse,
)
from startickets.schemas.event import TicketCategoryResponse, EventAvailabilityResponse

__all__ = [
    "CartLineRequest", "CheckoutRequest", "CheckoutResponse",
    "PromoPreviewRequest", "PromoPreviewResponse", "ErrorResponse",
    "TicketResponse", "BookingDetailResponse", "BookingConfirmationResponse",
    "BookingSummaryResponse", "BookingListResponse", "BookingCancelResponse",
    "TicketCategoryResponse", "EventAvailabilityResponse",
]
