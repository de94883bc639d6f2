from startickets.models.user import User
from startickets.models.venue import Venue
from startickets.models.event import Event, EventCategory, EventStatus
from startickets.models.ticket_category import TicketCategory
from startickets.models.promotion import PromotionalCampaign, DiscountType
from startickets.models.booking import Booking, BookingDetail, Ticket, BookingStatus, PaymentStatus

__all__ = [
    "User", "Venue",
    "Event", "EventCategory", "EventStatus", "TicketCategory",
    "PromotionalCampaign", "DiscountType",
    "Booking", "BookingDetail", "Ticket", "BookingStatus", "PaymentStatus",
]
