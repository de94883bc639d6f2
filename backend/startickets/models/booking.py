"""
Booking graph produced by one checkout: Booking -> BookingDetail -> Ticket.

Key design decisions:
- `booking_reference`, `ticket_number` and `qr_code` are unique at the DB
  level; reference collisions are retried by the assembler
- BookingDetail snapshots the unit price so later price edits never
  rewrite what a customer paid
- Children cascade with their parent; nothing outside the graph owns them
"""

import enum

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Numeric, ForeignKey, Index, CheckConstraint,
)
from sqlalchemy.orm import relationship

from startickets.db.base import Base, TimestampMixin


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class BookingStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_reference = Column(String(50), nullable=False, unique=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    booking_date = Column(DateTime(timezone=True), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    final_amount = Column(Numeric(10, 2), nullable=False)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    status = Column(String(20), nullable=False, default=BookingStatus.ACTIVE.value)
    promo_code_used = Column(String(50), nullable=True)

    # Relationships
    customer = relationship("User", back_populates="bookings", lazy="noload")
    event = relationship("Event", lazy="noload")
    details = relationship(
        "BookingDetail",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingDetail.id",
        lazy="noload",
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="check_booking_total_non_negative"),
        CheckConstraint("discount_amount >= 0", name="check_booking_discount_non_negative"),
        CheckConstraint("final_amount >= 0", name="check_booking_final_non_negative"),
        CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed', 'refunded')",
            name="check_booking_payment_status",
        ),
        CheckConstraint("status IN ('active', 'cancelled')", name="check_booking_status"),
        # "My bookings" lists newest first per customer
        Index("ix_bookings_customer_date", "customer_id", "booking_date"),
    )

    @property
    def event_name(self) -> str:
        return self.event.event_name if self.event is not None else ""

    @property
    def ticket_count(self) -> int:
        return sum(detail.quantity for detail in self.details)

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, ref={self.booking_reference}, status={self.status})>"


class BookingDetail(Base):
    __tablename__ = "booking_details"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    ticket_category_id = Column(Integer, ForeignKey("ticket_categories.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    # Relationships
    booking = relationship("Booking", back_populates="details", lazy="noload")
    ticket_category = relationship("TicketCategory", lazy="noload")
    tickets = relationship(
        "Ticket",
        back_populates="booking_detail",
        cascade="all, delete-orphan",
        order_by="Ticket.id",
        lazy="noload",
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_detail_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="check_detail_unit_price_non_negative"),
    )

    @property
    def category_name(self) -> str:
        return self.ticket_category.category_name if self.ticket_category is not None else ""

    def __repr__(self) -> str:
        return f"<BookingDetail(id={self.id}, booking={self.booking_id}, qty={self.quantity})>"


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    booking_detail_id = Column(
        Integer, ForeignKey("booking_details.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ticket_number = Column(String(100), nullable=False, unique=True)
    qr_code = Column(String(500), nullable=False, unique=True)
    is_used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    booking_detail = relationship("BookingDetail", back_populates="tickets", lazy="noload")

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, number={self.ticket_number}, used={self.is_used})>"
