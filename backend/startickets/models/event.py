"""
Event model and its genre lookup table.

Key design decisions:
- Only published, active, future-dated events are bookable
- Index on `date` for range queries (e.g., "events this week")
- Ticket inventory lives on TicketCategory, not on the event itself
"""

import enum

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from startickets.db.base import Base, TimestampMixin


class EventStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class EventCategory(Base, TimestampMixin):
    __tablename__ = "event_categories"

    id = Column(Integer, primary_key=True, index=True)
    category_name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<EventCategory(id={self.id}, name={self.category_name})>"


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    event_name = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    category_id = Column(Integer, ForeignKey("event_categories.id"), nullable=False)
    status = Column(String(20), nullable=False, default=EventStatus.DRAFT.value)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    venue = relationship("Venue", lazy="noload")
    category = relationship("EventCategory", lazy="noload")
    ticket_categories = relationship(
        "TicketCategory",
        back_populates="event",
        order_by="TicketCategory.id",
        lazy="noload",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'published', 'cancelled', 'completed')",
            name="check_event_status",
        ),
        Index("ix_events_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name={self.event_name}, status={self.status})>"
