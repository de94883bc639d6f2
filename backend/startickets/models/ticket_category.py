"""
TicketCategory model: a priced tier of admission within one event.

Key design decisions:
- `available_quantity` is the contended counter; only the inventory ledger
  writes it, always through a guarded UPDATE
- CHECK constraints are the final safety net against overselling
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from startickets.db.base import Base, TimestampMixin


class TicketCategory(Base, TimestampMixin):
    __tablename__ = "ticket_categories"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    category_name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    total_quantity = Column(Integer, nullable=False)
    available_quantity = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    event = relationship("Event", back_populates="ticket_categories", lazy="noload")

    __table_args__ = (
        CheckConstraint("available_quantity >= 0", name="check_available_quantity_non_negative"),
        CheckConstraint("available_quantity <= total_quantity", name="check_available_lte_total"),
        CheckConstraint("total_quantity >= 0", name="check_total_quantity_non_negative"),
        CheckConstraint("price >= 0", name="check_ticket_price_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<TicketCategory(id={self.id}, name={self.category_name}, "
            f"available={self.available_quantity}/{self.total_quantity})>"
        )
