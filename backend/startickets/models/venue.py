"""
Venue reference data. Maintained by administrators outside this service.
"""

from sqlalchemy import Column, Integer, String, Boolean, Text, CheckConstraint

from startickets.db.base import Base, TimestampMixin


class Venue(Base, TimestampMixin):
    __tablename__ = "venues"

    id = Column(Integer, primary_key=True, index=True)
    venue_name = Column(String(200), nullable=False)
    address = Column(Text, nullable=False)
    city = Column(String(100), nullable=False)
    country = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_venue_capacity_positive"),
    )

    def __repr__(self) -> str:
        return f"<Venue(id={self.id}, name={self.venue_name}, city={self.city})>"
