"""
PromotionalCampaign model: a discount code with an active window and an
optional usage cap.
"""

import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, ForeignKey, CheckConstraint

from startickets.db.base import Base, TimestampMixin


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PromotionalCampaign(Base, TimestampMixin):
    __tablename__ = "promotional_campaigns"

    id = Column(Integer, primary_key=True, index=True)
    campaign_name = Column(String(200), nullable=False)
    discount_code = Column(String(50), unique=True, nullable=True)
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(Numeric(10, 2), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    max_usage = Column(Integer, nullable=True)
    current_usage = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    # Restricts the code to one event when set
    applicable_event_id = Column(Integer, ForeignKey("events.id"), nullable=True)

    __table_args__ = (
        CheckConstraint("discount_type IN ('percentage', 'fixed')", name="check_discount_type"),
        CheckConstraint("discount_value >= 0", name="check_discount_value_non_negative"),
        CheckConstraint("current_usage >= 0", name="check_current_usage_non_negative"),
        CheckConstraint(
            "max_usage IS NULL OR current_usage <= max_usage",
            name="check_usage_within_cap",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<PromotionalCampaign(id={self.id}, code={self.discount_code}, "
            f"usage={self.current_usage}/{self.max_usage})>"
        )
