"""
Promotion evaluator.

Discount math lives in one pure function, `compute_discount`, shared by the
side-effect-free preview and by the transactional redemption, so the amount
a customer is quoted and the amount they are charged cannot diverge.

An unknown, expired, inactive or exhausted code is not an error: checkout
proceeds undiscounted. Usage is incremented with a guarded UPDATE (same
discipline as the inventory ledger) so two concurrent redemptions of a
capped code cannot both pass the cap.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from startickets.models.promotion import PromotionalCampaign, DiscountType
from startickets.services.errors import InvalidPromotionInputError
from startickets.core.metrics import record_promotion
from startickets.core.logging import get_logger

logger = get_logger(__name__)

CENTS = Decimal("0.01")
MAX_CODE_LENGTH = 50


@dataclass(frozen=True)
class PromotionResult:
    campaign_id: int
    code: str
    discount_amount: Decimal


@dataclass(frozen=True)
class PromoPreview:
    valid: bool
    discount_amount: Decimal
    final_amount: Decimal
    message: str


def quantize_cents(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def ensure_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def compute_discount(discount_type: str, discount_value: Decimal, subtotal: Decimal) -> Decimal:
    """
    Percentage: subtotal * value / 100.
    Fixed: min(value, subtotal).
    Never more than the subtotal, so the final amount cannot go negative.
    """
    subtotal = Decimal(subtotal)
    value = Decimal(discount_value)

    if DiscountType(discount_type) == DiscountType.PERCENTAGE:
        discount = subtotal * (value / Decimal(100))
    else:
        discount = value

    return quantize_cents(min(discount, subtotal))


def is_redeemable(
    campaign: PromotionalCampaign,
    now: datetime,
    event_id: Optional[int] = None,
) -> bool:
    if not campaign.is_active:
        return False
    if not ensure_utc(campaign.start_date) <= now <= ensure_utc(campaign.end_date):
        return False
    if campaign.max_usage is not None and campaign.current_usage >= campaign.max_usage:
        return False
    if (
        campaign.applicable_event_id is not None
        and event_id is not None
        and campaign.applicable_event_id != event_id
    ):
        return False
    return True


def _validate_input(code: str, subtotal: Decimal) -> str:
    code = (code or "").strip()
    if len(code) > MAX_CODE_LENGTH:
        raise InvalidPromotionInputError(f"Promo code must be at most {MAX_CODE_LENGTH} characters.")
    if Decimal(subtotal) < 0:
        raise InvalidPromotionInputError("Subtotal cannot be negative.")
    return code


async def _find_by_code(db: AsyncSession, code: str) -> Optional[PromotionalCampaign]:
    result = await db.execute(
        select(PromotionalCampaign)
        .where(PromotionalCampaign.discount_code == code)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def evaluate(
    db: AsyncSession,
    code: str,
    subtotal: Decimal,
    now: Optional[datetime] = None,
    event_id: Optional[int] = None,
) -> Optional[PromotionResult]:
    """
    Redeem a code inside the caller's transaction.
    Returns None when the code does not apply; the caller continues undiscounted.
    """
    now = now or datetime.now(timezone.utc)
    code = _validate_input(code, subtotal)
    if not code:
        return None

    campaign = await _find_by_code(db, code)
    if campaign is None or not is_redeemable(campaign, now, event_id):
        record_promotion("not_applicable")
        logger.info("promotion_not_applicable", code=code, event_id=event_id)
        return None

    update_result = await db.execute(
        update(PromotionalCampaign)
        .where(
            PromotionalCampaign.id == campaign.id,
            PromotionalCampaign.is_active.is_(True),
            or_(
                PromotionalCampaign.max_usage.is_(None),
                PromotionalCampaign.current_usage < PromotionalCampaign.max_usage,
            ),
        )
        .values(current_usage=PromotionalCampaign.current_usage + 1)
    )

    if update_result.rowcount == 0:
        # Another checkout took the last use between our read and write
        record_promotion("not_applicable")
        logger.info("promotion_cap_reached", code=code, campaign_id=campaign.id)
        return None

    discount = compute_discount(campaign.discount_type, campaign.discount_value, subtotal)
    record_promotion("redeemed")
    logger.info(
        "promotion_redeemed",
        code=code,
        campaign_id=campaign.id,
        subtotal=str(subtotal),
        discount=str(discount),
    )
    return PromotionResult(campaign_id=campaign.id, code=code, discount_amount=discount)


async def preview(
    db: AsyncSession,
    code: str,
    subtotal: Decimal,
    now: Optional[datetime] = None,
    event_id: Optional[int] = None,
) -> PromoPreview:
    """
    Advisory check for live UI feedback. Does not touch usage counters and
    holds no locks; checkout re-evaluates the code atomically.
    """
    now = now or datetime.now(timezone.utc)
    code = _validate_input(code, subtotal)
    subtotal = quantize_cents(subtotal)

    campaign = await _find_by_code(db, code) if code else None
    if campaign is None or not is_redeemable(campaign, now, event_id):
        return PromoPreview(
            valid=False,
            discount_amount=Decimal("0.00"),
            final_amount=subtotal,
            message="Invalid or expired promo code.",
        )

    discount = compute_discount(campaign.discount_type, campaign.discount_value, subtotal)
    record_promotion("previewed")
    return PromoPreview(
        valid=True,
        discount_amount=discount,
        final_amount=subtotal - discount,
        message=f"Promo code applied! You save ${discount:.2f}",
    )
