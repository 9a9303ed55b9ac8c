"""
Pricing tier configuration for Vyralize.

Each paid tier is a monthly Stripe subscription that grants a fixed number of
credits per billing cycle. One credit pays for one pipeline run. Stripe price
ids come from settings so test and live mode can use different catalogs.
"""
from typing import Any, Dict, Optional

from app.core.config import settings


FREE_TIER = "free"

PRICING_TIERS: Dict[str, Dict[str, Any]] = {
    "starter": {
        "name": "Starter",
        "credits_per_cycle": 10,
        "price_setting": "stripe_starter_price_id",
    },
    "creator": {
        "name": "Creator",
        "credits_per_cycle": 35,
        "price_setting": "stripe_creator_price_id",
    },
    "influencer": {
        "name": "Influencer",
        "credits_per_cycle": 75,
        "price_setting": "stripe_influencer_price_id",
    },
    "agency": {
        "name": "Agency",
        "credits_per_cycle": 160,
        "price_setting": "stripe_agency_price_id",
    },
}


def get_price_id(tier: str) -> Optional[str]:
    """
    Get the configured Stripe price id for a tier.

    Args:
        tier: Tier name (starter, creator, influencer, agency)

    Returns:
        Price id, or None if the tier is unknown or not configured
    """
    config = PRICING_TIERS.get(tier)
    if not config:
        return None
    return getattr(settings, config["price_setting"]) or None


def get_tier_for_price(price_id: Optional[str]) -> Optional[str]:
    """
    Map a Stripe price id back to its tier name.

    Returns:
        Tier name, or None for an unknown price id
    """
    if not price_id:
        return None
    for tier in PRICING_TIERS:
        if get_price_id(tier) == price_id:
            return tier
    return None


def get_credits_for_price(price_id: Optional[str]) -> Optional[int]:
    """
    Credits granted per billing cycle for a subscription price.

    Returns:
        Credit amount, or None for an unknown price id
    """
    tier = get_tier_for_price(price_id)
    if tier is None:
        return None
    return PRICING_TIERS[tier]["credits_per_cycle"]


def is_paid_tier(tier: Optional[str]) -> bool:
    return tier in PRICING_TIERS
