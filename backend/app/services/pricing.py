"""
Pricing catalog.
Single source of truth for what can be bought and how many credits it grants.
"""
from typing import List, Optional

from app.schemas.pricing import Pricing, PricingGroup, PricingItem


PRICING_GROUPS: List[PricingGroup] = [
    PricingGroup(name="one-time", title="Credit packs", description="Pay once, use any time"),
    PricingGroup(name="subscription", title="Plans", label="Save 20%", description="Monthly credits at a lower price"),
]

PRICING_ITEMS: List[PricingItem] = [
    PricingItem(
        product_id="starter",
        product_name="Starter Pack",
        title="Starter",
        description="Try image generation without a subscription",
        price="$4.90",
        features_title="Includes",
        features=["50 image generations", "Standard quality", "Credits never expire"],
        interval="one-time",
        amount=490,
        credits=50,
        group="one-time",
        button_text="Buy credits",
    ),
    PricingItem(
        product_id="creator",
        product_name="Creator Pack",
        title="Creator",
        description="For regular creators",
        price="$19.90",
        original_price="$24.50",
        features_title="Includes",
        features=["250 image generations", "HD quality", "Credits never expire"],
        is_featured=True,
        label="Popular",
        interval="one-time",
        amount=1990,
        credits=250,
        group="one-time",
        button_text="Buy credits",
    ),
    PricingItem(
        product_id="pro-monthly",
        product_name="Pro Monthly",
        title="Pro",
        description="Best for teams and heavy usage",
        price="$29",
        unit="/month",
        features_title="Everything in Creator, plus",
        features=["600 generations per month", "Priority queue", "Image-to-image"],
        interval="month",
        amount=2900,
        credits=600,
        valid_months=1,
        group="subscription",
        button_text="Subscribe",
    ),
    PricingItem(
        product_id="pro-yearly",
        product_name="Pro Yearly",
        title="Pro (yearly)",
        description="Pro billed once a year",
        price="$278",
        original_price="$348",
        unit="/year",
        features_title="Everything in Pro Monthly",
        features=["7200 generations per year", "Priority queue", "Image-to-image"],
        interval="year",
        amount=27800,
        credits=7200,
        valid_months=12,
        group="subscription",
        button_text="Subscribe",
    ),
]


def get_pricing() -> Pricing:
    """Full pricing section as displayed on the pricing page."""
    return Pricing(
        title="Pricing",
        description="Pick a credit pack or a plan. One credit generates one image.",
        items=PRICING_ITEMS,
        groups=PRICING_GROUPS,
    )


def find_pricing_item(product_id: str) -> Optional[PricingItem]:
    """Look up a pricing item by product id."""
    for item in PRICING_ITEMS:
        if item.product_id == product_id:
            return item
    return None
