"""
Business logic services.
"""
from app.services.credit_service import CreditService
from app.services.pricing import get_pricing, find_pricing_item
from app.services.stripe_service import StripeService, stripe_service

__all__ = [
    "CreditService",
    "StripeService",
    "stripe_service",
    "get_pricing",
    "find_pricing_item",
]
