"""
Pydantic schemas for the pricing catalog and orders.
"""
from pydantic import BaseModel, Field
from typing import List, Literal, Optional


class PricingGroup(BaseModel):
    """Tab/segment on the pricing page (e.g. one-time vs. subscription)."""
    name: str
    title: Optional[str] = None
    description: Optional[str] = None
    label: Optional[str] = None


class PricingItem(BaseModel):
    """A purchasable plan or credit pack."""
    product_id: str
    product_name: str
    title: Optional[str] = None
    description: Optional[str] = None
    label: Optional[str] = None
    price: Optional[str] = None  # Display price, e.g. "$9.90"
    original_price: Optional[str] = None
    unit: Optional[str] = None  # Display unit, e.g. "/month"
    features_title: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    tip: Optional[str] = None
    is_featured: bool = False
    interval: Literal["month", "year", "one-time"] = "one-time"
    amount: int = Field(..., gt=0, description="Charge in minor currency units")
    currency: str = "usd"
    credits: int = Field(..., gt=0)
    valid_months: Optional[int] = None
    group: Optional[str] = None
    button_text: Optional[str] = None


class Pricing(BaseModel):
    """Whole pricing section."""
    disabled: bool = False
    name: str = "pricing"
    title: Optional[str] = None
    description: Optional[str] = None
    items: List[PricingItem] = Field(default_factory=list)
    groups: List[PricingGroup] = Field(default_factory=list)


class CreateCheckoutRequest(BaseModel):
    """Request schema for creating a checkout session."""
    product_id: str = Field(..., description="Pricing item to purchase")
    success_url: str = Field(..., description="URL to redirect after successful payment")
    cancel_url: str = Field(..., description="URL to redirect if payment is cancelled")


class CheckoutResponse(BaseModel):
    """Response schema for checkout session."""
    checkout_url: str
    session_id: str
    order_no: str
    expires_at: Optional[int] = None


class OrderResponse(BaseModel):
    """Schema for a single order in history."""
    order_no: str
    product_id: str
    product_name: Optional[str] = None
    amount: int
    currency: str
    credits: int
    interval: str
    status: str
    created_at: str
    paid_at: Optional[str] = None


class OrdersResponse(BaseModel):
    """Response schema for order history."""
    orders: List[OrderResponse]
    total_credits_purchased: int
