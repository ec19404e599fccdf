"""
Pricing and payment API endpoints.
Handles the public pricing catalog, Stripe checkout and order history.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User
from app.models.order import OrderStatus
from app.auth.dependencies import get_current_user
from app.schemas.pricing import (
    CheckoutResponse,
    CreateCheckoutRequest,
    OrderResponse,
    OrdersResponse,
    Pricing,
)
from app.services.pricing import get_pricing
from app.services.stripe_service import stripe_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/pricing", response_model=Pricing)
async def pricing():
    """
    Pricing catalog.

    No authentication required - pricing is public information.
    """
    return get_pricing()


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(
    request: CreateCheckoutRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Create a Stripe Checkout Session for a pricing item.

    Returns a URL to redirect the user to Stripe's hosted checkout page.
    Credits are granted by the webhook once payment completes.
    """
    try:
        result = await stripe_service.create_checkout_session(
            db=db,
            user=current_user,
            product_id=request.product_id,
            success_url=request.success_url,
            cancel_url=request.cancel_url,
        )
        return CheckoutResponse(**result)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/orders", response_model=OrdersResponse)
async def get_orders(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Get order history for the authenticated user.

    Returns list of past orders and total credits purchased.
    """
    orders = await stripe_service.get_user_orders(
        db=db,
        user_uuid=current_user.uuid,
        limit=limit,
    )

    total_credits = sum(o.credits for o in orders if o.status == OrderStatus.PAID)

    return OrdersResponse(
        orders=[
            OrderResponse(
                order_no=o.order_no,
                product_id=o.product_id,
                product_name=o.product_name,
                amount=o.amount,
                currency=o.currency,
                credits=o.credits,
                interval=o.interval,
                status=o.status.value,
                created_at=o.created_at.isoformat(),
                paid_at=o.paid_at.isoformat() if o.paid_at else None,
            )
            for o in orders
        ],
        total_credits_purchased=total_credits,
    )
