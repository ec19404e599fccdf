"""
Stripe service for payment processing.
Handles checkout session creation and order bookkeeping for credit purchases.
"""
import stripe
import logging
from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from app.config import settings
from app.models.base import utcnow
from app.models.order import Order, OrderStatus
from app.models.user import User
from app.services.pricing import find_pricing_item

logger = logging.getLogger(__name__)


class StripeService:
    """Service for Stripe payment operations."""

    def __init__(self):
        """Initialize Stripe with API key."""
        if settings.stripe_secret_key:
            stripe.api_key = settings.stripe_secret_key
            logger.info("Stripe initialized with secret key")
        else:
            logger.warning("Stripe secret key not configured")

    @staticmethod
    async def create_checkout_session(
        db: AsyncSession,
        user: User,
        product_id: str,
        success_url: str,
        cancel_url: str,
    ) -> Dict[str, Any]:
        """
        Create a pending order and a Stripe Checkout Session for it.

        Args:
            db: Database session
            user: User making the purchase
            product_id: Pricing item id
            success_url: URL to redirect after successful payment
            cancel_url: URL to redirect if payment is cancelled

        Returns:
            Dict with checkout_url, session_id, order_no and expires_at

        Raises:
            ValueError: If product not found, Stripe not configured, or Stripe fails
        """
        if not settings.stripe_secret_key:
            raise ValueError("Stripe is not configured")

        item = find_pricing_item(product_id)
        if not item:
            raise ValueError(f"Product '{product_id}' not found")

        order = Order(
            user_uuid=user.uuid,
            product_id=item.product_id,
            product_name=item.product_name,
            amount=item.amount,
            currency=item.currency,
            credits=item.credits,
            interval=item.interval,
            valid_months=item.valid_months,
            status=OrderStatus.CREATED,
        )
        db.add(order)
        await db.flush()

        price_data = {
            "currency": item.currency,
            "unit_amount": item.amount,
            "product_data": {"name": item.product_name},
        }
        mode = "payment"
        if item.interval in ("month", "year"):
            price_data["recurring"] = {"interval": item.interval}
            mode = "subscription"

        try:
            checkout_session = stripe.checkout.Session.create(
                line_items=[{"price_data": price_data, "quantity": 1}],
                mode=mode,
                success_url=success_url,
                cancel_url=cancel_url,
                client_reference_id=order.order_no,
                metadata={
                    "order_no": order.order_no,
                    "user_uuid": user.uuid,
                    "credits": str(item.credits),
                    "product_id": item.product_id,
                },
                # Customer email for receipt
                customer_email=user.email or None,
            )
        except stripe.StripeError as e:
            await db.rollback()
            logger.error(f"Stripe error creating checkout session: {e}")
            raise ValueError(f"Payment service error: {str(e)}")

        order.stripe_session_id = checkout_session.id
        await db.commit()

        logger.info(
            f"Created checkout session {checkout_session.id} for user {user.uuid}, "
            f"order {order.order_no} ({item.credits} credits)"
        )

        return {
            "checkout_url": checkout_session.url,
            "session_id": checkout_session.id,
            "order_no": order.order_no,
            "expires_at": getattr(checkout_session, "expires_at", None),
        }

    @staticmethod
    async def find_order(
        db: AsyncSession,
        order_no: Optional[str] = None,
        stripe_session_id: Optional[str] = None,
    ) -> Optional[Order]:
        """Find an order by order number or Stripe session id (order number wins)."""
        if order_no:
            query = select(Order).where(Order.order_no == order_no)
        elif stripe_session_id:
            query = select(Order).where(Order.stripe_session_id == stripe_session_id)
        else:
            return None

        result = await db.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    async def mark_order_paid(
        db: AsyncSession,
        order_no: Optional[str] = None,
        stripe_session_id: Optional[str] = None,
    ) -> Optional[Order]:
        """
        Mark an order as paid (called from webhook).
        Returns the order if found and updated, None if missing or already paid.

        The status change is a conditional UPDATE, so when Stripe delivers the
        same event twice at once only one delivery gets the order back.
        Does not commit; the caller grants credits in the same transaction.
        """
        order = await StripeService.find_order(db, order_no, stripe_session_id)

        if not order:
            logger.warning(f"Order not found (order_no={order_no}, session={stripe_session_id})")
            return None

        values = {"status": OrderStatus.PAID, "paid_at": utcnow()}
        if stripe_session_id and not order.stripe_session_id:
            values["stripe_session_id"] = stripe_session_id

        result = await db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status != OrderStatus.PAID)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        # Idempotency check - already paid
        if result.rowcount != 1:
            logger.info(f"Order {order.order_no} already paid, skipping")
            return None

        await db.refresh(order)
        return order

    @staticmethod
    async def mark_order_expired(db: AsyncSession, stripe_session_id: str) -> Optional[Order]:
        """Mark a still-open order as expired. Returns the order if it changed."""
        order = await StripeService.find_order(db, stripe_session_id=stripe_session_id)
        if not order:
            return None

        result = await db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == OrderStatus.CREATED)
            .values(status=OrderStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.rollback()
            return None

        await db.commit()
        await db.refresh(order)
        return order

    @staticmethod
    async def get_user_orders(
        db: AsyncSession,
        user_uuid: str,
        limit: int = 20,
    ) -> List[Order]:
        """
        Get order history for a user, newest first.

        Args:
            db: Database session
            user_uuid: User uuid
            limit: Maximum number of records
        """
        result = await db.execute(
            select(Order)
            .where(Order.user_uuid == user_uuid)
            .order_by(Order.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


# Global service instance
stripe_service = StripeService()
