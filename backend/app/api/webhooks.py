"""
Webhook endpoints for external services.
Handles Stripe checkout webhooks for credit purchases.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request, Header
from sqlalchemy.ext.asyncio import AsyncSession
import stripe
import logging

from app.database import get_db
from app.config import settings
from app.repositories.result import Found
from app.repositories.user_repository import UserRepository
from app.services.credit_service import CreditService
from app.services.stripe_service import stripe_service
from app.utils.logging import log_credits_changed
from app.utils.metrics import credits_granted_total, orders_paid_total

router = APIRouter()
logger = logging.getLogger(__name__)


def construct_event(payload: bytes, signature: str) -> dict:
    """Verify the Stripe signature and parse the event."""
    return stripe.Webhook.construct_event(payload, signature, settings.stripe_webhook_secret)


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    stripe_signature: str = Header(None, alias="stripe-signature")
):
    """
    Stripe webhook endpoint for processing checkout events.

    Handles:
    - checkout.session.completed: marks the order paid and grants its credits
    - checkout.session.expired: marks the order expired

    Security:
    - Validates Stripe signature
    - Idempotent via the order status (a paid order never grants twice)

    Expected metadata format:
    {
        "order_no": "<order uuid>",
        "user_uuid": "<user uuid>",
        "credits": "<integer>",
        "product_id": "<pricing item id>"
    }
    """
    if not settings.stripe_webhook_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Stripe webhook secret not configured"
        )

    if not stripe_signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe signature"
        )

    body = await request.body()

    try:
        event = construct_event(body, stripe_signature)
    except ValueError as e:
        logger.error(f"Invalid payload: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid payload: {str(e)}"
        )
    except stripe.SignatureVerificationError as e:
        logger.error(f"Invalid signature: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid signature: {str(e)}"
        )

    event_type = event["type"]
    session = event["data"]["object"]
    checkout_session_id = session.get("id")
    metadata = session.get("metadata") or {}
    order_no = metadata.get("order_no") or session.get("client_reference_id")

    if event_type == "checkout.session.completed":
        if not order_no and not checkout_session_id:
            logger.warning("Checkout session completed without order reference")
            return {"status": "ignored", "reason": "missing_metadata"}

        order = await stripe_service.mark_order_paid(
            db=db,
            order_no=order_no,
            stripe_session_id=checkout_session_id,
        )

        if order is None:
            # Unknown order or already paid (idempotent)
            await db.rollback()
            logger.info(f"Order for session {checkout_session_id} already processed or unknown")
            return {
                "status": "already_processed",
                "session_id": checkout_session_id
            }

        owner = await UserRepository.find_user_by_uuid(db, order.user_uuid)
        if not isinstance(owner, Found):
            await db.rollback()
            logger.warning(f"Owner {order.user_uuid} of order {order.order_no} not available")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Order owner not available, retry later"
            )

        # Marks the order paid and grants credits in one commit
        await CreditService.credit(
            db,
            order.user_uuid,
            order.credits,
            recharge=True,
            pro=order.interval in ("month", "year"),
        )
        orders_paid_total.labels(product_id=order.product_id).inc()
        credits_granted_total.labels(reason="purchase").inc(order.credits)
        log_credits_changed(
            logger,
            user_uuid=order.user_uuid,
            delta=order.credits,
            reason="purchase",
            order_no=order.order_no,
        )
        return {
            "status": "success",
            "user_uuid": order.user_uuid,
            "credits_added": order.credits,
            "order_no": order.order_no
        }

    if event_type == "checkout.session.expired":
        order = await stripe_service.mark_order_expired(db, checkout_session_id)
        logger.info(f"Checkout session expired: {checkout_session_id}")
        return {
            "status": "expired" if order else "logged",
            "event_type": event_type
        }

    # Log unhandled event types
    logger.info(f"Unhandled event type: {event_type}")
    return {"status": "ignored", "event_type": event_type}
