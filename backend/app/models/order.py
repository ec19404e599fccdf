"""
Order model for tracking Stripe credit purchases.
Ensures idempotency and provides audit trail for credit grants.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum, Index
import enum

from app.models.base import Base, generate_uuid, utcnow


class OrderStatus(str, enum.Enum):
    """Status of a purchase order."""
    CREATED = "created"
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"


class Order(Base):
    """
    Order model for credit purchases via Stripe Checkout.

    Used for:
    - Idempotency: a paid order never grants credits twice
    - Audit trail: every purchase attempt is recorded
    """

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_no = Column(String(36), nullable=False, unique=True, default=generate_uuid)
    user_uuid = Column(String(36), ForeignKey("users.uuid"), nullable=False, index=True)

    # Stripe identifier, filled once the checkout session exists
    stripe_session_id = Column(String(255), unique=True, nullable=True, index=True)

    # Pricing item snapshot
    product_id = Column(String(64), nullable=False)
    product_name = Column(String(255), nullable=True)
    amount = Column(Integer, nullable=False)  # Minor units (e.g., 999 = $9.99)
    currency = Column(String(3), nullable=False, default="usd")
    credits = Column(Integer, nullable=False)
    interval = Column(String(16), nullable=False, default="one-time")
    valid_months = Column(Integer, nullable=True)

    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.CREATED)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    paid_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_order_user_created", "user_uuid", "created_at"),
    )

    def __repr__(self):
        return (
            f"<Order(order_no={self.order_no}, user_uuid={self.user_uuid}, "
            f"credits={self.credits}, status={self.status})>"
        )
