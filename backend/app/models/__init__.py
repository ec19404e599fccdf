"""
Database models package.
"""
from app.models.base import Base
from app.models.user import User, UserCredits
from app.models.order import Order, OrderStatus

__all__ = [
    "Base",
    "User",
    "UserCredits",
    "Order",
    "OrderStatus",
]
