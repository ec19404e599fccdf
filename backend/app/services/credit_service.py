"""
Credit service for managing generation credits.
Provides atomic debit/credit operations with safety checks.
Credits are simple integers - one image generation = GENERATION_COST credits.
"""
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from typing import Optional

from app.models.base import utcnow
from app.models.user import User, UserCredits

logger = logging.getLogger(__name__)


class CreditService:
    """Service for credit management with atomic operations."""

    # Cost per image generation request
    GENERATION_COST = 1

    @staticmethod
    async def get_user_credits(db: AsyncSession, user_uuid: str) -> Optional[UserCredits]:
        """
        Load the credit record for a user, bypassing any stale identity-map copy.

        Returns:
            UserCredits or None if the user has no credit record
        """
        result = await db.execute(
            select(UserCredits)
            .where(UserCredits.user_uuid == user_uuid)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create_user_credits(
        db: AsyncSession,
        user_uuid: str,
        initial: int = 0,
    ) -> UserCredits:
        """
        Create the credit record for a new user.

        Args:
            db: Database session
            user_uuid: Owning user's uuid
            initial: Starting balance (e.g. trial credits)

        Raises:
            ValueError: If initial is negative
            IntegrityError: If the user already has a credit record
        """
        if initial < 0:
            raise ValueError("Initial credits cannot be negative")

        user_credits = UserCredits(
            user_uuid=user_uuid,
            credits=initial,
            left_credits=initial,
        )
        db.add(user_credits)
        await db.flush()
        await CreditService._sync_snapshot(db, user_uuid)
        await db.commit()
        await db.refresh(user_credits)
        return user_credits

    @staticmethod
    async def has_credits(db: AsyncSession, user_uuid: str, amount: int = GENERATION_COST) -> bool:
        """
        Check if user has sufficient credits.

        Args:
            db: Database session
            user_uuid: User uuid
            amount: Required credits (default: 1 for one generation)

        Returns:
            True if user has >= amount credits left
        """
        result = await db.execute(
            select(UserCredits.left_credits).where(UserCredits.user_uuid == user_uuid)
        )
        left = result.scalar_one_or_none()

        if left is None:
            return False

        return left >= amount

    @staticmethod
    async def debit(db: AsyncSession, user_uuid: str, amount: int = GENERATION_COST) -> bool:
        """
        Atomically debit credits from user balance.
        Prevents negative balances under concurrent requests.

        Args:
            db: Database session
            user_uuid: User uuid
            amount: Credits to debit (default: 1)

        Returns:
            True if debit successful, False if insufficient credits

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError("Cannot debit negative amount")

        # Atomic update: only decrement if balance >= amount
        result = await db.execute(
            update(UserCredits)
            .where(UserCredits.user_uuid == user_uuid)
            .where(UserCredits.left_credits >= amount)
            .values(
                left_credits=UserCredits.left_credits - amount,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            await db.rollback()
            logger.info(f"Debit of {amount} refused for user {user_uuid}: insufficient credits")
            return False

        await CreditService._sync_snapshot(db, user_uuid)
        await db.commit()
        return True

    @staticmethod
    async def credit(
        db: AsyncSession,
        user_uuid: str,
        amount: int,
        recharge: bool = False,
        pro: bool = False,
    ) -> None:
        """
        Credit (grant) credits to user balance.
        Creates the credit record if the user has none yet.

        Args:
            db: Database session
            user_uuid: User uuid
            amount: Credits to add (must be positive)
            recharge: True when the grant comes from a purchase
            pro: True when the purchase is a subscription plan

        Raises:
            ValueError: If amount is negative or zero
        """
        if amount <= 0:
            raise ValueError("Credit amount must be positive")

        values = {
            "credits": UserCredits.credits + amount,
            "left_credits": UserCredits.left_credits + amount,
            "updated_at": utcnow(),
        }
        if recharge:
            values["is_recharged"] = True
        if pro:
            values["is_pro"] = True

        # Atomic increment
        result = await db.execute(
            update(UserCredits)
            .where(UserCredits.user_uuid == user_uuid)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            db.add(UserCredits(
                user_uuid=user_uuid,
                credits=amount,
                left_credits=amount,
                is_recharged=recharge,
                is_pro=pro,
            ))
            await db.flush()

        await CreditService._sync_snapshot(db, user_uuid)
        await db.commit()

    @staticmethod
    async def refund(db: AsyncSession, user_uuid: str, amount: int) -> None:
        """
        Return previously debited credits without counting them as a new grant.

        Raises:
            ValueError: If amount is negative or zero
        """
        if amount <= 0:
            raise ValueError("Refund amount must be positive")

        await db.execute(
            update(UserCredits)
            .where(UserCredits.user_uuid == user_uuid)
            .values(
                left_credits=UserCredits.left_credits + amount,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        await CreditService._sync_snapshot(db, user_uuid)
        await db.commit()

    @staticmethod
    async def get_balance(db: AsyncSession, user_uuid: str) -> int:
        """
        Get current credit balance for user.

        Returns:
            Remaining credits (0 if user has no credit record)
        """
        result = await db.execute(
            select(UserCredits.left_credits).where(UserCredits.user_uuid == user_uuid)
        )
        left = result.scalar_one_or_none()
        return left or 0

    @staticmethod
    async def _sync_snapshot(db: AsyncSession, user_uuid: str) -> None:
        # Copy left_credits onto users.credits inside the caller's transaction
        await db.execute(
            update(User)
            .where(User.uuid == user_uuid)
            .values(
                credits=select(UserCredits.left_credits)
                .where(UserCredits.user_uuid == user_uuid)
                .scalar_subquery()
            )
            .execution_options(synchronize_session=False)
        )
