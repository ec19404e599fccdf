"""
Tests for CreditService.
"""
import asyncio
import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.repositories.user_repository import UserRepository
from app.services.credit_service import CreditService
from app.models.user import User


async def snapshot_credits(db: AsyncSession, user_uuid: str) -> int:
    result = await db.execute(
        select(User.credits)
        .where(User.uuid == user_uuid)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestCreditService:
    """Tests for CreditService."""

    @pytest.mark.asyncio
    async def test_has_credits_sufficient(self, db_session: AsyncSession, test_user: User):
        """Test has_credits with sufficient balance."""
        result = await CreditService.has_credits(db_session, test_user.uuid, amount=1)
        assert result is True

    @pytest.mark.asyncio
    async def test_has_credits_exact_amount(self, db_session: AsyncSession, test_user: User):
        """Test has_credits with exact balance."""
        result = await CreditService.has_credits(db_session, test_user.uuid, amount=10)
        assert result is True

    @pytest.mark.asyncio
    async def test_has_credits_insufficient(self, db_session: AsyncSession, test_user: User):
        """Test has_credits with insufficient balance."""
        result = await CreditService.has_credits(db_session, test_user.uuid, amount=100)
        assert result is False

    @pytest.mark.asyncio
    async def test_has_credits_user_not_found(self, db_session: AsyncSession):
        """Test has_credits for a user without a credit record."""
        result = await CreditService.has_credits(db_session, str(uuid.uuid4()), amount=1)
        assert result is False

    @pytest.mark.asyncio
    async def test_has_credits_zero_credits(self, db_session: AsyncSession, test_user_no_credits: User):
        """Test has_credits with zero balance."""
        result = await CreditService.has_credits(db_session, test_user_no_credits.uuid, amount=1)
        assert result is False

    @pytest.mark.asyncio
    async def test_debit_success(self, db_session: AsyncSession, test_user: User):
        """Test successful debit."""
        initial_balance = await CreditService.get_balance(db_session, test_user.uuid)

        result = await CreditService.debit(db_session, test_user.uuid, amount=1)

        assert result is True
        new_balance = await CreditService.get_balance(db_session, test_user.uuid)
        assert new_balance == initial_balance - 1

    @pytest.mark.asyncio
    async def test_debit_insufficient_funds(self, db_session: AsyncSession, test_user: User):
        """Test debit with insufficient funds leaves the balance untouched."""
        result = await CreditService.debit(db_session, test_user.uuid, amount=100)

        assert result is False
        assert await CreditService.get_balance(db_session, test_user.uuid) == 10

    @pytest.mark.asyncio
    async def test_debit_negative_amount(self, db_session: AsyncSession, test_user: User):
        """Test debit with negative amount raises error."""
        with pytest.raises(ValueError, match="negative"):
            await CreditService.debit(db_session, test_user.uuid, amount=-1)

    @pytest.mark.asyncio
    async def test_debit_zero_balance(self, db_session: AsyncSession, test_user_no_credits: User):
        """Test debit with zero balance."""
        result = await CreditService.debit(db_session, test_user_no_credits.uuid, amount=1)
        assert result is False

    @pytest.mark.asyncio
    async def test_debit_updates_user_snapshot(self, db_session: AsyncSession, test_user: User):
        """users.credits mirrors left_credits after a debit."""
        await CreditService.debit(db_session, test_user.uuid, amount=4)

        assert await snapshot_credits(db_session, test_user.uuid) == 6

    @pytest.mark.asyncio
    async def test_credit_success(self, db_session: AsyncSession, test_user: User):
        """Test successful credit."""
        initial_balance = await CreditService.get_balance(db_session, test_user.uuid)

        await CreditService.credit(db_session, test_user.uuid, amount=5)

        new_balance = await CreditService.get_balance(db_session, test_user.uuid)
        assert new_balance == initial_balance + 5
        assert await snapshot_credits(db_session, test_user.uuid) == new_balance

    @pytest.mark.asyncio
    async def test_credit_counts_toward_total_granted(self, db_session: AsyncSession, test_user: User):
        """A grant raises both the lifetime total and the remaining balance."""
        await CreditService.credit(db_session, test_user.uuid, amount=5)

        record = await CreditService.get_user_credits(db_session, test_user.uuid)
        assert record.credits == 15
        assert record.left_credits == 15

    @pytest.mark.asyncio
    async def test_credit_purchase_flags(self, db_session: AsyncSession, test_user: User):
        """Purchases mark the record recharged, subscriptions also pro."""
        await CreditService.credit(db_session, test_user.uuid, amount=600, recharge=True, pro=True)

        record = await CreditService.get_user_credits(db_session, test_user.uuid)
        assert record.is_recharged is True
        assert record.is_pro is True

    @pytest.mark.asyncio
    async def test_credit_creates_missing_record(self, db_session: AsyncSession):
        """Granting to a user without a credit record creates one."""
        user = await UserRepository.insert_user(db_session, User(email="fresh@example.com", signin_provider="password"))
        assert await CreditService.get_user_credits(db_session, user.uuid) is None

        await CreditService.credit(db_session, user.uuid, amount=7)

        assert await CreditService.get_balance(db_session, user.uuid) == 7
        assert await snapshot_credits(db_session, user.uuid) == 7

    @pytest.mark.asyncio
    async def test_credit_negative_amount(self, db_session: AsyncSession, test_user: User):
        """Test credit with negative amount raises error."""
        with pytest.raises(ValueError, match="must be positive"):
            await CreditService.credit(db_session, test_user.uuid, amount=-5)

    @pytest.mark.asyncio
    async def test_credit_zero_amount(self, db_session: AsyncSession, test_user: User):
        """Test credit with zero amount raises error."""
        with pytest.raises(ValueError, match="must be positive"):
            await CreditService.credit(db_session, test_user.uuid, amount=0)

    @pytest.mark.asyncio
    async def test_refund_restores_balance_only(self, db_session: AsyncSession, test_user: User):
        """A refund gives back remaining credits without raising the lifetime total."""
        await CreditService.debit(db_session, test_user.uuid, amount=1)
        await CreditService.refund(db_session, test_user.uuid, amount=1)

        record = await CreditService.get_user_credits(db_session, test_user.uuid)
        assert record.left_credits == 10
        assert record.credits == 10
        assert await snapshot_credits(db_session, test_user.uuid) == 10

    @pytest.mark.asyncio
    async def test_refund_zero_amount(self, db_session: AsyncSession, test_user: User):
        """Test refund with zero amount raises error."""
        with pytest.raises(ValueError, match="must be positive"):
            await CreditService.refund(db_session, test_user.uuid, amount=0)

    @pytest.mark.asyncio
    async def test_get_balance(self, db_session: AsyncSession, test_user: User):
        """Test getting user balance."""
        balance = await CreditService.get_balance(db_session, test_user.uuid)
        assert balance == 10

    @pytest.mark.asyncio
    async def test_get_balance_user_not_found(self, db_session: AsyncSession):
        """Test getting balance for non-existent user."""
        balance = await CreditService.get_balance(db_session, str(uuid.uuid4()))
        assert balance == 0

    @pytest.mark.asyncio
    async def test_create_user_credits_negative(self, db_session: AsyncSession, test_user: User):
        """Negative starting balances are rejected."""
        with pytest.raises(ValueError, match="cannot be negative"):
            await CreditService.create_user_credits(db_session, test_user.uuid, -1)

    @pytest.mark.asyncio
    async def test_create_user_credits_twice(self, db_session: AsyncSession, test_user: User):
        """A user has at most one credit record."""
        with pytest.raises(IntegrityError):
            await CreditService.create_user_credits(db_session, test_user.uuid, 5)


class TestConcurrentDebits:
    """Debits racing on separate sessions never overdraw the balance."""

    @pytest.mark.asyncio
    async def test_concurrent_debits_never_go_negative(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker,
        make_user,
    ):
        user = await make_user(db_session, "race@example.com", 5)

        async def attempt() -> bool:
            async with session_factory() as session:
                return await CreditService.debit(session, user.uuid, amount=1)

        outcomes = await asyncio.gather(*(attempt() for _ in range(8)))

        assert sum(outcomes) == 5
        assert await CreditService.get_balance(db_session, user.uuid) == 0
        assert await snapshot_credits(db_session, user.uuid) == 0
