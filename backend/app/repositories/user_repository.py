"""
Repository for user records.

Every method takes the caller's AsyncSession explicitly; nothing here holds
module-level connection state.

Error policy:
- Writes (insert) propagate failures after rolling back.
- Single-row reads return a tagged LookupResult (Found / NotFound / LookupFailed).
- List and aggregate reads degrade to an empty or absent value and log the error.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.user import User
from app.repositories.result import Found, LookupFailed, LookupResult, NotFound

logger = logging.getLogger(__name__)

# Operational errors raised by the driver before SQLAlchemy can wrap them
DB_READ_ERRORS = (SQLAlchemyError, OSError)

# Columns a partial update may touch
UPDATABLE_FIELDS = frozenset({
    "email",
    "nickname",
    "avatar_url",
    "phone",
    "credits",
    "locale",
    "signin_type",
    "signin_provider",
    "signin_openid",
    "signin_ip",
    "invite_code",
    "invited_by",
    "is_affiliate",
})


def to_utc_naive(value: Union[str, datetime]) -> datetime:
    """
    Normalize an ISO-8601 string or datetime to a naive UTC datetime.

    Naive inputs are assumed to already be UTC.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def group_counts_by_date(timestamps: Iterable[datetime]) -> Dict[str, int]:
    """
    Count timestamps per UTC calendar date ("YYYY-MM-DD").

    Keys keep the order in which dates are first seen.
    """
    counts: Dict[str, int] = {}
    for ts in timestamps:
        key = to_utc_naive(ts).date().isoformat()
        counts[key] = counts.get(key, 0) + 1
    return counts


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def insert_user(db: AsyncSession, user: User) -> User:
        """
        Insert a new user and return the stored row.

        Args:
            db: Database session
            user: Unsaved User instance

        Returns:
            The persisted User with generated fields (id, uuid, created_at)

        Raises:
            IntegrityError: On duplicate uuid or (email, signin_provider)
            SQLAlchemyError: On any other write failure
        """
        db.add(user)
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            if isinstance(e, IntegrityError):
                logger.error(f"Constraint violation inserting user {user.email}: {e.orig}")
            else:
                logger.error(f"Error inserting user {user.email}: {e}")
            raise

        await db.refresh(user)
        return user

    @staticmethod
    async def find_user_by_email(
        db: AsyncSession,
        email: str,
        provider: Optional[str] = None,
    ) -> LookupResult[User]:
        """
        Find a user by email, optionally scoped to a sign-in provider.

        More than one match (email without provider shared across providers)
        is reported as LookupFailed, not as an arbitrary pick.
        """
        query = select(User).where(User.email == email)
        if provider:
            query = query.where(User.signin_provider == provider)

        return await UserRepository._find_one(db, query, f"email={email} provider={provider}")

    @staticmethod
    async def find_user_by_uuid(db: AsyncSession, uuid: str) -> LookupResult[User]:
        """Find a user by its external uuid."""
        query = select(User).where(User.uuid == uuid)
        return await UserRepository._find_one(db, query, f"uuid={uuid}")

    @staticmethod
    async def _find_one(db: AsyncSession, query, description: str) -> LookupResult[User]:
        try:
            result = await db.execute(query)
            user = result.scalar_one_or_none()
        except DB_READ_ERRORS as e:
            logger.error(f"Error finding user by {description}: {e}")
            await db.rollback()
            return LookupFailed(e)

        if user is None:
            return NotFound()
        return Found(user)

    @staticmethod
    async def update_user(
        db: AsyncSession,
        uuid: str,
        updates: Dict[str, Any],
    ) -> Optional[User]:
        """
        Apply a partial update to the user matching uuid.

        Args:
            db: Database session
            uuid: User uuid
            updates: Column -> value mapping (only UPDATABLE_FIELDS)

        Returns:
            The updated User, or None if the user does not exist, a field is
            not updatable, or the write fails
        """
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            logger.error(f"Refusing to update user {uuid}: fields not updatable {sorted(unknown)}")
            return None

        try:
            result = await db.execute(
                update(User)
                .where(User.uuid == uuid)
                .values(**updates, updated_at=utcnow())
            )
            if result.rowcount == 0:
                await db.rollback()
                logger.warning(f"Update skipped, user {uuid} not found")
                return None
            await db.commit()

            refreshed = await db.execute(
                select(User)
                .where(User.uuid == uuid)
                .execution_options(populate_existing=True)
            )
            return refreshed.scalar_one()
        except DB_READ_ERRORS as e:
            logger.error(f"Error updating user {uuid}: {e}")
            await db.rollback()
            return None

    @staticmethod
    async def get_users_total(db: AsyncSession) -> Optional[int]:
        """Count all users. None if the read fails."""
        try:
            result = await db.execute(select(func.count(User.id)))
            return result.scalar_one() or 0
        except DB_READ_ERRORS as e:
            logger.error(f"Error counting users: {e}")
            await db.rollback()
            return None

    @staticmethod
    async def get_user_count_by_date(
        db: AsyncSession,
        start_time: Union[str, datetime],
    ) -> Optional[Dict[str, int]]:
        """
        Count sign-ups per UTC calendar date since start_time.

        Args:
            db: Database session
            start_time: Inclusive lower bound (ISO-8601 string or datetime)

        Returns:
            Mapping "YYYY-MM-DD" -> count in ascending date order,
            or None if the read fails
        """
        try:
            result = await db.execute(
                select(User.created_at)
                .where(User.created_at >= to_utc_naive(start_time))
                .order_by(User.created_at.asc())
            )
            timestamps = result.scalars().all()
        except DB_READ_ERRORS as e:
            logger.error(f"Error counting users by date: {e}")
            await db.rollback()
            return None

        return group_counts_by_date(timestamps)

    @staticmethod
    async def get_users(
        db: AsyncSession,
        page: int = 1,
        limit: int = 50,
    ) -> List[User]:
        """
        Page through users, newest first.

        Page N covers rows (N-1)*limit .. N*limit-1 inclusive.
        """
        page = max(page, 1)
        offset = (page - 1) * limit

        try:
            result = await db.execute(
                select(User)
                .order_by(User.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(result.scalars().all())
        except DB_READ_ERRORS as e:
            logger.error(f"Error fetching users page={page} limit={limit}: {e}")
            await db.rollback()
            return []

    @staticmethod
    async def get_users_by_uuids(db: AsyncSession, uuids: Sequence[str]) -> List[User]:
        """Fetch all users whose uuid is in uuids. No query is issued for an empty input."""
        if not uuids:
            return []

        try:
            result = await db.execute(
                select(User).where(User.uuid.in_(list(uuids)))
            )
            return list(result.scalars().all())
        except DB_READ_ERRORS as e:
            logger.error(f"Error fetching users by uuids: {e}")
            await db.rollback()
            return []
