"""
FastAPI dependencies for authentication.
Provides get_current_user, which verifies Firebase ID tokens and creates the
account (with trial credits) on first sign-in.
"""
import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.firebase import verify_firebase_token
from app.config import settings
from app.database import get_db
from app.models.user import User
from app.repositories.result import Found, LookupFailed
from app.repositories.user_repository import UserRepository
from app.services.credit_service import CreditService
from app.utils.logging import log_user_created, log_credits_changed
from app.utils.metrics import users_created_total, credits_granted_total

logger = logging.getLogger(__name__)

# HTTPBearer scheme for extracting Authorization header
security = HTTPBearer()


def client_ip(request: Request) -> str:
    """Originating IP, honouring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else ""


def user_from_claims(claims: dict, ip: str) -> User:
    """Build an unsaved User from verified token claims."""
    email = claims["email"]
    provider = (claims.get("firebase") or {}).get("sign_in_provider")
    return User(
        email=email,
        nickname=claims.get("name") or email.split("@")[0],
        avatar_url=claims.get("picture") or "",
        phone=claims.get("phone_number"),
        signin_type="email" if provider in (None, "password", "emailLink") else "oauth",
        signin_provider=provider,
        signin_openid=claims.get("uid"),
        signin_ip=ip,
    )


async def ensure_credit_record(db: AsyncSession, user: User) -> None:
    """
    Give an account without a credit record its trial credits.

    Runs on every sign-in, so an account whose credit write failed at
    creation gets its record on the next request.

    Raises:
        HTTPException 503: If the credit record cannot be written
    """
    try:
        if await CreditService.get_user_credits(db, user.uuid) is not None:
            return
        await CreditService.create_user_credits(db, user.uuid, settings.trial_credits)
    except IntegrityError:
        # A concurrent request created the record first
        await db.rollback()
        await db.refresh(user)
        return
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error creating credit record for {user.uuid}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not set up credits, try again"
        )

    await db.refresh(user)
    if settings.trial_credits:
        credits_granted_total.labels(reason="trial").inc(settings.trial_credits)
        log_credits_changed(logger, user_uuid=user.uuid, delta=settings.trial_credits, reason="trial")


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    FastAPI dependency that verifies a Firebase ID token and returns the User.

    Flow:
    1. Verify Bearer token with Firebase Admin SDK
    2. Look up user by (email, sign-in provider)
    3. Found -> return; NotFound -> create user and trial credits;
       either way an account missing its credit record gets one;
       LookupFailed -> 503 (a transient outage never creates a duplicate account)

    Raises:
        HTTPException 401: If token is missing, invalid, or has no email
        HTTPException 503: If the user store is unavailable
    """
    token = credentials.credentials

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        claims = verify_firebase_token(token)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    email = claims.get("email")
    if not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing email"
        )
    provider = (claims.get("firebase") or {}).get("sign_in_provider")

    lookup = await UserRepository.find_user_by_email(db, email, provider)
    if isinstance(lookup, Found):
        await ensure_credit_record(db, lookup.value)
        return lookup.value
    if isinstance(lookup, LookupFailed):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User store unavailable, try again"
        )

    try:
        user = await UserRepository.insert_user(db, user_from_claims(claims, client_ip(request)))
    except IntegrityError:
        # A concurrent first request for the same account won the insert
        retry = await UserRepository.find_user_by_email(db, email, provider)
        if isinstance(retry, Found):
            await ensure_credit_record(db, retry.value)
            return retry.value
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not create account, try again"
        )

    users_created_total.labels(provider=provider or "unknown").inc()
    log_user_created(logger, user_uuid=user.uuid, provider=provider)

    await ensure_credit_record(db, user)
    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Allow only users whose email is listed in ADMIN_EMAILS."""
    if current_user.email.lower() not in settings.admin_email_list:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
