"""
Admin endpoints for the user console.
Read paths degrade to empty results instead of failing the page.
"""
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.database import get_db
from app.models.base import utcnow
from app.models.user import User
from app.auth.dependencies import require_admin
from app.repositories.user_repository import UserRepository
from app.schemas.user import (
    UserResponse,
    UsersLookupRequest,
    UsersPageResponse,
    UsersTotalResponse,
    UserStatsResponse,
)

router = APIRouter()


@router.get("/users", response_model=UsersPageResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Page through users, newest first."""
    users = await UserRepository.get_users(db, page=page, limit=limit)
    return UsersPageResponse(
        page=page,
        limit=limit,
        users=[UserResponse.model_validate(u) for u in users],
    )


@router.get("/users/total", response_model=UsersTotalResponse)
async def users_total(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Total number of users."""
    total = await UserRepository.get_users_total(db)
    if total is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User count unavailable"
        )
    return UsersTotalResponse(total=total)


@router.get("/users/stats", response_model=UserStatsResponse)
async def users_stats(
    start_time: Optional[str] = Query(None, description="ISO-8601 lower bound, defaults to 30 days ago"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Sign-ups per UTC day since start_time."""
    if start_time is None:
        start_time = (utcnow() - timedelta(days=30)).isoformat()

    try:
        counts = await UserRepository.get_user_count_by_date(db, start_time)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_time must be an ISO-8601 timestamp"
        )
    if counts is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sign-up counts unavailable"
        )

    return UserStatsResponse(start_time=start_time, counts=counts)


@router.post("/users/lookup", response_model=UsersPageResponse)
async def lookup_users(
    request: UsersLookupRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Resolve a batch of user uuids (e.g. order owners, inviters)."""
    users = await UserRepository.get_users_by_uuids(db, request.uuids)
    return UsersPageResponse(
        page=1,
        limit=len(request.uuids),
        users=[UserResponse.model_validate(u) for u in users],
    )
