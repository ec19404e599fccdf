"""
User profile endpoints.
Returns and updates information about the authenticated user.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User
from app.auth.dependencies import get_current_user
from app.repositories.user_repository import UserRepository
from app.schemas.user import CreditsResponse, UserResponse, UserUpdate
from app.services.credit_service import CreditService

router = APIRouter()


@router.get("", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Profile of the authenticated user."""
    return current_user


@router.patch("", response_model=UserResponse)
async def update_me(
    request: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Update profile fields (nickname, avatar, locale, phone).
    Only fields present in the request body are changed.
    """
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )

    user = await UserRepository.update_user(db, current_user.uuid, updates)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile"
        )
    return user


@router.get("/credits", response_model=CreditsResponse)
async def get_credits(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Get current credit balance for authenticated user.
    Users without a credit record report a zero balance.
    """
    user_credits = await CreditService.get_user_credits(db, current_user.uuid)

    if user_credits is None:
        return CreditsResponse(
            user_uuid=current_user.uuid,
            credits=0,
            left_credits=0,
            is_recharged=False,
            is_pro=False,
        )

    return CreditsResponse(
        user_uuid=current_user.uuid,
        credits=user_credits.credits,
        left_credits=user_credits.left_credits,
        is_recharged=user_credits.is_recharged,
        is_pro=user_credits.is_pro,
    )
