"""
Pydantic schemas for user and credit endpoints.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime


class UserResponse(BaseModel):
    """Public view of a user record."""
    uuid: str
    email: str
    nickname: str
    avatar_url: str
    phone: Optional[str] = None
    credits: int
    locale: Optional[str] = None
    signin_type: Optional[str] = None
    signin_provider: Optional[str] = None
    invite_code: str = ""
    invited_by: str = ""
    is_affiliate: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    """Profile fields a user may change."""
    nickname: Optional[str] = Field(None, min_length=1, max_length=255)
    avatar_url: Optional[str] = Field(None, max_length=1024)
    locale: Optional[str] = Field(None, max_length=16)
    phone: Optional[str] = Field(None, max_length=32)


class CreditsResponse(BaseModel):
    """Credit balance of the authenticated user."""
    user_uuid: str
    credits: int
    left_credits: int
    is_recharged: bool
    is_pro: bool


class UsersPageResponse(BaseModel):
    """One page of users for the admin console."""
    page: int
    limit: int
    users: List[UserResponse]


class UsersTotalResponse(BaseModel):
    total: int


class UserStatsResponse(BaseModel):
    """Sign-ups per UTC day."""
    start_time: str
    counts: Dict[str, int]


class UsersLookupRequest(BaseModel):
    uuids: List[str] = Field(default_factory=list, max_length=500)
