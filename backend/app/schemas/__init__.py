"""
Pydantic schemas for API request/response validation.
"""
from app.schemas.generation import (
    Envelope,
    GenerationSubmitRequest,
    TaskStatus,
    TaskStatusData,
    TaskSubmitted,
)
from app.schemas.user import (
    CreditsResponse,
    UserResponse,
    UserUpdate,
)
from app.schemas.pricing import (
    Pricing,
    PricingGroup,
    PricingItem,
)

__all__ = [
    "Envelope",
    "GenerationSubmitRequest",
    "TaskStatus",
    "TaskStatusData",
    "TaskSubmitted",
    "CreditsResponse",
    "UserResponse",
    "UserUpdate",
    "Pricing",
    "PricingGroup",
    "PricingItem",
]
