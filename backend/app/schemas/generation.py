"""
Pydantic schemas for image generation endpoints and the provider wire format.
"""
import enum
from pydantic import BaseModel, Field
from typing import Any, List, Optional


class TaskStatus(str, enum.Enum):
    """Provider-side task lifecycle."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class GenerationSubmitRequest(BaseModel):
    """Schema for submitting an image generation request."""
    prompt: str = Field(..., min_length=1, max_length=4000, description="Text prompt for the image")
    size: str = Field("1024x1024", description="Output size, e.g. '1024x1024'")
    quality: str = Field("standard", description="Provider quality tier, e.g. 'standard' or 'hd'")
    image_urls: Optional[List[str]] = Field(None, description="Reference images for image-to-image")


class TaskSubmitted(BaseModel):
    """Data returned once the provider accepts a task."""
    id: str


class TaskStatusData(BaseModel):
    """Status snapshot of a generation task."""
    status: TaskStatus
    progress: Optional[int] = Field(None, ge=0, le=100)
    results: Optional[List[str]] = None
    error: Optional[str] = None


class Envelope(BaseModel):
    """Response envelope shared by the generation endpoints."""
    code: int
    message: str
    data: Optional[Any] = None
