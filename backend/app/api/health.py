"""
Health check endpoint.
Verifies database connectivity.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.database import get_db
from app.ai.base import ImageProvider
from app.ai.factory import get_image_provider

router = APIRouter()


@router.get("")
async def health_check(
    db: AsyncSession = Depends(get_db),
    provider: ImageProvider = Depends(get_image_provider),
):
    """
    Health check endpoint.
    Returns status of the database connection and provider configuration.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "image_provider": "configured" if provider.is_configured() else "not_configured",
    }

    # Check database
    try:
        await db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except (SQLAlchemyError, OSError) as e:
        health_status["database"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
