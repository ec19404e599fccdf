"""
Image provider factory.
Selects and returns the appropriate provider based on environment configuration.
"""
import logging
from app.config import settings
from app.ai.base import ImageProvider
from app.ai.http_provider import HttpImageProvider

logger = logging.getLogger(__name__)


def get_image_provider() -> ImageProvider:
    """
    Factory function to get the configured image provider.

    Provider selection is controlled by IMAGE_PROVIDER environment variable:
    - "http" -> HttpImageProvider (default)

    Also used as a FastAPI dependency so tests can override it.

    Raises:
        ValueError: If provider name is invalid
    """
    provider_name = get_provider_name()

    if provider_name == "http":
        provider = HttpImageProvider()
        if not provider.is_configured():
            logger.warning("HTTP image provider selected but API key not configured")
        return provider

    logger.error(f"Unknown image provider: {provider_name}")
    raise ValueError(
        f"Invalid image provider: {provider_name}. "
        f"Must be one of: 'http'"
    )


def get_provider_name() -> str:
    """Current provider name as a string."""
    return (settings.image_provider or "http").lower()
