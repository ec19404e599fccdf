"""
Image generation provider abstraction layer.
"""
from app.ai.base import ImageProvider
from app.ai.factory import get_image_provider

__all__ = ["ImageProvider", "get_image_provider"]
