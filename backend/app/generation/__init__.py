"""
Image generation task submission and polling.
"""
from app.generation.client import GenerationApi, GenerationApiClient
from app.generation.poller import GenerationPoller, PollerState

__all__ = [
    "GenerationApi",
    "GenerationApiClient",
    "GenerationPoller",
    "PollerState",
]
