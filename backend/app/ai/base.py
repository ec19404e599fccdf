"""
Base class for image generation providers.
All providers must implement this interface to ensure compatibility.
"""
from abc import ABC, abstractmethod

from app.schemas.generation import GenerationSubmitRequest, TaskStatusData


class ImageProvider(ABC):
    """
    Abstract base class for image generation providers.

    Generation is asynchronous at the provider: submit() returns an opaque
    task id and get_status() reports progress until the task completes or fails.
    """

    name = "base"

    @abstractmethod
    async def submit(self, request: GenerationSubmitRequest) -> str:
        """
        Start a generation task.

        Args:
            request: Prompt and generation parameters

        Returns:
            Provider task id

        Raises:
            ProviderError: If the provider rejects the request or is unreachable
        """
        pass

    @abstractmethod
    async def get_status(self, task_id: str) -> TaskStatusData:
        """
        Fetch the current status of a task.

        Raises:
            ProviderError: If the status cannot be retrieved
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """
        Check if provider is properly configured (API key present, etc.).

        Returns:
            True if provider can be used, False otherwise
        """
        pass
