"""
HTTP image provider implementation.
Talks to a task-based image API that wraps responses in the
{code, message, data} envelope (code 1000 = success).
"""
import logging
import time
from typing import Optional

import httpx
from pydantic import ValidationError

from app.ai.base import ImageProvider
from app.config import settings
from app.generation.envelope import unwrap
from app.generation.errors import ApiError, ProviderError, ProviderUnavailableError
from app.schemas.generation import GenerationSubmitRequest, TaskStatusData, TaskSubmitted
from app.utils.logging import log_provider_request, log_provider_failure
from app.utils.metrics import (
    image_provider_requests_total,
    image_provider_failures_total,
    image_provider_latency_seconds,
)

logger = logging.getLogger(__name__)


def _is_unavailable(error: Exception) -> bool:
    """Transport failures and 5xx answers, as opposed to rejections."""
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return False


class HttpImageProvider(ImageProvider):
    """
    Image provider reached over plain HTTP.

    Endpoints (relative to base_url):
    - POST /images/generations  {model, prompt, size, quality, image_urls?} -> {data: {id}}
    - GET  /tasks/{task_id}      -> {data: {status, progress?, results?, error?}}

    API keys are stored in environment variables and never exposed to clients.
    """

    name = "http"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize provider from explicit arguments, falling back to settings."""
        self.base_url = (base_url or settings.image_provider_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.image_provider_api_key
        self.model = model or settings.image_provider_model
        self.timeout = timeout or settings.image_provider_timeout
        self._transport = transport

    def is_configured(self) -> bool:
        """Check if provider API key is configured."""
        return bool(self.api_key)

    async def submit(self, request: GenerationSubmitRequest) -> str:
        payload = {
            "model": self.model,
            "prompt": request.prompt,
            "size": request.size,
            "quality": request.quality,
        }
        if request.image_urls:
            payload["image_urls"] = request.image_urls

        data = await self._call("submit", "POST", "/images/generations", json=payload)
        try:
            task_id = TaskSubmitted.model_validate(data).id
        except ValidationError as e:
            raise ProviderError(f"Provider did not return a task id: {e}")

        logger.debug(f"Provider accepted task {task_id} (prompt length: {len(request.prompt)})")
        return task_id

    async def get_status(self, task_id: str) -> TaskStatusData:
        data = await self._call("status", "GET", f"/tasks/{task_id}", task_id=task_id)
        try:
            return TaskStatusData.model_validate(data)
        except ValidationError as e:
            raise ProviderError(f"Provider returned malformed status for {task_id}: {e}")

    async def _call(self, operation: str, method: str, path: str, task_id: Optional[str] = None, **kwargs):
        if not self.is_configured():
            raise ProviderError("Image provider API key not configured")

        image_provider_requests_total.labels(provider=self.name, operation=operation).inc()
        start = time.time()
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                data = unwrap(response.json())
        except (httpx.HTTPError, ApiError, ValueError) as e:
            duration = time.time() - start
            image_provider_failures_total.labels(provider=self.name, operation=operation).inc()
            image_provider_latency_seconds.labels(provider=self.name, operation=operation).observe(duration)
            log_provider_failure(
                logger,
                provider=self.name,
                operation=operation,
                error=str(e),
                duration_ms=duration * 1000,
                task_id=task_id,
            )
            if _is_unavailable(e):
                raise ProviderUnavailableError(f"Image provider {operation} unavailable: {e}") from e
            raise ProviderError(f"Image provider {operation} failed: {e}") from e

        duration = time.time() - start
        image_provider_latency_seconds.labels(provider=self.name, operation=operation).observe(duration)
        log_provider_request(
            logger,
            provider=self.name,
            operation=operation,
            duration_ms=duration * 1000,
            task_id=task_id,
        )
        return data
