"""
HTTP client for this service's generation endpoints.

Used by GenerationPoller (and by any Python caller that wants to drive a
generation from outside the API process). Transport failures and 5xx
responses surface as TransientApiError so the poller can retry them;
everything else that is not a success envelope surfaces as ApiError.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from pydantic import ValidationError

from app.generation.envelope import ResponseCode, unwrap
from app.generation.errors import ApiError, TransientApiError
from app.schemas.generation import GenerationSubmitRequest, TaskStatusData, TaskSubmitted

logger = logging.getLogger(__name__)


class GenerationApi(ABC):
    """Operations the poller needs from the generation endpoints."""

    @abstractmethod
    async def submit(self, request: GenerationSubmitRequest) -> str:
        """Submit a request and return the provider task id."""
        pass

    @abstractmethod
    async def get_status(self, task_id: str) -> TaskStatusData:
        """Return the current status of a task."""
        pass

    @abstractmethod
    async def abandon(self, task_id: str) -> None:
        """Tell the server the caller stopped waiting for a task."""
        pass


class GenerationApiClient(GenerationApi):
    """
    httpx-based GenerationApi.

    Usage:
        async with GenerationApiClient("https://app.example.com", token=id_token) as api:
            poller = GenerationPoller(api)
            url = await poller.run(GenerationSubmitRequest(prompt="a red fox"))
    """

    SUBMIT_PATH = "/api/generation/submit"
    STATUS_PATH = "/api/generation/status/{task_id}"
    ABANDON_PATH = "/api/generation/{task_id}/abandon"

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "GenerationApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def submit(self, request: GenerationSubmitRequest) -> str:
        data = await self._request(
            "POST",
            self.SUBMIT_PATH,
            json=request.model_dump(exclude_none=True),
        )
        try:
            return TaskSubmitted.model_validate(data).id
        except ValidationError as e:
            raise ApiError(int(ResponseCode.INVALID_REQUEST), f"Submission response without task id: {e}")

    async def get_status(self, task_id: str) -> TaskStatusData:
        data = await self._request("GET", self.STATUS_PATH.format(task_id=task_id))
        try:
            return TaskStatusData.model_validate(data)
        except ValidationError as e:
            raise ApiError(int(ResponseCode.INVALID_REQUEST), f"Malformed status for task {task_id}: {e}")

    async def abandon(self, task_id: str) -> None:
        await self._request("POST", self.ABANDON_PATH.format(task_id=task_id))

    async def _request(self, method: str, path: str, **kwargs):
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise TransientApiError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 500:
            raise TransientApiError(f"{method} {path} returned {response.status_code}")

        if response.status_code in (401, 403):
            raise ApiError(int(ResponseCode.UNAUTHORIZED), f"Not authorized ({response.status_code})")

        if response.status_code >= 400:
            raise ApiError(
                int(ResponseCode.INVALID_REQUEST),
                f"{method} {path} returned {response.status_code}: {response.text[:200]}",
            )

        try:
            payload = response.json()
        except ValueError:
            raise ApiError(int(ResponseCode.INVALID_REQUEST), f"{method} {path} returned non-JSON body")

        return unwrap(payload)
