"""
Generation task poller.

Drives one generation from submission to a terminal state:

    SUBMITTED -> POLLING -> COMPLETED | FAILED | TIMED_OUT | CANCELLED

The loop is cooperative: between status checks it awaits the injected
sleeper (asyncio.sleep by default), so other coroutines keep running.
Timing out or cancelling only stops local polling; the remote task may
keep running at the provider.
"""
import asyncio
import enum
import logging
import time
from typing import Awaitable, Callable, Optional

from app.generation.client import GenerationApi
from app.generation.errors import (
    ApiError,
    GenerationCancelledError,
    GenerationFailedError,
    GenerationTimeoutError,
    TransientApiError,
)
from app.schemas.generation import GenerationSubmitRequest, TaskStatus
from app.utils.logging import log_generation_finished

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]
ProgressCallback = Callable[[int], None]


class PollerState(str, enum.Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({
    PollerState.COMPLETED,
    PollerState.FAILED,
    PollerState.TIMED_OUT,
    PollerState.CANCELLED,
})


class GenerationPoller:
    """
    Single-use state machine for one generation task.

    Args:
        api: Submit/status/abandon operations
        sleep: Awaitable sleeper, replaced by a fake clock in tests
        interval: Seconds between status checks
        max_attempts: Status checks before giving up (interval * max_attempts = ceiling)
        max_transient_retries: Consecutive network failures tolerated before failing
        on_progress: Called with the provider's progress percentage while polling
    """

    POLL_INTERVAL_SECONDS = 2.0
    MAX_POLL_ATTEMPTS = 120  # 4 minutes at the default interval
    MAX_TRANSIENT_RETRIES = 3

    def __init__(
        self,
        api: GenerationApi,
        sleep: Sleeper = asyncio.sleep,
        interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLL_ATTEMPTS,
        max_transient_retries: int = MAX_TRANSIENT_RETRIES,
        on_progress: Optional[ProgressCallback] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.api = api
        self.interval = interval
        self.max_attempts = max_attempts
        self.max_transient_retries = max_transient_retries
        self._sleep = sleep
        self._on_progress = on_progress

        self.state: Optional[PollerState] = None
        self.task_id: Optional[str] = None
        self.result: Optional[str] = None
        self.attempts = 0
        self._cancelled = False
        self._abandon_notice: Optional[asyncio.Task] = None
        self._started_at: Optional[float] = None

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    def cancel(self) -> None:
        """Ask the loop to stop at its next check. Safe to call from any coroutine."""
        self._cancelled = True

    async def run(self, request: GenerationSubmitRequest) -> str:
        """
        Submit the request and poll until a terminal state.

        Returns:
            URL of the first generated image

        Raises:
            GenerationFailedError: Submission rejected, task failed, or too many network errors
            GenerationTimeoutError: No terminal status within max_attempts checks
            GenerationCancelledError: cancel() was called before completion
        """
        if self.state is not None:
            raise RuntimeError("GenerationPoller instances are single-use")

        self._started_at = time.monotonic()
        self.state = PollerState.SUBMITTED

        if self._cancelled:
            self._finish(PollerState.CANCELLED)
            raise GenerationCancelledError()

        try:
            self.task_id = await self.api.submit(request)
        except (ApiError, TransientApiError) as e:
            self._finish(PollerState.FAILED, error=str(e))
            raise GenerationFailedError(f"Submission failed: {e}") from e

        self.state = PollerState.POLLING
        consecutive_errors = 0

        while self.attempts < self.max_attempts:
            await self._sleep(self.interval)

            if self._cancelled:
                self._fire_abandon_notice()
                self._finish(PollerState.CANCELLED)
                raise GenerationCancelledError(self.task_id)

            self.attempts += 1
            try:
                status = await self.api.get_status(self.task_id)
            except TransientApiError as e:
                consecutive_errors += 1
                if consecutive_errors > self.max_transient_retries:
                    self._finish(PollerState.FAILED, error=str(e))
                    raise GenerationFailedError(
                        f"Status checks failed {consecutive_errors} times in a row: {e}",
                        task_id=self.task_id,
                    ) from e
                logger.warning(
                    f"Transient error polling task {self.task_id} "
                    f"({consecutive_errors}/{self.max_transient_retries}): {e}"
                )
                continue
            except ApiError as e:
                self._finish(PollerState.FAILED, error=str(e))
                raise GenerationFailedError(f"Status check rejected: {e}", task_id=self.task_id) from e

            consecutive_errors = 0

            if status.status == TaskStatus.COMPLETED:
                if not status.results:
                    self._finish(PollerState.FAILED, error="completed without results")
                    raise GenerationFailedError(
                        f"Task {self.task_id} completed without results",
                        task_id=self.task_id,
                    )
                self.result = status.results[0]
                self._finish(PollerState.COMPLETED)
                return self.result

            if status.status == TaskStatus.FAILED:
                reason = status.error or "provider reported failure"
                self._finish(PollerState.FAILED, error=reason)
                raise GenerationFailedError(f"Task {self.task_id} failed: {reason}", task_id=self.task_id)

            if status.progress is not None and self._on_progress is not None:
                self._on_progress(status.progress)

        self._finish(PollerState.TIMED_OUT)
        raise GenerationTimeoutError(self.task_id, self.attempts)

    def _finish(self, state: PollerState, error: Optional[str] = None) -> None:
        self.state = state
        duration_ms = None
        if self._started_at is not None:
            duration_ms = (time.monotonic() - self._started_at) * 1000
        log_generation_finished(
            logger,
            task_id=self.task_id,
            state=state.value,
            attempts=self.attempts,
            duration_ms=duration_ms,
            error=error,
        )

    def _fire_abandon_notice(self) -> None:
        # Not awaited: the provider is never asked to acknowledge
        self._abandon_notice = asyncio.ensure_future(self._send_abandon(self.task_id))

    async def _send_abandon(self, task_id: str) -> None:
        try:
            await self.api.abandon(task_id)
        except Exception as e:
            logger.warning(f"Abandon notice for task {task_id} not delivered: {e}")
