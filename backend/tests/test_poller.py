"""
Tests for GenerationPoller.
A scripted API and a recording sleeper replace the network and the clock.
"""
import asyncio
import logging
from typing import List, Optional, Union

import pytest

from app.generation.client import GenerationApi
from app.generation.errors import (
    ApiError,
    GenerationCancelledError,
    GenerationFailedError,
    GenerationTimeoutError,
    TransientApiError,
)
from app.generation.poller import GenerationPoller, PollerState
from app.schemas.generation import GenerationSubmitRequest, TaskStatus, TaskStatusData


def processing(progress: Optional[int] = None) -> TaskStatusData:
    return TaskStatusData(status=TaskStatus.PROCESSING, progress=progress)


def completed(*urls: str) -> TaskStatusData:
    return TaskStatusData(status=TaskStatus.COMPLETED, progress=100, results=list(urls))


class ScriptedApi(GenerationApi):
    """Returns scripted status responses in order; exceptions in the script are raised."""

    def __init__(self, statuses: List[Union[TaskStatusData, Exception]], submit_error: Exception = None):
        self.statuses = list(statuses)
        self.submit_error = submit_error
        self.submitted: List[GenerationSubmitRequest] = []
        self.status_calls = 0
        self.abandoned: List[str] = []
        self.abandon_error: Optional[Exception] = None

    async def submit(self, request: GenerationSubmitRequest) -> str:
        if self.submit_error:
            raise self.submit_error
        self.submitted.append(request)
        return "task-42"

    async def get_status(self, task_id: str) -> TaskStatusData:
        self.status_calls += 1
        item = self.statuses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def abandon(self, task_id: str) -> None:
        if self.abandon_error:
            raise self.abandon_error
        self.abandoned.append(task_id)


class FakeClock:
    """Records requested sleeps without waiting."""

    def __init__(self):
        self.sleeps: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.sleeps.append(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def request_body() -> GenerationSubmitRequest:
    return GenerationSubmitRequest(prompt="a lighthouse at dusk")


class TestPollerSuccess:
    """Tests for the happy path."""

    @pytest.mark.asyncio
    async def test_returns_first_result_after_polling(self, clock, request_body):
        """pending, processing, processing, completed -> first URL after four waits."""
        api = ScriptedApi([
            TaskStatusData(status=TaskStatus.PENDING),
            processing(30),
            processing(70),
            completed("url1", "url2"),
        ])
        poller = GenerationPoller(api, sleep=clock)

        result = await poller.run(request_body)

        assert result == "url1"
        assert poller.result == "url1"
        assert poller.state == PollerState.COMPLETED
        assert poller.done is True
        assert poller.task_id == "task-42"
        assert poller.attempts == 4
        assert clock.sleeps == [2.0, 2.0, 2.0, 2.0]
        assert api.submitted == [request_body]

    @pytest.mark.asyncio
    async def test_progress_callback(self, clock, request_body):
        seen = []
        api = ScriptedApi([processing(10), processing(), processing(55), completed("url")])
        poller = GenerationPoller(api, sleep=clock, on_progress=seen.append)

        await poller.run(request_body)

        assert seen == [10, 55]

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self, clock, request_body):
        """Up to three consecutive network errors are tolerated."""
        api = ScriptedApi([
            TransientApiError("reset"),
            TransientApiError("reset"),
            TransientApiError("reset"),
            processing(50),
            TransientApiError("reset"),
            completed("url"),
        ])
        poller = GenerationPoller(api, sleep=clock)

        assert await poller.run(request_body) == "url"
        assert poller.attempts == 6

    @pytest.mark.asyncio
    async def test_custom_interval(self, clock, request_body):
        api = ScriptedApi([completed("url")])
        poller = GenerationPoller(api, sleep=clock, interval=0.5)

        await poller.run(request_body)

        assert clock.sleeps == [0.5]


class TestPollerFailures:
    """Tests for terminal failures."""

    @pytest.mark.asyncio
    async def test_times_out_after_max_attempts(self, clock, request_body):
        """120 non-terminal statuses exhaust the budget."""
        api = ScriptedApi([processing(1)] * 120)
        poller = GenerationPoller(api, sleep=clock)

        with pytest.raises(GenerationTimeoutError) as exc_info:
            await poller.run(request_body)

        assert exc_info.value.task_id == "task-42"
        assert exc_info.value.attempts == 120
        assert poller.state == PollerState.TIMED_OUT
        assert len(clock.sleeps) == 120
        assert api.status_calls == 120

    @pytest.mark.asyncio
    async def test_failed_status(self, clock, request_body):
        api = ScriptedApi([
            processing(20),
            TaskStatusData(status=TaskStatus.FAILED, error="content policy"),
        ])
        poller = GenerationPoller(api, sleep=clock)

        with pytest.raises(GenerationFailedError, match="content policy") as exc_info:
            await poller.run(request_body)

        assert exc_info.value.task_id == "task-42"
        assert poller.state == PollerState.FAILED

    @pytest.mark.asyncio
    async def test_completed_without_results_fails(self, clock, request_body):
        api = ScriptedApi([TaskStatusData(status=TaskStatus.COMPLETED, results=[])])
        poller = GenerationPoller(api, sleep=clock)

        with pytest.raises(GenerationFailedError, match="without results"):
            await poller.run(request_body)

        assert poller.state == PollerState.FAILED

    @pytest.mark.asyncio
    async def test_submit_rejected(self, clock, request_body):
        """A rejected submission fails without polling."""
        api = ScriptedApi([], submit_error=ApiError(1002, "Insufficient credits"))
        poller = GenerationPoller(api, sleep=clock)

        with pytest.raises(GenerationFailedError, match="Insufficient credits"):
            await poller.run(request_body)

        assert poller.state == PollerState.FAILED
        assert poller.task_id is None
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_submit_network_failure(self, clock, request_body):
        api = ScriptedApi([], submit_error=TransientApiError("unreachable"))
        poller = GenerationPoller(api, sleep=clock)

        with pytest.raises(GenerationFailedError):
            await poller.run(request_body)

    @pytest.mark.asyncio
    async def test_too_many_transient_errors(self, clock, request_body):
        """A fourth consecutive network error is terminal."""
        api = ScriptedApi([TransientApiError("reset")] * 4)
        poller = GenerationPoller(api, sleep=clock)

        with pytest.raises(GenerationFailedError, match="4 times"):
            await poller.run(request_body)

        assert poller.state == PollerState.FAILED
        assert poller.attempts == 4

    @pytest.mark.asyncio
    async def test_status_rejected(self, clock, request_body):
        """Non-transient API errors are not retried."""
        api = ScriptedApi([ApiError(1004, "Not authorized")])
        poller = GenerationPoller(api, sleep=clock)

        with pytest.raises(GenerationFailedError, match="Not authorized"):
            await poller.run(request_body)

        assert api.status_calls == 1


class TestPollerCancellation:
    """Tests for cancel() and the abandon notice."""

    @pytest.mark.asyncio
    async def test_cancel_during_polling(self, request_body):
        api = ScriptedApi([processing(10)] * 10)
        poller = None

        async def sleep_then_cancel(seconds: float) -> None:
            if api.status_calls == 2:
                poller.cancel()

        poller = GenerationPoller(api, sleep=sleep_then_cancel)

        with pytest.raises(GenerationCancelledError) as exc_info:
            await poller.run(request_body)

        assert exc_info.value.task_id == "task-42"
        assert poller.state == PollerState.CANCELLED
        assert api.status_calls == 2

        await poller._abandon_notice
        assert api.abandoned == ["task-42"]

    @pytest.mark.asyncio
    async def test_cancel_before_run(self, clock, request_body):
        """Nothing is submitted once cancelled."""
        api = ScriptedApi([])
        poller = GenerationPoller(api, sleep=clock)
        poller.cancel()

        with pytest.raises(GenerationCancelledError):
            await poller.run(request_body)

        assert api.submitted == []
        assert poller.state == PollerState.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_from_another_task(self, request_body):
        """cancel() from a concurrent coroutine stops the loop at its next check."""
        api = ScriptedApi([processing(10)] * 100)
        poller = GenerationPoller(api, sleep=lambda s: asyncio.sleep(0))

        run = asyncio.ensure_future(poller.run(request_body))
        while api.status_calls < 3:
            await asyncio.sleep(0)
        poller.cancel()

        with pytest.raises(GenerationCancelledError):
            await run
        assert poller.state == PollerState.CANCELLED

        await poller._abandon_notice
        assert api.abandoned == ["task-42"]

    @pytest.mark.asyncio
    async def test_abandon_failure_is_logged(self, request_body, caplog):
        api = ScriptedApi([processing()] * 5)
        api.abandon_error = TransientApiError("gone")
        poller = None

        async def cancel_immediately(seconds: float) -> None:
            poller.cancel()

        poller = GenerationPoller(api, sleep=cancel_immediately)

        with caplog.at_level(logging.WARNING, logger="app.generation.poller"):
            with pytest.raises(GenerationCancelledError):
                await poller.run(request_body)
            await poller._abandon_notice

        assert "not delivered" in caplog.text

    @pytest.mark.asyncio
    async def test_abandon_unexpected_error_is_contained(self, request_body, caplog):
        """A closed HTTP client does not leave an unretrieved task exception."""
        api = ScriptedApi([processing()] * 5)
        api.abandon_error = RuntimeError("Cannot send a request, as the client has been closed.")
        poller = None

        async def cancel_immediately(seconds: float) -> None:
            poller.cancel()

        poller = GenerationPoller(api, sleep=cancel_immediately)

        with caplog.at_level(logging.WARNING, logger="app.generation.poller"):
            with pytest.raises(GenerationCancelledError):
                await poller.run(request_body)
            await poller._abandon_notice

        assert poller._abandon_notice.exception() is None
        assert "client has been closed" in caplog.text


class TestPollerLifecycle:
    """Tests for construction and reuse."""

    @pytest.mark.asyncio
    async def test_single_use(self, clock, request_body):
        poller = GenerationPoller(ScriptedApi([completed("url")]), sleep=clock)
        await poller.run(request_body)

        with pytest.raises(RuntimeError, match="single-use"):
            await poller.run(request_body)

    def test_initial_state(self, clock):
        poller = GenerationPoller(ScriptedApi([]), sleep=clock)

        assert poller.state is None
        assert poller.done is False
        assert poller.attempts == 0

    def test_rejects_zero_attempts(self, clock):
        with pytest.raises(ValueError):
            GenerationPoller(ScriptedApi([]), sleep=clock, max_attempts=0)
