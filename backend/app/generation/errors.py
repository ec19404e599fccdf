"""
Exceptions raised while submitting and tracking generation tasks.
"""
from typing import Optional


class GenerationError(Exception):
    """Base class for generation errors."""


class ApiError(GenerationError):
    """The API answered, but with a non-success envelope or a client error."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class TransientApiError(GenerationError):
    """Network failure or 5xx response; the same call may succeed if retried."""


class ProviderError(GenerationError):
    """The external image provider rejected or failed a request."""


class ProviderUnavailableError(ProviderError):
    """The provider could not be reached or answered 5xx; retrying may succeed."""


class GenerationFailedError(GenerationError):
    """Terminal failure: submission rejected or provider reported the task failed."""

    def __init__(self, message: str, task_id: Optional[str] = None):
        self.task_id = task_id
        super().__init__(message)


class GenerationTimeoutError(GenerationError):
    """The polling budget ran out before the task reached a terminal status."""

    def __init__(self, task_id: str, attempts: int):
        self.task_id = task_id
        self.attempts = attempts
        super().__init__(f"Task {task_id} did not finish after {attempts} status checks")


class GenerationCancelledError(GenerationError):
    """The caller abandoned the polling session."""

    def __init__(self, task_id: Optional[str] = None):
        self.task_id = task_id
        super().__init__(f"Polling for task {task_id} was cancelled")
