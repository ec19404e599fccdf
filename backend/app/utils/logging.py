"""
Structured JSON logging.

Every record carries timestamp, level, logger name, service and message.
Event helpers below add an "event" field plus whichever identifiers apply:
user_uuid, task_id, order_no, duration_ms.

Usage:
    from app.utils.logging import configure_logging, log_user_created

    configure_logging('ig-api', 'INFO')
    log_user_created(logger, user_uuid='123', provider='google.com')
"""
import logging
import sys
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

# Library loggers that are too chatty at INFO
_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


class _ServiceFilter(logging.Filter):
    """Stamps the service name on each record."""

    def __init__(self, service: str):
        super().__init__()
        self.service = service

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service
        return True


_handler: Optional[logging.Handler] = None


def configure_logging(service_name: str, log_level: str = "INFO") -> None:
    """
    Route all logging through one stdout handler with a JSON formatter.

    Calling it again only changes the level; the handler is installed once.

    Args:
        service_name: Service identifier (ig-api or ig-poller)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    global _handler

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if _handler is not None:
        return

    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(jsonlogger.JsonFormatter(
        '%(timestamp)s %(levelname)s %(name)s %(service)s %(message)s',
        timestamp=True,
        rename_fields={"levelname": "level"},
        json_ensure_ascii=False,
    ))
    _handler.addFilter(_ServiceFilter(service_name))

    root_logger.handlers = [_handler]

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _event_fields(
    event: str,
    user_uuid: Optional[str] = None,
    task_id: Optional[str] = None,
    order_no: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **fields: Any,
) -> Dict[str, Any]:
    # Identifiers are omitted rather than logged as null
    extra = {"event": event}
    extra.update({k: v for k, v in fields.items() if v is not None})
    if user_uuid:
        extra["user_uuid"] = user_uuid
    if task_id:
        extra["task_id"] = task_id
    if order_no:
        extra["order_no"] = order_no
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)
    return extra


# Accounts and credits

def log_user_created(
    logger: logging.Logger,
    user_uuid: str,
    provider: Optional[str] = None,
    **kwargs
):
    """Log first sign-in account creation."""
    extra = _event_fields("user_created", user_uuid=user_uuid, signin_provider=provider, **kwargs)
    logger.info(f"User created: {user_uuid}", extra=extra)


def log_credits_changed(
    logger: logging.Logger,
    user_uuid: str,
    delta: int,
    reason: str,
    order_no: Optional[str] = None,
    **kwargs
):
    """
    Log a credit balance change.

    Args:
        logger: Logger instance
        user_uuid: User uuid (required)
        delta: Signed change (negative for debits)
        reason: Why the balance moved (generation, refund, purchase, trial)
        order_no: Optional order that caused the change
        **kwargs: Additional fields
    """
    extra = _event_fields(
        "credits_changed",
        user_uuid=user_uuid,
        order_no=order_no,
        delta=delta,
        reason=reason,
        **kwargs
    )
    logger.info(f"Credits {delta:+d} for {user_uuid} ({reason})", extra=extra)


# Generation

def log_generation_submitted(
    logger: logging.Logger,
    task_id: str,
    user_uuid: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    extra = _event_fields(
        "generation_submitted",
        task_id=task_id,
        user_uuid=user_uuid,
        duration_ms=duration_ms,
        **kwargs
    )
    logger.info(f"Generation submitted: {task_id}", extra=extra)


def log_generation_finished(
    logger: logging.Logger,
    task_id: Optional[str],
    state: str,
    attempts: int,
    duration_ms: Optional[float] = None,
    error: Optional[str] = None,
    **kwargs
):
    """
    Log the terminal state of a polling session.

    Completed sessions log at INFO, cancelled at WARNING, everything else at ERROR.
    """
    extra = _event_fields(
        "generation_finished",
        task_id=task_id,
        duration_ms=duration_ms,
        state=state,
        attempts=attempts,
        error=str(error) if error else None,
        **kwargs
    )

    message = f"Generation {task_id} finished: {state} after {attempts} polls"
    if error:
        message += f" - {error}"

    if state == "completed":
        level = logging.INFO
    elif state == "cancelled":
        level = logging.WARNING
    else:
        level = logging.ERROR
    logger.log(level, message, extra=extra)


# Image provider calls

def log_provider_request(
    logger: logging.Logger,
    provider: str,
    operation: str,
    duration_ms: Optional[float] = None,
    task_id: Optional[str] = None,
    **kwargs
):
    """Log a successful call to the image provider (submit or status)."""
    extra = _event_fields(
        "provider_request",
        task_id=task_id,
        duration_ms=duration_ms,
        provider=provider,
        operation=operation,
        **kwargs
    )
    logger.info(f"Provider request: {provider}.{operation}", extra=extra)


def log_provider_failure(
    logger: logging.Logger,
    provider: str,
    operation: str,
    error: str,
    duration_ms: Optional[float] = None,
    task_id: Optional[str] = None,
    **kwargs
):
    """Log a failed call to the image provider."""
    extra = _event_fields(
        "provider_failure",
        task_id=task_id,
        duration_ms=duration_ms,
        provider=provider,
        operation=operation,
        error=str(error),
        **kwargs
    )
    logger.error(f"Provider failure: {provider}.{operation} - {error}", extra=extra)
