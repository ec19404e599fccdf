"""
Image generation endpoints.

Every response uses the {code, message, data} envelope; application-level
failures keep HTTP 200 and carry a non-1000 code.
"""
import logging
import time

from fastapi import APIRouter, Depends, status as http_status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.ai.base import ImageProvider
from app.ai.factory import get_image_provider
from app.auth.dependencies import get_current_user
from app.config import settings
from app.database import get_db
from app.generation.envelope import ResponseCode, respond_error, respond_ok
from app.generation.errors import ProviderError, ProviderUnavailableError
from app.models.user import User
from app.schemas.generation import Envelope, GenerationSubmitRequest
from app.services.credit_service import CreditService
from app.utils.logging import log_credits_changed, log_generation_submitted
from app.utils.metrics import (
    credit_debits_total,
    generation_status_checks_total,
    generation_submissions_total,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/submit", response_model=Envelope)
async def submit_generation(
    request: GenerationSubmitRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    provider: ImageProvider = Depends(get_image_provider),
):
    """
    Reserve credits and forward the request to the image provider.

    Credits are debited before the provider is called and refunded if the
    provider rejects the submission. Returns data {id: <task id>}.
    """
    start = time.time()
    cost = settings.generation_cost_credits

    if not await CreditService.debit(db, current_user.uuid, cost):
        credit_debits_total.labels(outcome="insufficient").inc()
        generation_submissions_total.labels(outcome="insufficient_credits").inc()
        return respond_error(ResponseCode.INSUFFICIENT_CREDITS, "Insufficient credits")
    credit_debits_total.labels(outcome="applied").inc()

    try:
        task_id = await provider.submit(request)
    except ProviderError as e:
        await CreditService.refund(db, current_user.uuid, cost)
        log_credits_changed(logger, user_uuid=current_user.uuid, delta=cost, reason="refund")
        generation_submissions_total.labels(outcome="provider_error").inc()
        return respond_error(ResponseCode.PROVIDER_ERROR, f"Generation could not be started: {e}")

    generation_submissions_total.labels(outcome="accepted").inc()
    log_credits_changed(logger, user_uuid=current_user.uuid, delta=-cost, reason="generation")
    log_generation_submitted(
        logger,
        task_id=task_id,
        user_uuid=current_user.uuid,
        duration_ms=(time.time() - start) * 1000,
        size=request.size,
        quality=request.quality,
    )
    return respond_ok({"id": task_id})


@router.get("/status/{task_id}", response_model=Envelope)
async def generation_status(
    task_id: str,
    current_user: User = Depends(get_current_user),
    provider: ImageProvider = Depends(get_image_provider),
):
    """
    Current provider status for a task.
    Returns data {status, progress?, results?, error?}.
    Provider outages answer HTTP 503 so callers retry; rejections keep code 1003.
    """
    try:
        status = await provider.get_status(task_id)
    except ProviderUnavailableError as e:
        generation_status_checks_total.labels(status="unavailable").inc()
        return JSONResponse(
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            content=respond_error(ResponseCode.PROVIDER_ERROR, str(e)),
        )
    except ProviderError as e:
        generation_status_checks_total.labels(status="error").inc()
        return respond_error(ResponseCode.PROVIDER_ERROR, str(e))

    generation_status_checks_total.labels(status=status.status.value).inc()
    return respond_ok(status.model_dump(mode="json", exclude_none=True))


@router.post("/{task_id}/abandon", response_model=Envelope)
async def abandon_generation(
    task_id: str,
    current_user: User = Depends(get_current_user),
):
    """
    Record that the caller stopped polling a task.
    The provider has no cancel operation, so the remote task keeps running.
    """
    logger.info(
        f"Polling abandoned for task {task_id}",
        extra={"event": "generation_abandoned", "task_id": task_id, "user_uuid": current_user.uuid},
    )
    return respond_ok({"id": task_id})
