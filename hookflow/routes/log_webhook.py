from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import IntegrityError

from hookflow.db import db_client
from hookflow.db.models import UserModel
from hookflow.schemas.notification_webhook import (
    NotificationWebhookRequest,
    NotificationWebhookResponse,
    NotificationWebhookTestResponse,
)
from hookflow.services.auth.depends import get_owned_workflow, get_user
from hookflow.services.notifications.delivery import test_webhook
from hookflow.services.notifications.validation import (
    URL_DUPLICATE,
    NotificationWebhookValidationError,
    validate_notification_webhook,
)
from hookflow.utils.request_id import generate_request_id

router = APIRouter(prefix="/workflows/{workflow_id}/log-webhook", tags=["log-webhooks"])


def _validation_failed(error: NotificationWebhookValidationError) -> JSONResponse:
    return JSONResponse(
        {"error": "Validation failed", "details": error.field_errors}, status_code=400
    )


def _serialize(webhook) -> dict:
    return NotificationWebhookResponse.from_model(webhook).model_dump(
        mode="json", by_alias=True
    )


async def _existing_urls(workflow_id: int, exclude_id: str | None = None) -> list[str]:
    webhooks = await db_client.get_notification_webhooks_for_workflow(workflow_id)
    return [webhook.url for webhook in webhooks if webhook.id != exclude_id]


@router.get("")
async def list_log_webhooks(workflow_id: int, user: UserModel = Depends(get_user)):
    await get_owned_workflow(workflow_id, user)
    webhooks = await db_client.get_notification_webhooks_for_workflow(workflow_id)
    return {"data": [_serialize(webhook) for webhook in webhooks]}


@router.post("", status_code=201)
async def create_log_webhook(
    workflow_id: int,
    request: NotificationWebhookRequest,
    user: UserModel = Depends(get_user),
):
    await get_owned_workflow(workflow_id, user)

    try:
        validate_notification_webhook(
            request.url,
            request.level_filter,
            request.trigger_filter,
            existing_urls=await _existing_urls(workflow_id),
        )
    except NotificationWebhookValidationError as e:
        return _validation_failed(e)

    try:
        webhook = await db_client.create_notification_webhook(
            workflow_id=workflow_id,
            url=request.url.strip(),
            level_filter=request.level_filter,
            trigger_filter=request.trigger_filter,
            secret=request.secret,
            include_final_output=request.include_final_output,
            include_trace_spans=request.include_trace_spans,
            include_rate_limits=request.include_rate_limits,
            include_usage_data=request.include_usage_data,
        )
    except IntegrityError:
        # Concurrent create with the same URL
        return _validation_failed(
            NotificationWebhookValidationError({"url": [URL_DUPLICATE]})
        )

    return JSONResponse({"data": _serialize(webhook)}, status_code=201)


@router.put("/{webhook_id}")
async def update_log_webhook(
    workflow_id: int,
    webhook_id: str,
    request: NotificationWebhookRequest,
    user: UserModel = Depends(get_user),
):
    await get_owned_workflow(workflow_id, user)

    existing = await db_client.get_notification_webhook(webhook_id, workflow_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Webhook not found")

    try:
        validate_notification_webhook(
            request.url,
            request.level_filter,
            request.trigger_filter,
            existing_urls=await _existing_urls(workflow_id, exclude_id=webhook_id),
        )
    except NotificationWebhookValidationError as e:
        return _validation_failed(e)

    try:
        webhook = await db_client.update_notification_webhook(
            webhook_id,
            workflow_id,
            url=request.url.strip(),
            secret=request.secret,
            include_final_output=request.include_final_output,
            include_trace_spans=request.include_trace_spans,
            include_rate_limits=request.include_rate_limits,
            include_usage_data=request.include_usage_data,
            level_filter=request.level_filter,
            trigger_filter=request.trigger_filter,
            active=request.active,
        )
    except IntegrityError:
        return _validation_failed(
            NotificationWebhookValidationError({"url": [URL_DUPLICATE]})
        )

    if webhook is None:
        raise HTTPException(status_code=404, detail="Webhook not found")
    return {"data": _serialize(webhook)}


@router.delete("/{webhook_id}")
async def delete_log_webhook(
    workflow_id: int,
    webhook_id: str,
    user: UserModel = Depends(get_user),
):
    await get_owned_workflow(workflow_id, user)

    deleted = await db_client.delete_notification_webhook(webhook_id, workflow_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Webhook not found")
    return {"message": "Webhook deleted successfully"}


@router.post("/test")
async def test_log_webhook(
    workflow_id: int,
    webhook_id: str = Query(alias="webhookId"),
    user: UserModel = Depends(get_user),
):
    """Send a sample event to a notification webhook and report what happened."""
    await get_owned_workflow(workflow_id, user)

    webhook = await db_client.get_notification_webhook(webhook_id, workflow_id)
    if webhook is None:
        raise HTTPException(status_code=404, detail="Webhook not found")

    result = await test_webhook(webhook, logger.bind(request_id=generate_request_id()))
    response = NotificationWebhookTestResponse(
        success=result.success,
        status=result.status,
        status_text=result.status_text,
        error=result.error,
        attempts=result.attempts,
        duration_ms=result.duration_ms,
    )
    return {"data": response.model_dump(mode="json", by_alias=True)}
