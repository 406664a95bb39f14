"""
Stages of the inbound webhook pipeline.

Each stage either returns None, letting the request continue, or a Response
that resolves the request. The trigger routes run them in order:
parse -> challenge -> lookup -> auth -> rate limit -> usage -> dispatch.
"""

import json
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Dict, Optional, Tuple
from urllib.parse import parse_qsl

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from hookflow.db import db_client
from hookflow.db.models import WebhookModel, WorkflowModel
from hookflow.enums import ExecutionMode, ExecutionTarget, TriggerType
from hookflow.services.webhooks.providers.base import InboundRequest
from hookflow.services.webhooks.providers.registry import (
    get_webhook_provider,
    list_providers,
)
from hookflow.services.webhooks.rate_limiter import rate_limiter
from hookflow.services.webhooks.usage_limits import check_server_side_usage_limits
from hookflow.tasks.arq import enqueue_job
from hookflow.tasks.function_names import FunctionNames
from hookflow.tasks.webhook_execution import WebhookExecutionPayload

# Never forwarded to the workflow
SENSITIVE_HEADERS = {"authorization", "cookie", "proxy-authorization"}


@dataclass
class ParsedWebhookBody:
    body: Dict[str, Any]
    # Exact bytes received; signatures are always checked against these
    raw_body: bytes


@dataclass
class WebhookTarget:
    webhook: WebhookModel
    workflow: WorkflowModel


def build_inbound_request(request: Request) -> InboundRequest:
    return InboundRequest(
        method=request.method.upper(),
        headers=request.headers,
        query_params=request.query_params,
        content_type=request.headers.get("content-type", ""),
    )


def decode_webhook_body(raw_body: bytes, content_type: str = "") -> Dict[str, Any]:
    """
    Turn raw request bytes into the body handed to providers.

    Empty bodies are treated as "{}". JSON objects are used as is, other JSON
    values are wrapped under "data". Form-encoded bodies become a flat dict;
    anything else is kept as text under "_raw".
    """
    text = raw_body.decode("utf-8", errors="replace")
    if not text.strip():
        text = "{}"

    try:
        parsed = json.loads(text)
    except ValueError:
        if "application/x-www-form-urlencoded" in content_type.lower():
            return dict(parse_qsl(text, keep_blank_values=True))
        return {"_raw": text}

    if isinstance(parsed, dict):
        return parsed
    return {"data": parsed}


async def parse_webhook_body(
    request: Request, log
) -> Tuple[Optional[ParsedWebhookBody], Optional[Response]]:
    """Read the request body once and decode it.

    Returns:
        (parsed body, None) or (None, 400 response) if the body can't be read
    """
    try:
        raw_body = await request.body()
    except Exception as e:
        log.error(f"Failed to read webhook request body: {e}")
        return None, JSONResponse(
            {"error": "Failed to read request body"}, status_code=400
        )

    body = decode_webhook_body(raw_body, request.headers.get("content-type", ""))
    return ParsedWebhookBody(body=body, raw_body=raw_body), None


async def find_webhook_and_workflow(path: str, log) -> Optional[WebhookTarget]:
    """Resolve an active webhook and its workflow from the trigger path."""
    row = await db_client.get_active_webhook_with_workflow_by_path(path)
    if row is None:
        log.debug(f"No active webhook for path {path}")
        return None

    webhook, workflow = row
    return WebhookTarget(webhook=webhook, workflow=workflow)


async def handle_provider_challenges(
    body: Dict[str, Any], request: Request, log, path: str
) -> Optional[Response]:
    """
    Answer provider handshakes (Slack url_verification, Meta hub challenges,
    Microsoft Graph validation tokens) before any lookup or auth happens.

    Returns:
        The handshake response, or None if the request is not a handshake
    """
    inbound = build_inbound_request(request)

    for provider in list_providers():
        provider_config = None
        if provider.needs_config_for_challenge(body, inbound):
            target = await find_webhook_and_workflow(path, log)
            if target is not None and target.webhook.provider == provider.PROVIDER_NAME:
                provider_config = target.webhook.provider_config or {}

        response = provider.parse_challenge(body, inbound, provider_config)
        if response is not None:
            log.info(
                f"Answered {provider.PROVIDER_NAME} challenge for path {path} "
                f"({response.status_code})"
            )
            return response

    return None


async def verify_provider_auth(
    webhook: WebhookModel, request: Request, raw_body: bytes, log
) -> Optional[Response]:
    provider = get_webhook_provider(webhook.provider)
    is_valid = provider.verify(
        webhook.provider_config or {}, build_inbound_request(request), raw_body
    )
    if is_valid:
        return None

    # Deliberately the same response whichever check failed
    log.warning(
        f"Rejected unauthenticated {provider.PROVIDER_NAME} request for webhook {webhook.id}"
    )
    return JSONResponse({"error": "Unauthorized"}, status_code=401)


async def check_rate_limits(
    workflow: WorkflowModel, webhook: WebhookModel, log, is_test_mode: bool = False
) -> Optional[Response]:
    """
    Count the execution against the owner's window.

    Over the limit, providers that retry on errors get a 200 acknowledgment
    and everyone else gets 429 with Retry-After. If Redis is unavailable the
    request is let through.
    """
    try:
        subscription = await db_client.get_highest_priority_subscription(workflow.user_id)
        result = await rate_limiter.check_rate_limit_with_subscription(
            workflow.user_id,
            subscription,
            TriggerType.WEBHOOK,
            is_test_mode=is_test_mode,
            is_async=True,
        )
    except Exception as e:
        log.error(f"Rate limit check failed for user {workflow.user_id}, allowing request: {e}")
        return None

    if result.allowed:
        return None

    provider = get_webhook_provider(webhook.provider)
    log.warning(
        f"Rate limit exceeded for user {workflow.user_id} on webhook {webhook.id} "
        f"({result.limit} per window)"
    )

    if provider.SOFT_RATE_LIMIT:
        return provider.acknowledge("Rate limit exceeded", **result.to_dict())

    retry_after = max(
        1, math.ceil((result.reset_at - datetime.now(UTC)).total_seconds())
    )
    return JSONResponse(
        {"error": "Rate limit exceeded", **result.to_dict()},
        status_code=429,
        headers={
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
        },
    )


async def check_usage_limits(
    workflow: WorkflowModel, webhook: WebhookModel, log, is_test_mode: bool = False
) -> Optional[Response]:
    if is_test_mode:
        return None

    try:
        usage = await check_server_side_usage_limits(workflow.user_id)
    except Exception as e:
        log.error(f"Usage check failed for user {workflow.user_id}, allowing request: {e}")
        return None

    if not usage.is_exceeded:
        return None

    log.warning(f"Usage limit exceeded for webhook {webhook.id}: {usage.message}")
    return JSONResponse(
        {"error": "Usage limit exceeded", "message": usage.message},
        status_code=402,
    )


def build_execution_payload(
    target: WebhookTarget,
    body: Dict[str, Any],
    request: Request,
    *,
    request_id: str,
    path: str,
    test_mode: bool = False,
    execution_target: ExecutionTarget = ExecutionTarget.DEPLOYED,
    execution_mode: ExecutionMode = ExecutionMode.QUEUED,
) -> WebhookExecutionPayload:
    webhook, workflow = target.webhook, target.workflow
    provider = get_webhook_provider(webhook.provider)

    return WebhookExecutionPayload(
        webhook_id=webhook.id,
        workflow_id=workflow.id,
        user_id=workflow.user_id,
        provider=provider.PROVIDER_NAME,
        path=path,
        body=provider.parse_body(body, build_inbound_request(request)),
        headers={
            key: value
            for key, value in request.headers.items()
            if key.lower() not in SENSITIVE_HEADERS
        },
        request_id=request_id,
        block_id=webhook.block_id,
        test_mode=test_mode,
        execution_target=execution_target,
        execution_mode=execution_mode,
    )


async def queue_webhook_execution(
    target: WebhookTarget,
    body: Dict[str, Any],
    request: Request,
    *,
    request_id: str,
    path: str,
    log,
    test_mode: bool = False,
    execution_target: ExecutionTarget = ExecutionTarget.DEPLOYED,
) -> Response:
    """
    Hand the execution to the worker and acknowledge the provider.

    The response does not wait for the workflow; it only confirms that the
    execution was queued.
    """
    payload = build_execution_payload(
        target,
        body,
        request,
        request_id=request_id,
        path=path,
        test_mode=test_mode,
        execution_target=execution_target,
    )

    try:
        await enqueue_job(FunctionNames.EXECUTE_WEBHOOK, payload.to_dict())
    except Exception as e:
        log.error(f"Failed to queue execution for webhook {target.webhook.id}: {e}")
        return JSONResponse(
            {"error": "Failed to queue webhook execution"}, status_code=500
        )

    log.info(
        f"Queued execution {payload.execution_id} of workflow {target.workflow.id} "
        f"for webhook {target.webhook.id}"
    )
    provider = get_webhook_provider(target.webhook.provider)
    return provider.acknowledge("Webhook processed", requestId=request_id)
