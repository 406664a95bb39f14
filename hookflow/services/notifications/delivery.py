"""Notification webhook delivery with HMAC signing, retries and fan-out."""

import asyncio
import hashlib
import hmac
import json
import time
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional

import httpx

from hookflow.constants import (
    NOTIFICATION_DELIVERY_BACKOFF_SECONDS,
    NOTIFICATION_DELIVERY_MAX_ATTEMPTS,
    NOTIFICATION_DELIVERY_TIMEOUT_SECONDS,
)
from hookflow.db.models import NotificationWebhookModel
from hookflow.enums import NotificationLevel, TriggerType
from hookflow.services.notifications.payload import (
    ExecutionEvent,
    PayloadInclusionPolicy,
    build_notification_payload,
    create_test_event,
)

SIGNATURE_HEADER = "X-Webhook-Signature"
USER_AGENT = "hookflow-notifications/1.0"

MAX_BACKOFF_SECONDS = 10.0


@dataclass
class DeliveryResult:
    """Outcome of delivering one event to one notification webhook."""

    webhook_id: str
    success: bool
    status: Optional[int] = None
    status_text: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0
    duration_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "webhookId": self.webhook_id,
            "success": self.success,
            "status": self.status,
            "statusText": self.status_text,
            "error": self.error,
            "attempts": self.attempts,
            "durationMs": self.duration_ms,
        }


def sign_payload(body: bytes, secret: str) -> str:
    """Generate the hex HMAC-SHA256 signature of a serialized payload."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def matches_filters(config: NotificationWebhookModel, event: ExecutionEvent) -> bool:
    """Whether a notification webhook wants this event."""
    if not config.active:
        return False
    level = NotificationLevel(event.level).value
    trigger = TriggerType(event.trigger).value
    return level in (config.level_filter or []) and trigger in (config.trigger_filter or [])


def serialize_payload(config: NotificationWebhookModel, event: ExecutionEvent) -> bytes:
    payload = build_notification_payload(event, PayloadInclusionPolicy.from_config(config))
    return json.dumps(payload, separators=(",", ":"), default=str).encode("utf-8")


def build_delivery_headers(
    body: bytes, config: NotificationWebhookModel, delivery_id: str
) -> dict:
    headers = {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
        "X-Webhook-Event": "workflow.execution",
        "X-Webhook-Delivery-Id": delivery_id,
        "X-Webhook-Timestamp": str(int(time.time() * 1000)),
    }
    if config.secret:
        headers[SIGNATURE_HEADER] = sign_payload(body, config.secret)
    return headers


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


async def deliver_to_webhook(
    client: httpx.AsyncClient,
    config: NotificationWebhookModel,
    event: ExecutionEvent,
    log,
    max_attempts: int = NOTIFICATION_DELIVERY_MAX_ATTEMPTS,
    backoff_seconds: float = NOTIFICATION_DELIVERY_BACKOFF_SECONDS,
) -> DeliveryResult:
    """Send one event to one notification webhook.

    The payload is serialized once; the same bytes are signed and sent on
    every attempt. Transport errors, 429 and 5xx responses are retried with
    exponential backoff; other responses are final.

    Args:
        client: HTTP client carrying the per-request timeout
        config: The notification webhook
        event: The execution event
        log: Logger bound to the caller's context
        max_attempts: Total attempts including the first
        backoff_seconds: Delay before the second attempt, doubled afterwards

    Returns:
        DeliveryResult; never raises for delivery failures
    """
    body = serialize_payload(config, event)
    headers = build_delivery_headers(body, config, delivery_id=str(uuid.uuid4()))

    result = DeliveryResult(webhook_id=config.id, success=False)
    start = time.monotonic()
    delay = max(backoff_seconds, 0)

    for attempt in range(1, max_attempts + 1):
        result.attempts = attempt
        headers["X-Webhook-Delivery-Attempt"] = str(attempt)
        try:
            response = await client.post(config.url, content=body, headers=headers)
            result.status = response.status_code
            result.status_text = response.reason_phrase
            result.error = None
            result.success = 200 <= response.status_code < 300
            if result.success or not _is_retryable_status(response.status_code):
                break
            result.error = f"HTTP {response.status_code}"
        except httpx.HTTPError as e:
            result.status = None
            result.status_text = None
            result.error = str(e) or e.__class__.__name__

        if attempt < max_attempts:
            log.debug(
                f"Notification webhook {config.id} attempt {attempt} failed "
                f"({result.error}), retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, MAX_BACKOFF_SECONDS)

    result.duration_ms = int((time.monotonic() - start) * 1000)

    if result.success:
        log.info(
            f"Delivered execution {event.execution_id} to notification webhook "
            f"{config.id} ({result.status})"
        )
    else:
        log.warning(
            f"Failed to deliver execution {event.execution_id} to notification webhook "
            f"{config.id} after {result.attempts} attempt(s): {result.error}"
        )
    return result


async def deliver(
    event: ExecutionEvent,
    configs: Iterable[NotificationWebhookModel],
    log,
    client: Optional[httpx.AsyncClient] = None,
    max_attempts: int = NOTIFICATION_DELIVERY_MAX_ATTEMPTS,
    backoff_seconds: float = NOTIFICATION_DELIVERY_BACKOFF_SECONDS,
) -> List[DeliveryResult]:
    """Fan an event out to every matching notification webhook.

    Deliveries run concurrently and independently; one slow or failing
    endpoint does not hold up or abort the others.
    """
    targets = [config for config in configs if matches_filters(config, event)]
    if not targets:
        log.debug(f"No notification webhooks match execution {event.execution_id}")
        return []

    async def _deliver_all(http_client: httpx.AsyncClient) -> List[DeliveryResult]:
        return list(
            await asyncio.gather(
                *(
                    deliver_to_webhook(
                        http_client, config, event, log, max_attempts, backoff_seconds
                    )
                    for config in targets
                )
            )
        )

    if client is not None:
        return await _deliver_all(client)

    async with httpx.AsyncClient(timeout=NOTIFICATION_DELIVERY_TIMEOUT_SECONDS) as http_client:
        return await _deliver_all(http_client)


async def test_webhook(
    config: NotificationWebhookModel,
    log,
    client: Optional[httpx.AsyncClient] = None,
) -> DeliveryResult:
    """Send a synthetic event through the normal signing and delivery path.

    Filters are ignored so an endpoint can be checked before it would ever
    match a real execution. A single attempt is made.
    """
    event = create_test_event(config.workflow_id)

    if client is not None:
        return await deliver_to_webhook(client, config, event, log, max_attempts=1)

    async with httpx.AsyncClient(timeout=NOTIFICATION_DELIVERY_TIMEOUT_SECONDS) as http_client:
        return await deliver_to_webhook(http_client, config, event, log, max_attempts=1)
