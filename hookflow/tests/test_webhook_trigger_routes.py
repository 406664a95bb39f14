"""End-to-end tests for GET/POST /webhooks/trigger/{path}."""

import hashlib
import hmac
import json
import time
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from hookflow.services.webhooks.rate_limiter import RateLimitResult
from hookflow.services.webhooks.usage_limits import UsageCheckResult
from hookflow.tasks.function_names import FunctionNames

PROCESSOR = "hookflow.services.webhooks.processor"
TRIGGER_URL = "/api/v1/webhooks/trigger"


def _allowed(limit=50, remaining=49):
    return RateLimitResult(
        allowed=True,
        limit=limit,
        remaining=remaining,
        reset_at=datetime.now(UTC) + timedelta(seconds=30),
    )


def _rejected(limit=50):
    return RateLimitResult(
        allowed=False,
        limit=limit,
        remaining=0,
        reset_at=datetime.now(UTC) + timedelta(seconds=30),
    )


@pytest.fixture
def pipeline(mock_db):
    """Patch the collaborators behind the pipeline stages."""
    with patch(
        f"{PROCESSOR}.rate_limiter.check_rate_limit_with_subscription",
        AsyncMock(return_value=_allowed()),
    ) as rate_limit, patch(
        f"{PROCESSOR}.check_server_side_usage_limits",
        AsyncMock(return_value=UsageCheckResult(is_exceeded=False)),
    ) as usage, patch(f"{PROCESSOR}.enqueue_job", AsyncMock()) as enqueue:
        yield {"db": mock_db, "rate_limit": rate_limit, "usage": usage, "enqueue": enqueue}


def _register(pipeline, webhook, workflow):
    pipeline["db"].get_active_webhook_with_workflow_by_path = AsyncMock(
        return_value=(webhook, workflow)
    )


@pytest.mark.asyncio
async def test_unknown_path_is_404(test_client, pipeline):
    response = await test_client.post(f"{TRIGGER_URL}/unknown-path", json={"a": 1})

    assert response.status_code == 404
    assert response.json() == {"error": "Webhook not found"}
    pipeline["enqueue"].assert_not_called()


@pytest.mark.asyncio
async def test_authenticated_generic_request_is_queued(
    test_client, pipeline, make_webhook, workflow
):
    webhook = make_webhook(provider_config={"requireAuth": True, "token": "s3cret"})
    _register(pipeline, webhook, workflow)

    response = await test_client.post(
        f"{TRIGGER_URL}/orders",
        json={"order": 42},
        headers={"Authorization": "Bearer s3cret"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Webhook processed"
    assert len(data["requestId"]) == 8

    pipeline["enqueue"].assert_awaited_once()
    function_name, payload = pipeline["enqueue"].call_args.args
    assert function_name == FunctionNames.EXECUTE_WEBHOOK
    assert payload["body"] == {"order": 42}
    assert payload["webhook_id"] == webhook.id
    assert payload["workflow_id"] == workflow.id
    assert payload["execution_target"] == "deployed"
    assert payload["execution_mode"] == "queued"
    assert payload["request_id"] == data["requestId"]
    # Credentials are not forwarded to the workflow
    assert "authorization" not in {key.lower() for key in payload["headers"]}


@pytest.mark.asyncio
async def test_wrong_token_is_401(test_client, pipeline, make_webhook, workflow):
    webhook = make_webhook(provider_config={"requireAuth": True, "token": "s3cret"})
    _register(pipeline, webhook, workflow)

    response = await test_client.post(
        f"{TRIGGER_URL}/orders", json={}, headers={"Authorization": "Bearer nope"}
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
    pipeline["rate_limit"].assert_not_called()
    pipeline["enqueue"].assert_not_called()


@pytest.mark.asyncio
async def test_github_signature_over_raw_bytes(test_client, pipeline, make_webhook, workflow):
    webhook = make_webhook(provider="github", provider_config={"webhookSecret": "gh"})
    _register(pipeline, webhook, workflow)
    raw = b'{"action":  "opened",\n "number": 7}'
    signature = "sha256=" + hmac.new(b"gh", raw, hashlib.sha256).hexdigest()

    response = await test_client.post(
        f"{TRIGGER_URL}/orders",
        content=raw,
        headers={
            "Content-Type": "application/json",
            "X-Hub-Signature-256": signature,
            "X-GitHub-Event": "pull_request",
        },
    )

    assert response.status_code == 200
    payload = pipeline["enqueue"].call_args.args[1]
    assert payload["body"] == {"action": "opened", "number": 7, "githubEvent": "pull_request"}


@pytest.mark.asyncio
async def test_slack_challenge_bypasses_lookup(test_client, pipeline):
    response = await test_client.post(
        f"{TRIGGER_URL}/slack-events",
        json={"type": "url_verification", "challenge": "abc123", "token": "x"},
    )

    assert response.status_code == 200
    assert response.json() == {"challenge": "abc123"}
    pipeline["db"].get_active_webhook_with_workflow_by_path.assert_not_called()
    pipeline["enqueue"].assert_not_called()


@pytest.mark.asyncio
async def test_soft_rate_limit_for_retrying_providers(
    test_client, pipeline, make_webhook, workflow
):
    secret = "slack-secret"
    webhook = make_webhook(provider="slack", provider_config={"signingSecret": secret})
    _register(pipeline, webhook, workflow)
    pipeline["rate_limit"].return_value = _rejected()

    raw = json.dumps({"type": "event_callback", "event": {"type": "message"}}).encode()
    timestamp = str(int(time.time()))
    signature = "v0=" + hmac.new(
        secret.encode(), b"v0:" + timestamp.encode() + b":" + raw, hashlib.sha256
    ).hexdigest()

    response = await test_client.post(
        f"{TRIGGER_URL}/orders",
        content=raw,
        headers={
            "Content-Type": "application/json",
            "X-Slack-Request-Timestamp": timestamp,
            "X-Slack-Signature": signature,
        },
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Rate limit exceeded"
    pipeline["enqueue"].assert_not_called()


@pytest.mark.asyncio
async def test_hard_rate_limit_returns_429(test_client, pipeline, make_webhook, workflow):
    webhook = make_webhook(provider="stripe")
    _register(pipeline, webhook, workflow)
    pipeline["rate_limit"].return_value = _rejected(limit=50)

    response = await test_client.post(f"{TRIGGER_URL}/orders", json={"type": "charge.succeeded"})

    assert response.status_code == 429
    assert 1 <= int(response.headers["Retry-After"]) <= 30
    assert response.json()["limit"] == 50
    pipeline["enqueue"].assert_not_called()


@pytest.mark.asyncio
async def test_redis_outage_lets_request_through(test_client, pipeline, make_webhook, workflow):
    _register(pipeline, make_webhook(), workflow)
    pipeline["rate_limit"].side_effect = RedisConnectionError("connection refused")

    response = await test_client.post(f"{TRIGGER_URL}/orders", json={})

    assert response.status_code == 200
    pipeline["enqueue"].assert_awaited_once()


@pytest.mark.asyncio
async def test_usage_limit_exceeded_is_402(test_client, pipeline, make_webhook, workflow):
    _register(pipeline, make_webhook(), workflow)
    pipeline["usage"].return_value = UsageCheckResult(
        is_exceeded=True, current_usage=12.0, limit=10.0, message="Usage limit exceeded: $12.00"
    )

    response = await test_client.post(f"{TRIGGER_URL}/orders", json={})

    assert response.status_code == 402
    assert response.json()["error"] == "Usage limit exceeded"
    pipeline["enqueue"].assert_not_called()


@pytest.mark.asyncio
async def test_enqueue_failure_is_500(test_client, pipeline, make_webhook, workflow):
    _register(pipeline, make_webhook(), workflow)
    pipeline["enqueue"].side_effect = ConnectionError("queue unavailable")

    response = await test_client.post(f"{TRIGGER_URL}/orders", json={})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to queue webhook execution"}


@pytest.mark.asyncio
async def test_storage_error_is_500(test_client, pipeline):
    pipeline["db"].get_active_webhook_with_workflow_by_path = AsyncMock(
        side_effect=RuntimeError("database unavailable")
    )

    response = await test_client.post(f"{TRIGGER_URL}/orders", json={})

    assert response.status_code == 500


@pytest.mark.asyncio
async def test_teams_acknowledgment_shape(test_client, pipeline, make_webhook, workflow):
    _register(pipeline, make_webhook(provider="microsoftteams"), workflow)

    response = await test_client.post(f"{TRIGGER_URL}/orders", json={"type": "message"})

    assert response.status_code == 200
    assert response.json() == {"type": "message", "text": "Webhook processed"}


@pytest.mark.asyncio
async def test_form_encoded_body_is_forwarded(test_client, pipeline, make_webhook, workflow):
    _register(pipeline, make_webhook(), workflow)

    response = await test_client.post(
        f"{TRIGGER_URL}/orders",
        content=b"name=Ada&plan=pro",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )

    assert response.status_code == 200
    assert pipeline["enqueue"].call_args.args[1]["body"] == {"name": "Ada", "plan": "pro"}


@pytest.mark.asyncio
async def test_nested_paths_are_supported(test_client, pipeline, make_webhook, workflow):
    _register(pipeline, make_webhook(path="team/orders"), workflow)

    response = await test_client.post(f"{TRIGGER_URL}/team/orders", json={})

    assert response.status_code == 200
    pipeline["db"].get_active_webhook_with_workflow_by_path.assert_awaited_with("team/orders")


class TestExistenceCheck:
    @pytest.mark.asyncio
    async def test_existing_webhook_is_ok(self, test_client, pipeline, make_webhook, workflow):
        _register(pipeline, make_webhook(), workflow)

        response = await test_client.get(f"{TRIGGER_URL}/orders")

        assert response.status_code == 200
        assert response.text == "OK"

    @pytest.mark.asyncio
    async def test_missing_webhook_is_404(self, test_client, pipeline):
        response = await test_client.get(f"{TRIGGER_URL}/nothing-here")

        assert response.status_code == 404
        assert response.text == "Webhook not found"

    @pytest.mark.asyncio
    async def test_whatsapp_verification(self, test_client, pipeline, make_webhook, workflow):
        webhook = make_webhook(
            provider="whatsapp", provider_config={"verificationToken": "meta-token"}
        )
        _register(pipeline, webhook, workflow)

        response = await test_client.get(
            f"{TRIGGER_URL}/orders",
            params={
                "hub.mode": "subscribe",
                "hub.verify_token": "meta-token",
                "hub.challenge": "987654",
            },
        )

        assert response.status_code == 200
        assert response.text == "987654"

    @pytest.mark.asyncio
    async def test_whatsapp_verification_wrong_token(
        self, test_client, pipeline, make_webhook, workflow
    ):
        webhook = make_webhook(
            provider="whatsapp", provider_config={"verificationToken": "meta-token"}
        )
        _register(pipeline, webhook, workflow)

        response = await test_client.get(
            f"{TRIGGER_URL}/orders",
            params={"hub.mode": "subscribe", "hub.verify_token": "x", "hub.challenge": "1"},
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_hub_params_on_other_providers_path_get_existence_check(
        self, test_client, pipeline, make_webhook, workflow
    ):
        _register(pipeline, make_webhook(provider="github"), workflow)

        response = await test_client.get(
            f"{TRIGGER_URL}/orders",
            params={"hub.mode": "subscribe", "hub.verify_token": "x", "hub.challenge": "1"},
        )

        assert response.status_code == 200
        assert response.text == "OK"

    @pytest.mark.asyncio
    async def test_hub_params_on_unknown_path_get_404(self, test_client, pipeline):
        response = await test_client.get(
            f"{TRIGGER_URL}/nothing-here",
            params={"hub.mode": "subscribe", "hub.verify_token": "x", "hub.challenge": "1"},
        )

        assert response.status_code == 404
        assert response.text == "Webhook not found"

    @pytest.mark.asyncio
    async def test_outlook_validation_token(self, test_client, pipeline):
        response = await test_client.post(
            f"{TRIGGER_URL}/mail", params={"validationToken": "token-abc"}
        )

        assert response.status_code == 200
        assert response.text == "token-abc"
        assert response.headers["content-type"].startswith("text/plain")
