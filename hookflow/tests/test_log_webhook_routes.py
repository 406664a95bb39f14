"""Tests for the per-workflow notification (log) webhook endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from hookflow.db.models import UserModel
from hookflow.services.notifications.delivery import DeliveryResult
from hookflow.services.notifications.validation import URL_DUPLICATE, URL_REQUIRED

BASE_URL = "/api/v1/workflows/10/log-webhook"


@pytest.fixture
def owned(mock_db, workflow):
    mock_db.get_workflow_for_user = AsyncMock(return_value=workflow)
    return mock_db


@pytest.mark.asyncio
async def test_list_hides_secret(test_client_factory, owned, owner, make_notification_webhook):
    owned.get_notification_webhooks_for_workflow = AsyncMock(
        return_value=[make_notification_webhook(secret="whsec_hidden")]
    )

    async with test_client_factory(owner) as client:
        response = await client.get(BASE_URL)

    assert response.status_code == 200
    [item] = response.json()["data"]
    assert item["hasSecret"] is True
    assert "secret" not in item
    assert "whsec_hidden" not in response.text
    assert item["levelFilter"] == ["info", "error"]


@pytest.mark.asyncio
async def test_create(test_client_factory, owned, owner, make_notification_webhook):
    created = make_notification_webhook(url="https://hooks.example.com/new", include_final_output=True)
    owned.create_notification_webhook = AsyncMock(return_value=created)

    async with test_client_factory(owner) as client:
        response = await client.post(
            BASE_URL,
            json={
                "url": " https://hooks.example.com/new ",
                "secret": "whsec_test",
                "includeFinalOutput": True,
                "levelFilter": ["error"],
                "triggerFilter": ["webhook"],
            },
        )

    assert response.status_code == 201
    assert response.json()["data"]["url"] == "https://hooks.example.com/new"
    kwargs = owned.create_notification_webhook.call_args.kwargs
    assert kwargs["url"] == "https://hooks.example.com/new"
    assert kwargs["include_final_output"] is True
    assert kwargs["level_filter"] == ["error"]


@pytest.mark.asyncio
async def test_create_with_missing_url_persists_nothing(test_client_factory, owned, owner):
    async with test_client_factory(owner) as client:
        response = await client.post(BASE_URL, json={"url": ""})

    assert response.status_code == 400
    assert response.json() == {
        "error": "Validation failed",
        "details": {"url": [URL_REQUIRED]},
    }
    owned.create_notification_webhook.assert_not_called()


@pytest.mark.asyncio
async def test_create_duplicate_url(test_client_factory, owned, owner, make_notification_webhook):
    owned.get_notification_webhooks_for_workflow = AsyncMock(
        return_value=[make_notification_webhook(url="https://hooks.example.com/executions")]
    )

    async with test_client_factory(owner) as client:
        response = await client.post(
            BASE_URL, json={"url": "https://hooks.example.com/executions"}
        )

    assert response.status_code == 400
    assert response.json()["details"] == {"url": [URL_DUPLICATE]}
    owned.create_notification_webhook.assert_not_called()


@pytest.mark.asyncio
async def test_create_race_maps_to_duplicate(test_client_factory, owned, owner):
    owned.create_notification_webhook = AsyncMock(
        side_effect=IntegrityError("INSERT", {}, Exception("unique violation"))
    )

    async with test_client_factory(owner) as client:
        response = await client.post(BASE_URL, json={"url": "https://hooks.example.com/x"})

    assert response.status_code == 400
    assert response.json()["details"] == {"url": [URL_DUPLICATE]}


@pytest.mark.asyncio
async def test_update_may_keep_its_own_url(
    test_client_factory, owned, owner, make_notification_webhook
):
    existing = make_notification_webhook()
    owned.get_notification_webhook = AsyncMock(return_value=existing)
    owned.get_notification_webhooks_for_workflow = AsyncMock(return_value=[existing])
    owned.update_notification_webhook = AsyncMock(return_value=existing)

    async with test_client_factory(owner) as client:
        response = await client.put(
            f"{BASE_URL}/{existing.id}",
            json={"url": existing.url, "active": False},
        )

    assert response.status_code == 200
    assert owned.update_notification_webhook.call_args.kwargs["active"] is False


@pytest.mark.asyncio
async def test_update_unknown_webhook(test_client_factory, owned, owner):
    async with test_client_factory(owner) as client:
        response = await client.put(
            f"{BASE_URL}/missing", json={"url": "https://hooks.example.com/a"}
        )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete(test_client_factory, owned, owner):
    owned.delete_notification_webhook = AsyncMock(return_value=True)

    async with test_client_factory(owner) as client:
        response = await client.delete(f"{BASE_URL}/abc")

    assert response.status_code == 200
    owned.delete_notification_webhook.assert_awaited_once_with("abc", 10)


@pytest.mark.asyncio
async def test_other_users_workflow_is_404(test_client_factory, mock_db):
    stranger = UserModel(id=2, provider_id="user_stranger")

    async with test_client_factory(stranger) as client:
        response = await client.get(BASE_URL)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_send_test_event(test_client_factory, owned, owner, make_notification_webhook):
    config = make_notification_webhook()
    owned.get_notification_webhook = AsyncMock(return_value=config)
    result = DeliveryResult(
        webhook_id=config.id, success=True, status=200, status_text="OK", attempts=1, duration_ms=12
    )

    with patch("hookflow.routes.log_webhook.test_webhook", AsyncMock(return_value=result)) as send:
        async with test_client_factory(owner) as client:
            response = await client.post(f"{BASE_URL}/test", params={"webhookId": config.id})

    assert response.status_code == 200
    assert response.json()["data"] == {
        "success": True,
        "status": 200,
        "statusText": "OK",
        "error": None,
        "attempts": 1,
        "durationMs": 12,
    }
    assert send.call_args.args[0] is config
