"""Tests for reading and decoding inbound webhook bodies."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from loguru import logger

from hookflow.services.webhooks.processor import decode_webhook_body, parse_webhook_body


def _request(body: bytes = b"", content_type: str = "application/json", error=None):
    request = MagicMock()
    request.headers = {"content-type": content_type}
    if error is not None:
        request.body = AsyncMock(side_effect=error)
    else:
        request.body = AsyncMock(return_value=body)
    return request


class TestDecodeWebhookBody:
    def test_json_object(self):
        assert decode_webhook_body(b'{"order": 42, "items": [1, 2]}') == {
            "order": 42,
            "items": [1, 2],
        }

    def test_empty_body_is_empty_object(self):
        assert decode_webhook_body(b"") == {}
        assert decode_webhook_body(b"   \n") == {}

    def test_non_object_json_is_wrapped(self):
        assert decode_webhook_body(b"[1, 2, 3]") == {"data": [1, 2, 3]}

    def test_form_encoded_body(self):
        body = decode_webhook_body(
            b"token=abc&team_id=T1&text=hello+world&empty=",
            "application/x-www-form-urlencoded; charset=utf-8",
        )
        assert body == {"token": "abc", "team_id": "T1", "text": "hello world", "empty": ""}

    def test_form_body_without_form_content_type_is_raw(self):
        assert decode_webhook_body(b"a=1&b=2", "text/plain") == {"_raw": "a=1&b=2"}

    def test_plain_text_is_raw(self):
        assert decode_webhook_body(b"hello there", "text/plain") == {"_raw": "hello there"}


@pytest.mark.asyncio
async def test_parse_keeps_raw_bytes_unmodified():
    raw = b'{ "b": 1,   "a": "\xc3\xa9" }'
    parsed, error = await parse_webhook_body(_request(raw), logger)

    assert error is None
    assert parsed.raw_body == raw
    assert parsed.body == json.loads(raw)


@pytest.mark.asyncio
async def test_parse_read_failure_returns_400():
    parsed, error = await parse_webhook_body(
        _request(error=RuntimeError("client disconnected")), logger
    )

    assert parsed is None
    assert error.status_code == 400
    assert json.loads(error.body) == {"error": "Failed to read request body"}
