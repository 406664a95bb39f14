"""
Slack Events API provider.
Requests are signed with HMAC-SHA256 over "v0:{timestamp}:{body}" using the
app's signing secret; new endpoints are confirmed with a url_verification
challenge.
"""
import json
import time
from typing import Any, Dict, Optional

from fastapi import Response
from fastapi.responses import JSONResponse

from hookflow.services.webhooks.providers.base import (
    InboundRequest,
    WebhookProvider,
    compute_hmac_sha256,
    signatures_match,
)

# Requests older than this are rejected to prevent replays
MAX_REQUEST_AGE_SECONDS = 60 * 5


class SlackProvider(WebhookProvider):
    PROVIDER_NAME = "slack"

    def verify(
        self,
        provider_config: Dict[str, Any],
        request: InboundRequest,
        raw_body: bytes,
    ) -> bool:
        secret = provider_config.get("signingSecret")
        if not secret:
            return True

        timestamp = request.headers.get("x-slack-request-timestamp")
        slack_signature = request.headers.get("x-slack-signature")
        if not timestamp or not slack_signature:
            return False

        try:
            request_time = int(timestamp)
        except ValueError:
            return False
        if abs(time.time() - request_time) > MAX_REQUEST_AGE_SECONDS:
            return False

        sig_basestring = b"v0:" + timestamp.encode("utf-8") + b":" + raw_body
        expected_signature = (
            "v0=" + compute_hmac_sha256(secret.encode("utf-8"), sig_basestring).hex()
        )
        return signatures_match(expected_signature, slack_signature)

    def parse_challenge(
        self,
        body: Dict[str, Any],
        request: InboundRequest,
        provider_config: Optional[Dict[str, Any]] = None,
    ) -> Optional[Response]:
        if body.get("type") == "url_verification" and "challenge" in body:
            return JSONResponse({"challenge": body["challenge"]})
        return None

    def parse_body(
        self, body: Dict[str, Any], request: InboundRequest
    ) -> Dict[str, Any]:
        # Interactive components arrive form-encoded with the event as a
        # JSON string under "payload"
        payload = body.get("payload")
        if isinstance(payload, str):
            try:
                return json.loads(payload)
            except ValueError:
                return body
        return body
