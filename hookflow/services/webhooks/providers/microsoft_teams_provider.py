"""
Microsoft Teams outgoing webhook provider.
Teams signs each message with "Authorization: HMAC <base64>" using the
base64 security token shown when the outgoing webhook is created, and
expects a message activity in the response.
"""
import base64
import binascii
from typing import Any, Dict

from fastapi import Response
from fastapi.responses import JSONResponse

from hookflow.services.webhooks.providers.base import (
    InboundRequest,
    WebhookProvider,
    compute_hmac_sha256,
    signatures_match,
)


class MicrosoftTeamsProvider(WebhookProvider):
    PROVIDER_NAME = "microsoftteams"

    def verify(
        self,
        provider_config: Dict[str, Any],
        request: InboundRequest,
        raw_body: bytes,
    ) -> bool:
        secret = provider_config.get("hmacSecret")
        if not secret:
            return True

        authorization = request.headers.get("authorization", "")
        if not authorization.startswith("HMAC "):
            return False

        try:
            key = base64.b64decode(secret)
        except (binascii.Error, ValueError):
            return False

        expected = base64.b64encode(compute_hmac_sha256(key, raw_body)).decode("ascii")
        return signatures_match(expected, authorization[len("HMAC ") :].strip())

    def acknowledge(self, message: str, status_code: int = 200, **extra) -> Response:
        # Teams renders the response body as a reply in the channel
        return JSONResponse({"type": "message", "text": message}, status_code=status_code)
