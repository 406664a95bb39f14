"""
WhatsApp Cloud API (Meta) provider.
Endpoint registration is a GET with hub.mode=subscribe, hub.verify_token and
hub.challenge; the challenge is echoed when the verify token matches.
Deliveries are signed with the app secret in X-Hub-Signature-256.
"""
from typing import Any, Dict, Optional

from fastapi import Response
from fastapi.responses import PlainTextResponse

from hookflow.services.webhooks.providers.base import (
    InboundRequest,
    WebhookProvider,
    compute_hmac_sha256,
    signatures_match,
)


class WhatsAppProvider(WebhookProvider):
    PROVIDER_NAME = "whatsapp"

    def _is_verification(self, request: InboundRequest) -> bool:
        return (
            request.method == "GET"
            and request.query_params.get("hub.mode") == "subscribe"
            and "hub.challenge" in request.query_params
        )

    def needs_config_for_challenge(
        self, body: Dict[str, Any], request: InboundRequest
    ) -> bool:
        return self._is_verification(request)

    def parse_challenge(
        self,
        body: Dict[str, Any],
        request: InboundRequest,
        provider_config: Optional[Dict[str, Any]] = None,
    ) -> Optional[Response]:
        if not self._is_verification(request):
            return None
        # Path is not owned by a WhatsApp webhook
        if provider_config is None:
            return None

        expected_token = provider_config.get("verificationToken")
        received_token = request.query_params.get("hub.verify_token")
        if expected_token and signatures_match(expected_token, received_token):
            return PlainTextResponse(request.query_params["hub.challenge"])
        return PlainTextResponse("Verification failed", status_code=403)

    def verify(
        self,
        provider_config: Dict[str, Any],
        request: InboundRequest,
        raw_body: bytes,
    ) -> bool:
        app_secret = provider_config.get("appSecret")
        if not app_secret:
            return True

        expected = "sha256=" + compute_hmac_sha256(app_secret.encode("utf-8"), raw_body).hex()
        return signatures_match(expected, request.headers.get("x-hub-signature-256"))
