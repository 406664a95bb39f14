"""
Airtable webhook provider.
Notification pings carry "X-Airtable-Content-MAC: hmac-sha256=<hex>" keyed
with the base64 macSecretBase64 returned when the webhook was created.
"""
import base64
import binascii
from typing import Any, Dict

from hookflow.services.webhooks.providers.base import (
    InboundRequest,
    WebhookProvider,
    compute_hmac_sha256,
    signatures_match,
)


class AirtableProvider(WebhookProvider):
    PROVIDER_NAME = "airtable"

    def verify(
        self,
        provider_config: Dict[str, Any],
        request: InboundRequest,
        raw_body: bytes,
    ) -> bool:
        mac_secret = provider_config.get("macSecretBase64")
        if not mac_secret:
            return True

        try:
            key = base64.b64decode(mac_secret)
        except (binascii.Error, ValueError):
            return False

        expected = "hmac-sha256=" + compute_hmac_sha256(key, raw_body).hex()
        return signatures_match(expected, request.headers.get("x-airtable-content-mac"))
