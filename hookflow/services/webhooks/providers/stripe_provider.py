"""
Stripe webhook provider.
The Stripe-Signature header looks like "t=<unix ts>,v1=<hex>[,v1=<hex>]";
each v1 value is an HMAC-SHA256 of "{t}.{body}" with the endpoint secret.
"""
import time
from typing import Any, Dict

from hookflow.services.webhooks.providers.base import (
    InboundRequest,
    WebhookProvider,
    compute_hmac_sha256,
    signatures_match,
)

# Stripe's default tolerance
SIGNATURE_TOLERANCE_SECONDS = 300


class StripeProvider(WebhookProvider):
    PROVIDER_NAME = "stripe"

    # Stripe backs off exponentially on its own
    SOFT_RATE_LIMIT = False

    def verify(
        self,
        provider_config: Dict[str, Any],
        request: InboundRequest,
        raw_body: bytes,
    ) -> bool:
        secret = provider_config.get("webhookSecret")
        if not secret:
            return True

        header = request.headers.get("stripe-signature")
        if not header:
            return False

        timestamp = None
        signatures = []
        for item in header.split(","):
            key, _, value = item.strip().partition("=")
            if key == "t":
                timestamp = value
            elif key == "v1":
                signatures.append(value)

        if not timestamp or not signatures:
            return False
        try:
            if abs(time.time() - int(timestamp)) > SIGNATURE_TOLERANCE_SECONDS:
                return False
        except ValueError:
            return False

        signed_payload = timestamp.encode("utf-8") + b"." + raw_body
        expected = compute_hmac_sha256(secret.encode("utf-8"), signed_payload).hex()

        # Evaluate every candidate so timing does not depend on position
        matched = False
        for signature in signatures:
            if signatures_match(expected, signature):
                matched = True
        return matched
