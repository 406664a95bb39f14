"""
GitHub webhook provider.
Deliveries carry "X-Hub-Signature-256: sha256=<hex>" computed with the
webhook secret over the raw body.
"""
from typing import Any, Dict

from hookflow.services.webhooks.providers.base import (
    InboundRequest,
    WebhookProvider,
    compute_hmac_sha256,
    signatures_match,
)


class GitHubProvider(WebhookProvider):
    PROVIDER_NAME = "github"

    # GitHub does not retry failed deliveries, so a 429 is safe
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

        expected = "sha256=" + compute_hmac_sha256(secret.encode("utf-8"), raw_body).hex()
        return signatures_match(expected, request.headers.get("x-hub-signature-256"))

    def parse_body(
        self, body: Dict[str, Any], request: InboundRequest
    ) -> Dict[str, Any]:
        event = request.headers.get("x-github-event")
        if event:
            return {**body, "githubEvent": event}
        return body
