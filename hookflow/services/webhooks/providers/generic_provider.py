"""
Generic HTTP webhook provider.
Authenticates with either a bearer token or a shared secret in a custom
header, and only when the user turned authentication on.
"""
from typing import Any, Dict

from hookflow.services.webhooks.providers.base import (
    InboundRequest,
    WebhookProvider,
    signatures_match,
)


class GenericProvider(WebhookProvider):
    PROVIDER_NAME = "generic"

    def verify(
        self,
        provider_config: Dict[str, Any],
        request: InboundRequest,
        raw_body: bytes,
    ) -> bool:
        if not provider_config.get("requireAuth"):
            return True

        token = provider_config.get("token")
        if not token:
            # Auth required but nothing to compare against
            return False

        header_name = provider_config.get("secretHeaderName")
        if header_name:
            return signatures_match(token, request.headers.get(header_name))

        authorization = request.headers.get("authorization", "")
        if not authorization.lower().startswith("bearer "):
            return False
        return signatures_match(token, authorization.split(" ", 1)[1].strip())
