"""
Microsoft Graph (Outlook) change notification provider.
Subscriptions are validated by echoing the validationToken query parameter
as text/plain; notifications carry the subscription's clientState in every
item of "value".
"""
import json
from typing import Any, Dict, Optional

from fastapi import Response
from fastapi.responses import PlainTextResponse

from hookflow.services.webhooks.providers.base import (
    InboundRequest,
    WebhookProvider,
    signatures_match,
)


class OutlookProvider(WebhookProvider):
    PROVIDER_NAME = "outlook"

    def parse_challenge(
        self,
        body: Dict[str, Any],
        request: InboundRequest,
        provider_config: Optional[Dict[str, Any]] = None,
    ) -> Optional[Response]:
        validation_token = request.query_params.get("validationToken")
        if validation_token:
            return PlainTextResponse(validation_token)
        return None

    def verify(
        self,
        provider_config: Dict[str, Any],
        request: InboundRequest,
        raw_body: bytes,
    ) -> bool:
        client_state = provider_config.get("clientState")
        if not client_state:
            return True

        try:
            notifications = json.loads(raw_body).get("value")
        except (ValueError, AttributeError):
            return False
        if not isinstance(notifications, list) or not notifications:
            return False

        return all(
            isinstance(item, dict)
            and signatures_match(client_state, item.get("clientState"))
            for item in notifications
        )
