"""
Telegram Bot API provider.
setWebhook's secret_token is echoed back on every update in
X-Telegram-Bot-Api-Secret-Token.
"""
from typing import Any, Dict

from hookflow.services.webhooks.providers.base import (
    InboundRequest,
    WebhookProvider,
    signatures_match,
)


class TelegramProvider(WebhookProvider):
    PROVIDER_NAME = "telegram"

    def verify(
        self,
        provider_config: Dict[str, Any],
        request: InboundRequest,
        raw_body: bytes,
    ) -> bool:
        secret_token = provider_config.get("secretToken")
        if not secret_token:
            return True
        return signatures_match(
            secret_token, request.headers.get("x-telegram-bot-api-secret-token")
        )
