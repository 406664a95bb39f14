"""
Registry of webhook providers.
Adding a provider means writing a WebhookProvider subclass and listing it
here; nothing in the trigger pipeline changes.
"""
from typing import Dict, List

from hookflow.services.webhooks.providers.airtable_provider import AirtableProvider
from hookflow.services.webhooks.providers.base import WebhookProvider
from hookflow.services.webhooks.providers.generic_provider import GenericProvider
from hookflow.services.webhooks.providers.github_provider import GitHubProvider
from hookflow.services.webhooks.providers.microsoft_teams_provider import (
    MicrosoftTeamsProvider,
)
from hookflow.services.webhooks.providers.outlook_provider import OutlookProvider
from hookflow.services.webhooks.providers.slack_provider import SlackProvider
from hookflow.services.webhooks.providers.stripe_provider import StripeProvider
from hookflow.services.webhooks.providers.telegram_provider import TelegramProvider
from hookflow.services.webhooks.providers.whatsapp_provider import WhatsAppProvider

DEFAULT_PROVIDER = GenericProvider.PROVIDER_NAME

_PROVIDERS: Dict[str, WebhookProvider] = {}


def register_provider(provider: WebhookProvider) -> None:
    _PROVIDERS[provider.PROVIDER_NAME] = provider


def get_webhook_provider(name: str | None) -> WebhookProvider:
    """Get the provider registered under name, falling back to generic."""
    return _PROVIDERS.get(name or DEFAULT_PROVIDER, _PROVIDERS[DEFAULT_PROVIDER])


def is_known_provider(name: str) -> bool:
    return name in _PROVIDERS


def list_providers() -> List[WebhookProvider]:
    return list(_PROVIDERS.values())


for _provider in (
    GenericProvider(),
    SlackProvider(),
    GitHubProvider(),
    StripeProvider(),
    TelegramProvider(),
    MicrosoftTeamsProvider(),
    AirtableProvider(),
    WhatsAppProvider(),
    OutlookProvider(),
):
    register_provider(_provider)
