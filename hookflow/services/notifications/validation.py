"""Validation of notification webhook settings before anything is persisted."""

from typing import Dict, Iterable, List, Optional
from urllib.parse import urlparse

from hookflow.enums import NotificationLevel, TriggerType

URL_REQUIRED = "Please enter a webhook URL"
URL_INVALID = "Please enter a valid URL (e.g., https://example.com/webhook)"
URL_BAD_SCHEME = "URL must start with http:// or https://"
URL_DUPLICATE = "A webhook with this URL already exists"
LEVEL_FILTER_REQUIRED = "Please select at least one log level filter"
TRIGGER_FILTER_REQUIRED = "Please select at least one trigger filter"


class NotificationWebhookValidationError(Exception):
    """Carries field errors keyed by url, levelFilter, triggerFilter or general."""

    def __init__(self, field_errors: Dict[str, List[str]]):
        self.field_errors = field_errors
        super().__init__(
            "; ".join(f"{key}: {', '.join(messages)}" for key, messages in field_errors.items())
        )


def _validate_url(url: Optional[str]) -> Optional[str]:
    if url is None or not url.strip():
        return URL_REQUIRED

    url = url.strip()
    try:
        parsed = urlparse(url)
    except ValueError:
        return URL_INVALID
    if not parsed.scheme or not parsed.netloc:
        return URL_INVALID
    if parsed.scheme.lower() not in ("http", "https"):
        return URL_BAD_SCHEME
    return None


def _validate_filter(
    values: Optional[List[str]], allowed: Iterable[str], empty_message: str, label: str
) -> Optional[str]:
    if not values:
        return empty_message
    unknown = [value for value in values if value not in allowed]
    if unknown:
        return f"Unknown {label}: {', '.join(sorted(set(map(str, unknown))))}"
    return None


def validate_notification_webhook(
    url: Optional[str],
    level_filter: Optional[List[str]],
    trigger_filter: Optional[List[str]],
    existing_urls: Iterable[str] = (),
) -> None:
    """
    Check notification webhook settings, stopping at the first failing field.

    URL format comes first, then the filters; the duplicate URL check runs
    last.

    Args:
        url: Target URL
        level_filter: Selected log levels
        trigger_filter: Selected trigger types
        existing_urls: URLs of the workflow's other notification webhooks,
            excluding the one being edited

    Raises:
        NotificationWebhookValidationError: With a single field error
    """
    error = _validate_url(url)
    if error:
        raise NotificationWebhookValidationError({"url": [error]})

    error = _validate_filter(
        level_filter,
        [level.value for level in NotificationLevel],
        LEVEL_FILTER_REQUIRED,
        "log level",
    )
    if error:
        raise NotificationWebhookValidationError({"levelFilter": [error]})

    error = _validate_filter(
        trigger_filter,
        [trigger.value for trigger in TriggerType],
        TRIGGER_FILTER_REQUIRED,
        "trigger type",
    )
    if error:
        raise NotificationWebhookValidationError({"triggerFilter": [error]})

    if url.strip() in {existing.strip() for existing in existing_urls}:
        raise NotificationWebhookValidationError({"url": [URL_DUPLICATE]})
