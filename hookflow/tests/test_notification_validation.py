"""Tests for notification webhook settings validation."""

import pytest

from hookflow.services.notifications.validation import (
    LEVEL_FILTER_REQUIRED,
    TRIGGER_FILTER_REQUIRED,
    URL_BAD_SCHEME,
    URL_DUPLICATE,
    URL_INVALID,
    URL_REQUIRED,
    NotificationWebhookValidationError,
    validate_notification_webhook,
)

LEVELS = ["info", "error"]
TRIGGERS = ["api", "webhook"]


def _field_errors(**kwargs):
    values = {"url": "https://hooks.example.com/a", "level_filter": LEVELS, "trigger_filter": TRIGGERS}
    values.update(kwargs)
    with pytest.raises(NotificationWebhookValidationError) as exc_info:
        validate_notification_webhook(**values)
    return exc_info.value.field_errors


def test_valid_settings_pass():
    validate_notification_webhook("https://hooks.example.com/a", LEVELS, TRIGGERS)
    validate_notification_webhook("http://localhost:9000/hook", ["error"], ["manual"])


@pytest.mark.parametrize(
    "url, message",
    [
        (None, URL_REQUIRED),
        ("", URL_REQUIRED),
        ("   ", URL_REQUIRED),
        ("not a url", URL_INVALID),
        ("example.com/webhook", URL_INVALID),
        ("ftp://files.example.com/drop", URL_BAD_SCHEME),
    ],
)
def test_url_errors(url, message):
    assert _field_errors(url=url) == {"url": [message]}


def test_duplicate_url_within_workflow():
    errors = _field_errors(existing_urls=["https://hooks.example.com/a"])
    assert errors == {"url": [URL_DUPLICATE]}


def test_same_url_allowed_when_not_among_existing():
    validate_notification_webhook(
        "https://hooks.example.com/a",
        LEVELS,
        TRIGGERS,
        existing_urls=["https://hooks.example.com/b"],
    )


def test_empty_filters():
    assert _field_errors(level_filter=[]) == {"levelFilter": [LEVEL_FILTER_REQUIRED]}
    assert _field_errors(trigger_filter=[]) == {"triggerFilter": [TRIGGER_FILTER_REQUIRED]}


def test_unknown_filter_values():
    assert _field_errors(level_filter=["debug"]) == {"levelFilter": ["Unknown log level: debug"]}
    assert _field_errors(trigger_filter=["cron"]) == {
        "triggerFilter": ["Unknown trigger type: cron"]
    }


def test_stops_at_first_failing_field():
    errors = _field_errors(url="", level_filter=[], trigger_filter=[])
    assert list(errors) == ["url"]


def test_filters_are_checked_before_duplicate_url():
    errors = _field_errors(
        level_filter=[], existing_urls=["https://hooks.example.com/a"]
    )
    assert errors == {"levelFilter": [LEVEL_FILTER_REQUIRED]}
