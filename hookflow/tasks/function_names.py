from enum import Enum


class FunctionNames(str, Enum):
    """Names of the functions registered with the arq worker."""

    EXECUTE_WEBHOOK = "execute_webhook"
    DISPATCH_EXECUTION_NOTIFICATIONS = "dispatch_execution_notifications"
