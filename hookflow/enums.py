from enum import Enum


class Environment(Enum):
    LOCAL = "local"
    PRODUCTION = "production"
    TEST = "test"


class TriggerType(str, Enum):
    """Entry points that can start a workflow execution."""

    API = "api"
    WEBHOOK = "webhook"
    SCHEDULE = "schedule"
    MANUAL = "manual"
    CHAT = "chat"


class NotificationLevel(str, Enum):
    INFO = "info"
    ERROR = "error"


class ExecutionMode(str, Enum):
    """How a webhook-triggered run is handed to the executor.

    QUEUED returns an acknowledgment immediately and leaves the run to the
    worker; SYNCHRONOUS blocks the request until the run finishes.
    """

    QUEUED = "queued"
    SYNCHRONOUS = "synchronous"


class ExecutionTarget(str, Enum):
    """Which graph a run executes: the editor state or the deployed snapshot."""

    LIVE = "live"
    DEPLOYED = "deployed"


class SubscriptionPlan(str, Enum):
    FREE = "free"
    PRO = "pro"
    TEAM = "team"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class SubscriptionReferenceType(str, Enum):
    USER = "user"
    ORGANIZATION = "organization"


class RedisChannel(Enum):
    """Redis key namespaces"""

    WEBHOOK_RATE_LIMIT = "webhook_rate"
