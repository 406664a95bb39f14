from hookflow.db.billing_client import BillingClient
from hookflow.db.notification_webhook_client import NotificationWebhookClient
from hookflow.db.webhook_client import WebhookClient
from hookflow.db.workflow_client import WorkflowClient


class DBClient(
    WorkflowClient,
    WebhookClient,
    BillingClient,
    NotificationWebhookClient,
):
    """
    Unified database client that combines all specialized database operations.

    This client inherits from:
    - WorkflowClient: handles workflow and user lookups
    - WebhookClient: handles inbound webhook registrations
    - BillingClient: handles subscription and usage lookups
    - NotificationWebhookClient: handles outbound notification webhooks
    """

    pass
