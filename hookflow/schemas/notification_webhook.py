from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class NotificationWebhookBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class NotificationWebhookRequest(NotificationWebhookBase):
    """Body of create and update requests.

    Fields are loosely typed so that the route's own validation produces the
    field errors shown to users instead of a generic 422.
    """

    url: Optional[str] = None
    secret: Optional[str] = None
    include_final_output: bool = False
    include_trace_spans: bool = False
    include_rate_limits: bool = False
    include_usage_data: bool = False
    level_filter: List[str] = Field(default_factory=lambda: ["info", "error"])
    trigger_filter: List[str] = Field(
        default_factory=lambda: ["api", "webhook", "schedule", "manual", "chat"]
    )
    active: bool = True


class NotificationWebhookResponse(NotificationWebhookBase):
    id: str
    workflow_id: int
    url: str
    # The secret itself is never returned
    has_secret: bool = False
    include_final_output: bool
    include_trace_spans: bool
    include_rate_limits: bool
    include_usage_data: bool
    level_filter: List[str]
    trigger_filter: List[str]
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, webhook) -> "NotificationWebhookResponse":
        return cls(
            id=webhook.id,
            workflow_id=webhook.workflow_id,
            url=webhook.url,
            has_secret=bool(webhook.secret),
            include_final_output=webhook.include_final_output,
            include_trace_spans=webhook.include_trace_spans,
            include_rate_limits=webhook.include_rate_limits,
            include_usage_data=webhook.include_usage_data,
            level_filter=list(webhook.level_filter or []),
            trigger_filter=list(webhook.trigger_filter or []),
            active=webhook.active,
            created_at=webhook.created_at,
            updated_at=webhook.updated_at,
        )


class NotificationWebhookTestResponse(NotificationWebhookBase):
    success: bool
    status: Optional[int] = None
    status_text: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0
    duration_ms: int = 0
