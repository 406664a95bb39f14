from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class CreateWebhookRequest(CamelModel):
    workflow_id: int
    path: str = Field(min_length=1, max_length=255)
    provider: str = "generic"
    provider_config: Dict[str, Any] = Field(default_factory=dict)
    block_id: Optional[str] = None


class WebhookResponse(CamelModel):
    id: str
    workflow_id: int
    block_id: Optional[str] = None
    path: str
    provider: str
    # Names of the configured provider settings; values may be secrets
    provider_config_keys: list[str] = Field(default_factory=list)
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, webhook) -> "WebhookResponse":
        return cls(
            id=webhook.id,
            workflow_id=webhook.workflow_id,
            block_id=webhook.block_id,
            path=webhook.path,
            provider=webhook.provider,
            provider_config_keys=sorted((webhook.provider_config or {}).keys()),
            is_active=webhook.is_active,
            created_at=webhook.created_at,
            updated_at=webhook.updated_at,
        )


class WebhookTestUrlRequest(CamelModel):
    ttl_seconds: Optional[int] = Field(default=None, gt=0, le=7 * 24 * 3600)


class WebhookTestUrlResponse(CamelModel):
    url: str
    expires_at: datetime


class WebhookTestExecutionResponse(CamelModel):
    success: bool
    output: Any = None
    error: Optional[str] = None
    execution_id: Optional[str] = None
    executed_at: datetime
    mode: str = "test"
    target: str = "live"
