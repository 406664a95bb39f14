"""Execution events and the JSON payload delivered to notification webhooks."""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

from hookflow.enums import NotificationLevel, TriggerType


@dataclass(frozen=True)
class PayloadInclusionPolicy:
    """Which optional sections a notification webhook receives.

    Base metadata and cost are always sent.
    """

    include_final_output: bool = False
    include_trace_spans: bool = False
    include_rate_limits: bool = False
    include_usage_data: bool = False

    @classmethod
    def from_config(cls, config) -> "PayloadInclusionPolicy":
        return cls(
            include_final_output=bool(config.include_final_output),
            include_trace_spans=bool(config.include_trace_spans),
            include_rate_limits=bool(config.include_rate_limits),
            include_usage_data=bool(config.include_usage_data),
        )


@dataclass
class ExecutionEvent:
    """A finished workflow execution, as reported to notification webhooks."""

    workflow_id: int
    execution_id: str
    level: NotificationLevel
    trigger: TriggerType
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    cost: Dict[str, float] = field(default_factory=dict)
    final_output: Any = None
    trace_spans: List[Dict[str, Any]] = field(default_factory=list)
    rate_limits: Optional[Dict[str, Any]] = None
    usage: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form, used to hand events to the worker."""
        return {
            "workflow_id": self.workflow_id,
            "execution_id": self.execution_id,
            "level": NotificationLevel(self.level).value,
            "trigger": TriggerType(self.trigger).value,
            "timestamp": self.timestamp.isoformat(),
            "cost": self.cost,
            "final_output": self.final_output,
            "trace_spans": self.trace_spans,
            "rate_limits": self.rate_limits,
            "usage": self.usage,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionEvent":
        return cls(
            workflow_id=data["workflow_id"],
            execution_id=data["execution_id"],
            level=NotificationLevel(data["level"]),
            trigger=TriggerType(data["trigger"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            cost=data.get("cost") or {},
            final_output=data.get("final_output"),
            trace_spans=data.get("trace_spans") or [],
            rate_limits=data.get("rate_limits"),
            usage=data.get("usage"),
        )


def build_notification_payload(
    event: ExecutionEvent, policy: PayloadInclusionPolicy
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "workflowId": event.workflow_id,
        "executionId": event.execution_id,
        "level": NotificationLevel(event.level).value,
        "trigger": TriggerType(event.trigger).value,
        "timestamp": event.timestamp.isoformat(),
        "cost": event.cost,
    }

    if policy.include_final_output:
        payload["finalOutput"] = event.final_output
    if policy.include_trace_spans:
        payload["traceSpans"] = event.trace_spans
    if policy.include_rate_limits:
        payload["rateLimits"] = event.rate_limits
    if policy.include_usage_data:
        payload["usage"] = event.usage

    return payload


def create_test_event(workflow_id: int) -> ExecutionEvent:
    """Synthetic event used to try out a notification webhook."""
    now = datetime.now(UTC)
    return ExecutionEvent(
        workflow_id=workflow_id,
        execution_id=f"test_{uuid.uuid4().hex}",
        level=NotificationLevel.INFO,
        trigger=TriggerType.MANUAL,
        timestamp=now,
        cost={"total": 0.0, "input": 0.0, "output": 0.0},
        final_output={"message": "This is a test webhook delivery"},
        trace_spans=[
            {
                "name": "test-block",
                "type": "test",
                "status": "success",
                "startTime": now.isoformat(),
                "endTime": now.isoformat(),
                "duration": 0,
            }
        ],
        rate_limits={"limit": 0, "remaining": 0, "resetAt": now.isoformat()},
        usage={"currentPeriodCost": 0.0, "limit": 0.0, "plan": "free", "isExceeded": False},
    )
