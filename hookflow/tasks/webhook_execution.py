"""Running webhook-triggered workflow executions.

The same job body serves queued executions (through the arq worker) and
synchronous test executions (called directly by the test route).
"""

import asyncio
import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict, Optional

from loguru import logger

from hookflow.constants import WEBHOOK_EXECUTION_TIMEOUT_SECONDS
from hookflow.db import db_client
from hookflow.enums import (
    ExecutionMode,
    ExecutionTarget,
    NotificationLevel,
    TriggerType,
)
from hookflow.services.notifications.payload import ExecutionEvent
from hookflow.services.webhooks.rate_limiter import rate_limiter
from hookflow.services.webhooks.usage_limits import check_server_side_usage_limits
from hookflow.services.workflow.executor_client import ExecutorError, executor_client
from hookflow.tasks.arq import enqueue_job
from hookflow.tasks.function_names import FunctionNames


def generate_execution_id() -> str:
    return str(uuid.uuid4())


@dataclass
class WebhookExecutionPayload:
    """Everything a worker needs to run one webhook-triggered execution."""

    webhook_id: str
    workflow_id: int
    user_id: int
    provider: str
    path: str
    body: Dict[str, Any]
    headers: Dict[str, str]
    request_id: str
    block_id: Optional[str] = None
    execution_id: str = field(default_factory=generate_execution_id)
    test_mode: bool = False
    execution_target: ExecutionTarget = ExecutionTarget.DEPLOYED
    execution_mode: ExecutionMode = ExecutionMode.QUEUED

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["execution_target"] = ExecutionTarget(self.execution_target).value
        data["execution_mode"] = ExecutionMode(self.execution_mode).value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WebhookExecutionPayload":
        data = dict(data)
        data["execution_target"] = ExecutionTarget(data.get("execution_target", "deployed"))
        data["execution_mode"] = ExecutionMode(data.get("execution_mode", "queued"))
        return cls(**data)


@dataclass
class WebhookExecutionResult:
    success: bool
    execution_id: str
    executed_at: datetime
    output: Any = None
    error: Optional[str] = None
    cost: Dict[str, float] = field(default_factory=dict)
    trace_spans: list = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "executionId": self.execution_id,
            "executedAt": self.executed_at.isoformat(),
            "output": self.output,
            "error": self.error,
        }


async def execute_webhook_job(payload: WebhookExecutionPayload, log=logger) -> WebhookExecutionResult:
    """
    Run the workflow a webhook points at and report the outcome.

    Never raises for execution failures: missing or undeployed workflows,
    executor errors and timeouts all come back as success=False. A
    notification event is enqueued for every finished execution.

    Args:
        payload: The execution payload built by the trigger route
        log: Logger bound to the originating request

    Returns:
        WebhookExecutionResult
    """
    log.info(
        f"Executing workflow {payload.workflow_id} for webhook {payload.webhook_id} "
        f"(execution {payload.execution_id}, target "
        f"{ExecutionTarget(payload.execution_target).value})"
    )

    result = await _run_workflow(payload, log)

    if result.success:
        log.info(f"Execution {result.execution_id} succeeded")
    else:
        log.warning(f"Execution {result.execution_id} failed: {result.error}")

    await _enqueue_execution_notification(payload, result, log)
    return result


async def _run_workflow(payload: WebhookExecutionPayload, log) -> WebhookExecutionResult:
    def failure(error: str) -> WebhookExecutionResult:
        return WebhookExecutionResult(
            success=False,
            execution_id=payload.execution_id,
            executed_at=datetime.now(UTC),
            error=error,
        )

    if payload.execution_target == ExecutionTarget.DEPLOYED:
        workflow = await db_client.get_workflow_by_id(payload.workflow_id)
        if workflow is None:
            return failure("Workflow not found")
        if not workflow.is_deployed:
            return failure("Workflow is not deployed")

    try:
        response = await asyncio.wait_for(
            executor_client.execute(
                workflow_id=payload.workflow_id,
                target=payload.execution_target,
                workflow_input=payload.body,
                trigger_type=TriggerType.WEBHOOK,
                execution_id=payload.execution_id,
                metadata={
                    "webhookId": payload.webhook_id,
                    "blockId": payload.block_id,
                    "provider": payload.provider,
                    "path": payload.path,
                    "requestId": payload.request_id,
                    "headers": payload.headers,
                    "testMode": payload.test_mode,
                },
            ),
            timeout=WEBHOOK_EXECUTION_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        return failure(
            f"Execution timed out after {WEBHOOK_EXECUTION_TIMEOUT_SECONDS:g} seconds"
        )
    except ExecutorError as e:
        return failure(str(e))
    except Exception as e:
        log.exception(f"Unexpected error executing workflow {payload.workflow_id}")
        return failure(f"Execution failed: {e}")

    return WebhookExecutionResult(
        success=bool(response.get("success")),
        execution_id=payload.execution_id,
        executed_at=datetime.now(UTC),
        output=response.get("output"),
        error=response.get("error"),
        cost=response.get("cost") or {},
        trace_spans=response.get("traceSpans") or [],
    )


async def _enqueue_execution_notification(
    payload: WebhookExecutionPayload, result: WebhookExecutionResult, log
) -> None:
    # Notifications are best effort; the execution result stands either way
    try:
        configs = await db_client.get_notification_webhooks_for_workflow(
            payload.workflow_id, active_only=True
        )
        if not configs:
            return

        subscription = await db_client.get_highest_priority_subscription(payload.user_id)
        rate_limit_status = await rate_limiter.get_rate_limit_status(
            payload.user_id,
            subscription,
            TriggerType.WEBHOOK,
            is_test_mode=payload.test_mode,
        )
        usage = await check_server_side_usage_limits(payload.user_id)

        event = ExecutionEvent(
            workflow_id=payload.workflow_id,
            execution_id=result.execution_id,
            level=NotificationLevel.INFO if result.success else NotificationLevel.ERROR,
            trigger=TriggerType.WEBHOOK,
            timestamp=result.executed_at,
            cost=result.cost,
            final_output=result.output if result.success else {"error": result.error},
            trace_spans=result.trace_spans,
            rate_limits=rate_limit_status.to_dict(),
            usage=usage.to_dict(),
        )
        await enqueue_job(FunctionNames.DISPATCH_EXECUTION_NOTIFICATIONS, event.to_dict())
    except Exception as e:
        log.warning(
            f"Failed to enqueue notifications for execution {result.execution_id}: {e}"
        )


async def execute_webhook(ctx, payload: Dict[str, Any]):
    """arq entry point for queued webhook executions."""
    execution_payload = WebhookExecutionPayload.from_dict(payload)
    log = logger.bind(request_id=execution_payload.request_id)
    result = await execute_webhook_job(execution_payload, log)
    return result.to_dict()
