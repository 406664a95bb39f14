from typing import Any, Dict

from loguru import logger

from hookflow.db import db_client
from hookflow.services.notifications.delivery import deliver
from hookflow.services.notifications.payload import ExecutionEvent


async def dispatch_execution_notifications(ctx, event: Dict[str, Any]):
    execution_event = ExecutionEvent.from_dict(event)
    log = logger.bind(request_id=execution_event.execution_id[:8])

    configs = await db_client.get_notification_webhooks_for_workflow(
        execution_event.workflow_id, active_only=True
    )
    if not configs:
        log.debug(
            f"No active notification webhooks for workflow {execution_event.workflow_id}"
        )
        return []

    results = await deliver(execution_event, configs, log)
    delivered = sum(1 for result in results if result.success)
    log.info(
        f"Execution {execution_event.execution_id}: delivered {delivered}/{len(results)} "
        "notification(s)"
    )
    return [result.to_dict() for result in results]
