"""Client for the external workflow executor.

The executor owns workflow graphs (live editor state and deployed snapshots)
and runs them; this service only decides when and against which graph.
"""

from typing import Any, Dict, Optional

import httpx
from loguru import logger

from hookflow.constants import EXECUTOR_API_URL, INTERNAL_API_SECRET
from hookflow.enums import ExecutionTarget, TriggerType


class ExecutorError(Exception):
    """The executor could not be reached or answered with something unusable."""


class WorkflowExecutorClient:
    def __init__(self, base_url: str = EXECUTOR_API_URL, timeout: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        # The caller bounds the overall run; no per-request timeout by default
        self.timeout = timeout

    async def execute(
        self,
        workflow_id: int,
        target: ExecutionTarget,
        workflow_input: Dict[str, Any],
        trigger_type: TriggerType,
        execution_id: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Run a workflow and wait for it to finish.

        Args:
            workflow_id: The workflow to run
            target: LIVE runs the editor state, DEPLOYED the published snapshot
            workflow_input: Input handed to the trigger block
            trigger_type: What started the run
            execution_id: Id to record the run under
            metadata: Extra context (webhook id, block id, provider, ...)

        Returns:
            Dict with success, output, cost, traceSpans and error keys

        Raises:
            ExecutorError: On transport errors or a non-2xx/non-JSON response
        """
        url = f"{self.base_url}/internal/workflows/{workflow_id}/execute"
        body = {
            "executionId": execution_id,
            "target": ExecutionTarget(target).value,
            "triggerType": TriggerType(trigger_type).value,
            "input": workflow_input,
            "metadata": metadata or {},
        }
        headers = {"X-Internal-Secret": INTERNAL_API_SECRET}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=body, headers=headers)
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Executor returned {e.response.status_code} for workflow {workflow_id}"
            )
            raise ExecutorError(
                f"Executor returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ExecutorError(f"Executor request failed: {e}") from e
        except ValueError as e:
            raise ExecutorError("Executor returned a non-JSON response") from e

        if not isinstance(result, dict):
            raise ExecutorError("Executor returned an unexpected payload")
        return result


executor_client = WorkflowExecutorClient()
