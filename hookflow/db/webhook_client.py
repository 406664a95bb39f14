"""Database client for inbound webhook registrations."""

from datetime import UTC, datetime
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from hookflow.db.base_client import BaseDBClient
from hookflow.db.models import WebhookModel, WorkflowModel


class WebhookPathConflictError(Exception):
    """Raised when another active webhook already owns the path."""


class WebhookClient(BaseDBClient):
    """Client for managing webhook triggers (path -> workflow mappings)."""

    async def get_active_webhook_with_workflow_by_path(
        self, path: str
    ) -> Optional[Tuple[WebhookModel, WorkflowModel]]:
        """Get the active webhook for a path together with its workflow.

        Runs on every inbound provider call; the lookup is served by the
        partial unique index on active paths.

        Args:
            path: The routing path of the webhook

        Returns:
            (webhook, workflow) if an active webhook owns the path, None otherwise
        """
        async with self.async_session() as session:
            result = await session.execute(
                select(WebhookModel, WorkflowModel)
                .join(WorkflowModel, WebhookModel.workflow_id == WorkflowModel.id)
                .where(
                    WebhookModel.path == path,
                    WebhookModel.is_active.is_(True),
                )
                .limit(1)
            )
            row = result.first()
            if row is None:
                return None
            return row[0], row[1]

    async def get_webhook_with_workflow_by_id(
        self, webhook_id: str
    ) -> Optional[Tuple[WebhookModel, WorkflowModel]]:
        """Get a webhook by id together with its workflow, active or not."""
        async with self.async_session() as session:
            result = await session.execute(
                select(WebhookModel, WorkflowModel)
                .join(WorkflowModel, WebhookModel.workflow_id == WorkflowModel.id)
                .where(WebhookModel.id == webhook_id)
                .limit(1)
            )
            row = result.first()
            if row is None:
                return None
            return row[0], row[1]

    async def get_webhooks_for_workflow(
        self, workflow_id: int, active_only: bool = True
    ) -> List[WebhookModel]:
        async with self.async_session() as session:
            query = select(WebhookModel).where(WebhookModel.workflow_id == workflow_id)
            if active_only:
                query = query.where(WebhookModel.is_active.is_(True))
            query = query.order_by(WebhookModel.created_at)

            result = await session.execute(query)
            return list(result.scalars().all())

    async def create_webhook(
        self,
        workflow_id: int,
        path: str,
        provider: str,
        provider_config: Optional[dict] = None,
        block_id: Optional[str] = None,
    ) -> WebhookModel:
        """Create an active webhook for a workflow.

        Raises:
            WebhookPathConflictError: If an active webhook already uses the path
        """
        async with self.async_session() as session:
            existing = await session.execute(
                select(WebhookModel.id).where(
                    WebhookModel.path == path,
                    WebhookModel.is_active.is_(True),
                )
            )
            if existing.scalar_one_or_none() is not None:
                raise WebhookPathConflictError(path)

            webhook = WebhookModel(
                workflow_id=workflow_id,
                path=path,
                provider=provider,
                provider_config=provider_config or {},
                block_id=block_id,
                is_active=True,
            )
            session.add(webhook)
            try:
                await session.commit()
            except IntegrityError as e:
                # Lost a race for the path against a concurrent create
                await session.rollback()
                raise WebhookPathConflictError(path) from e
            await session.refresh(webhook)

            logger.info(
                f"Created {provider} webhook {webhook.id} at path '{path}' "
                f"for workflow {workflow_id}"
            )
            return webhook

    async def deactivate_webhook(self, webhook_id: str, workflow_id: int) -> bool:
        """Deactivate a webhook, freeing its path.

        Returns:
            True if an active webhook was deactivated, False if not found
        """
        async with self.async_session() as session:
            result = await session.execute(
                update(WebhookModel)
                .where(
                    WebhookModel.id == webhook_id,
                    WebhookModel.workflow_id == workflow_id,
                    WebhookModel.is_active.is_(True),
                )
                .values(is_active=False, updated_at=datetime.now(UTC))
            )
            await session.commit()

            if result.rowcount > 0:
                logger.info(f"Deactivated webhook {webhook_id} for workflow {workflow_id}")
                return True
            return False
