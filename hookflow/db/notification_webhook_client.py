"""Database client for outbound notification webhooks."""

from datetime import UTC, datetime
from typing import List, Optional

from loguru import logger
from sqlalchemy import delete, select, update

from hookflow.db.base_client import BaseDBClient
from hookflow.db.models import NotificationWebhookModel


class NotificationWebhookClient(BaseDBClient):
    """Client for managing notification webhooks (workflow-scoped)."""

    async def create_notification_webhook(
        self,
        workflow_id: int,
        url: str,
        level_filter: List[str],
        trigger_filter: List[str],
        secret: Optional[str] = None,
        include_final_output: bool = False,
        include_trace_spans: bool = False,
        include_rate_limits: bool = False,
        include_usage_data: bool = False,
    ) -> NotificationWebhookModel:
        """Create a notification webhook for a workflow.

        Args:
            workflow_id: ID of the workflow whose executions are reported
            url: Target URL, unique within the workflow
            level_filter: Log levels that are delivered
            trigger_filter: Trigger types that are delivered
            secret: Optional HMAC signing key

        Returns:
            The created NotificationWebhookModel
        """
        async with self.async_session() as session:
            webhook = NotificationWebhookModel(
                workflow_id=workflow_id,
                url=url,
                secret=secret or None,
                include_final_output=include_final_output,
                include_trace_spans=include_trace_spans,
                include_rate_limits=include_rate_limits,
                include_usage_data=include_usage_data,
                level_filter=level_filter,
                trigger_filter=trigger_filter,
                active=True,
            )

            session.add(webhook)
            await session.commit()
            await session.refresh(webhook)

            logger.info(
                f"Created notification webhook {webhook.id} for workflow {workflow_id}"
            )
            return webhook

    async def get_notification_webhooks_for_workflow(
        self, workflow_id: int, active_only: bool = False
    ) -> List[NotificationWebhookModel]:
        async with self.async_session() as session:
            query = select(NotificationWebhookModel).where(
                NotificationWebhookModel.workflow_id == workflow_id
            )

            if active_only:
                query = query.where(NotificationWebhookModel.active.is_(True))

            query = query.order_by(NotificationWebhookModel.created_at)

            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_notification_webhook(
        self, webhook_id: str, workflow_id: int
    ) -> Optional[NotificationWebhookModel]:
        """Get a notification webhook by id, scoped to its workflow."""
        async with self.async_session() as session:
            result = await session.execute(
                select(NotificationWebhookModel).where(
                    NotificationWebhookModel.id == webhook_id,
                    NotificationWebhookModel.workflow_id == workflow_id,
                )
            )
            return result.scalar_one_or_none()

    async def update_notification_webhook(
        self, webhook_id: str, workflow_id: int, **values
    ) -> Optional[NotificationWebhookModel]:
        """Update a notification webhook.

        Only keys present in ``values`` are written; an empty or missing
        ``secret`` keeps the stored one.

        Returns:
            Updated NotificationWebhookModel if found, None otherwise
        """
        if not values.get("secret"):
            values.pop("secret", None)
        values["updated_at"] = datetime.now(UTC)

        async with self.async_session() as session:
            result = await session.execute(
                update(NotificationWebhookModel)
                .where(
                    NotificationWebhookModel.id == webhook_id,
                    NotificationWebhookModel.workflow_id == workflow_id,
                )
                .values(**values)
            )
            await session.commit()

            if result.rowcount == 0:
                return None

            result = await session.execute(
                select(NotificationWebhookModel).where(
                    NotificationWebhookModel.id == webhook_id
                )
            )
            updated_webhook = result.scalar_one()

            logger.info(
                f"Updated notification webhook {webhook_id} for workflow {workflow_id}"
            )
            return updated_webhook

    async def delete_notification_webhook(
        self, webhook_id: str, workflow_id: int
    ) -> bool:
        """Delete a notification webhook.

        Returns:
            True if the webhook was deleted, False if not found
        """
        async with self.async_session() as session:
            result = await session.execute(
                delete(NotificationWebhookModel).where(
                    NotificationWebhookModel.id == webhook_id,
                    NotificationWebhookModel.workflow_id == workflow_id,
                )
            )
            await session.commit()

            if result.rowcount > 0:
                logger.info(
                    f"Deleted notification webhook {webhook_id} for workflow {workflow_id}"
                )
                return True
            return False
