from typing import Optional

from sqlalchemy import select

from hookflow.db.base_client import BaseDBClient
from hookflow.db.models import UserModel, WorkflowModel


class WorkflowClient(BaseDBClient):
    async def get_workflow_by_id(self, workflow_id: int) -> Optional[WorkflowModel]:
        async with self.async_session() as session:
            result = await session.execute(
                select(WorkflowModel).where(WorkflowModel.id == workflow_id)
            )
            return result.scalar_one_or_none()

    async def get_workflow_for_user(
        self, workflow_id: int, user_id: int
    ) -> Optional[WorkflowModel]:
        """Get a workflow only if it belongs to the user."""
        async with self.async_session() as session:
            result = await session.execute(
                select(WorkflowModel).where(
                    WorkflowModel.id == workflow_id,
                    WorkflowModel.user_id == user_id,
                )
            )
            return result.scalar_one_or_none()

    async def get_user_by_provider_id(self, provider_id: str) -> Optional[UserModel]:
        async with self.async_session() as session:
            result = await session.execute(
                select(UserModel).where(UserModel.provider_id == provider_id)
            )
            return result.scalar_one_or_none()
