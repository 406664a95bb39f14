from typing import Annotated

import httpx
from fastapi import Header, HTTPException
from loguru import logger

from hookflow.db import db_client
from hookflow.db.models import UserModel, WorkflowModel
from hookflow.services.auth.session_auth import session_auth


async def get_user(
    authorization: Annotated[str | None, Header()] = None,
) -> UserModel:
    try:
        session_user = await session_auth.get_user(authorization)
    except httpx.HTTPError as e:
        logger.error(f"Auth service unavailable: {e}")
        raise HTTPException(status_code=503, detail="Authentication service unavailable")

    if session_user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    user = await db_client.get_user_by_provider_id(str(session_user["id"]))
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


async def get_owned_workflow(workflow_id: int, user: UserModel) -> WorkflowModel:
    """Load a workflow the user owns, or raise 404."""
    workflow = await db_client.get_workflow_for_user(workflow_id, user.id)
    if workflow is None:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return workflow
