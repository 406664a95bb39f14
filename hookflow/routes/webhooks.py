from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from hookflow.db import db_client
from hookflow.db.models import UserModel
from hookflow.db.webhook_client import WebhookPathConflictError
from hookflow.schemas.webhook import CreateWebhookRequest, WebhookResponse
from hookflow.services.auth.depends import get_owned_workflow, get_user
from hookflow.services.webhooks.providers.registry import is_known_provider

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("", response_model=WebhookResponse, status_code=201)
async def create_webhook(
    request: CreateWebhookRequest,
    user: UserModel = Depends(get_user),
):
    """Register a webhook trigger path for one of the user's workflows."""
    await get_owned_workflow(request.workflow_id, user)

    if not is_known_provider(request.provider):
        raise HTTPException(status_code=400, detail=f"Unknown provider: {request.provider}")

    path = request.path.strip().strip("/")
    if not path:
        raise HTTPException(status_code=400, detail="Webhook path is required")

    try:
        webhook = await db_client.create_webhook(
            workflow_id=request.workflow_id,
            path=path,
            provider=request.provider,
            provider_config=request.provider_config,
            block_id=request.block_id,
        )
    except WebhookPathConflictError:
        raise HTTPException(
            status_code=409, detail="A webhook with this path already exists"
        )

    return WebhookResponse.from_model(webhook)


@router.get("", response_model=List[WebhookResponse])
async def list_webhooks(
    workflow_id: int = Query(alias="workflowId"),
    user: UserModel = Depends(get_user),
):
    await get_owned_workflow(workflow_id, user)
    webhooks = await db_client.get_webhooks_for_workflow(workflow_id)
    return [WebhookResponse.from_model(webhook) for webhook in webhooks]


@router.delete("/{webhook_id}")
async def delete_webhook(
    webhook_id: str,
    user: UserModel = Depends(get_user),
):
    row = await db_client.get_webhook_with_workflow_by_id(webhook_id)
    if row is None or row[1].user_id != user.id:
        raise HTTPException(status_code=404, detail="Webhook not found")

    deactivated = await db_client.deactivate_webhook(webhook_id, row[1].id)
    if not deactivated:
        raise HTTPException(status_code=404, detail="Webhook not found")

    logger.info(f"User {user.id} removed webhook {webhook_id}")
    return {"message": "Webhook deleted successfully"}
