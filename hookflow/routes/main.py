from fastapi import APIRouter
from loguru import logger

from hookflow.routes.log_webhook import router as log_webhook_router
from hookflow.routes.webhook_test import router as webhook_test_router
from hookflow.routes.webhook_trigger import router as webhook_trigger_router
from hookflow.routes.webhooks import router as webhooks_router

router = APIRouter(
    tags=["main"],
    responses={404: {"description": "Not found"}},
)

router.include_router(webhook_trigger_router)
router.include_router(webhook_test_router)
router.include_router(webhooks_router)
router.include_router(log_webhook_router)


@router.get("/health")
async def health():
    logger.debug("Health endpoint called")
    return {"message": "OK"}
