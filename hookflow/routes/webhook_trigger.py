from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger

from hookflow.services.webhooks.processor import (
    check_rate_limits,
    check_usage_limits,
    find_webhook_and_workflow,
    handle_provider_challenges,
    parse_webhook_body,
    queue_webhook_execution,
    verify_provider_auth,
)
from hookflow.utils.request_id import generate_request_id

router = APIRouter(prefix="/webhooks/trigger", tags=["webhooks"])


@router.get("/{path:path}")
async def check_webhook_exists(path: str, request: Request):
    """Provider handshakes sent as GET, otherwise an existence check."""
    request_id = generate_request_id()
    log = logger.bind(request_id=request_id)

    try:
        challenge_response = await handle_provider_challenges({}, request, log, path)
        if challenge_response is not None:
            return challenge_response

        target = await find_webhook_and_workflow(path, log)
        if target is None:
            return PlainTextResponse("Webhook not found", status_code=404)
        return PlainTextResponse("OK")
    except Exception as e:
        log.exception(f"Error handling webhook existence check for path {path}: {e}")
        return JSONResponse({"error": "Internal server error"}, status_code=500)


@router.post("/{path:path}")
async def trigger_webhook(path: str, request: Request):
    request_id = generate_request_id()
    log = logger.bind(request_id=request_id)
    log.debug(f"Webhook request received for path {path}")

    try:
        parsed, error_response = await parse_webhook_body(request, log)
        if error_response is not None:
            return error_response

        challenge_response = await handle_provider_challenges(
            parsed.body, request, log, path
        )
        if challenge_response is not None:
            return challenge_response

        target = await find_webhook_and_workflow(path, log)
        if target is None:
            log.warning(f"Webhook not found for path {path}")
            return JSONResponse({"error": "Webhook not found"}, status_code=404)

        auth_error = await verify_provider_auth(
            target.webhook, request, parsed.raw_body, log
        )
        if auth_error is not None:
            return auth_error

        rate_limit_error = await check_rate_limits(target.workflow, target.webhook, log)
        if rate_limit_error is not None:
            return rate_limit_error

        usage_error = await check_usage_limits(target.workflow, target.webhook, log)
        if usage_error is not None:
            return usage_error

        return await queue_webhook_execution(
            target,
            parsed.body,
            request,
            request_id=request_id,
            path=path,
            log=log,
        )
    except Exception as e:
        log.exception(f"Error processing webhook for path {path}: {e}")
        return JSONResponse({"error": "Internal server error"}, status_code=500)
