"""Set up logging before importing anything else"""

import sentry_sdk

from hookflow.constants import SENTRY_DSN
from hookflow.logging_config import ENVIRONMENT, setup_logging

setup_logging()


if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        send_default_pii=False,
        environment=ENVIRONMENT,
    )
    print(f"Sentry initialized in environment: {ENVIRONMENT}")


from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from hookflow.constants import API_PREFIX
from hookflow.routes.main import router as main_router
from hookflow.services.webhooks.rate_limiter import rate_limiter
from hookflow.tasks.arq import get_arq_redis


@asynccontextmanager
async def lifespan(app: FastAPI):
    # warmup arq pool
    await get_arq_redis()

    yield  # Run app

    logger.info("Shutting down, closing Redis connections")
    await rate_limiter.close()
    arq_redis = await get_arq_redis()
    await arq_redis.aclose()


app = FastAPI(
    title="Hookflow API",
    description="Webhook triggers and execution notifications for workflows",
    version="1.0.0",
    openapi_url=f"{API_PREFIX}/openapi.json",
    lifespan=lifespan,
)


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

api_router = APIRouter()

# include subrouters here
api_router.include_router(main_router)

# main router with api prefix
app.include_router(api_router, prefix=API_PREFIX)
