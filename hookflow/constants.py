import os
from pathlib import Path

# Absolute path to the hookflow package directory. Alembic and the test
# fixtures resolve their config files relative to it.
APP_ROOT_DIR: Path = Path(__file__).resolve().parent

DATABASE_URL = os.environ["DATABASE_URL"]
REDIS_URL = os.environ["REDIS_URL"]

APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:8000")

# External collaborators
AUTH_API_URL = os.getenv("AUTH_API_URL", "http://localhost:3000")
AUTH_API_SECRET = os.getenv("AUTH_API_SECRET", "")
EXECUTOR_API_URL = os.getenv("EXECUTOR_API_URL", "http://localhost:3000")
INTERNAL_API_SECRET = os.getenv("INTERNAL_API_SECRET", "")

# Webhook execution
WEBHOOK_EXECUTION_TIMEOUT_SECONDS = float(
    os.getenv("WEBHOOK_EXECUTION_TIMEOUT_SECONDS", "300")
)

# Test webhook URLs
TEST_WEBHOOK_TOKEN_SECRET = os.getenv("TEST_WEBHOOK_TOKEN_SECRET") or INTERNAL_API_SECRET
TEST_WEBHOOK_TOKEN_TTL_SECONDS = int(os.getenv("TEST_WEBHOOK_TOKEN_TTL_SECONDS", "86400"))

# Rate limiting (fixed window, per user and trigger type)
RATE_LIMIT_WINDOW_MS = int(os.getenv("RATE_LIMIT_WINDOW_MS", "60000"))
MANUAL_EXECUTION_LIMIT = int(os.getenv("MANUAL_EXECUTION_LIMIT", "999999"))
RATE_LIMIT_FREE_SYNC = int(os.getenv("RATE_LIMIT_FREE_SYNC", "10"))
RATE_LIMIT_FREE_ASYNC = int(os.getenv("RATE_LIMIT_FREE_ASYNC", "50"))
RATE_LIMIT_PRO_SYNC = int(os.getenv("RATE_LIMIT_PRO_SYNC", "25"))
RATE_LIMIT_PRO_ASYNC = int(os.getenv("RATE_LIMIT_PRO_ASYNC", "200"))
RATE_LIMIT_TEAM_SYNC = int(os.getenv("RATE_LIMIT_TEAM_SYNC", "75"))
RATE_LIMIT_TEAM_ASYNC = int(os.getenv("RATE_LIMIT_TEAM_ASYNC", "500"))
RATE_LIMIT_ENTERPRISE_SYNC = int(os.getenv("RATE_LIMIT_ENTERPRISE_SYNC", "150"))
RATE_LIMIT_ENTERPRISE_ASYNC = int(os.getenv("RATE_LIMIT_ENTERPRISE_ASYNC", "1000"))
RATE_LIMIT_TEST_MULTIPLIER = int(os.getenv("RATE_LIMIT_TEST_MULTIPLIER", "2"))

# Billing (cost ceilings are USD per seat per billing period)
BILLING_ENABLED = os.getenv("BILLING_ENABLED", "false").lower() == "true"
FREE_TIER_COST_LIMIT = float(os.getenv("FREE_TIER_COST_LIMIT", "10"))
PRO_TIER_COST_LIMIT = float(os.getenv("PRO_TIER_COST_LIMIT", "20"))
TEAM_TIER_COST_LIMIT = float(os.getenv("TEAM_TIER_COST_LIMIT", "40"))
ENTERPRISE_TIER_COST_LIMIT = float(os.getenv("ENTERPRISE_TIER_COST_LIMIT", "200"))

# Outbound notification delivery
NOTIFICATION_DELIVERY_TIMEOUT_SECONDS = float(
    os.getenv("NOTIFICATION_DELIVERY_TIMEOUT_SECONDS", "10")
)
NOTIFICATION_DELIVERY_MAX_ATTEMPTS = int(
    os.getenv("NOTIFICATION_DELIVERY_MAX_ATTEMPTS", "3")
)
NOTIFICATION_DELIVERY_BACKOFF_SECONDS = float(
    os.getenv("NOTIFICATION_DELIVERY_BACKOFF_SECONDS", "0.5")
)

# Sentry configuration
SENTRY_DSN = os.getenv("SENTRY_DSN")

API_PREFIX = "/api/v1"
