"""ARQ worker configuration - setup logging before importing tasks

Run with: arq hookflow.tasks.worker.WorkerSettings
"""

from hookflow.logging_config import setup_logging

setup_logging()

from hookflow.constants import WEBHOOK_EXECUTION_TIMEOUT_SECONDS
from hookflow.tasks.arq import REDIS_SETTINGS
from hookflow.tasks.notifications import dispatch_execution_notifications
from hookflow.tasks.webhook_execution import execute_webhook


class WorkerSettings:
    functions = [
        execute_webhook,
        dispatch_execution_notifications,
    ]
    cron_jobs = []
    redis_settings = REDIS_SETTINGS
    max_jobs = 10
    # The execution job bounds itself; leave headroom for notification enqueueing
    job_timeout = int(WEBHOOK_EXECUTION_TIMEOUT_SECONDS) + 60
