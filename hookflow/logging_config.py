import os
import sys

import loguru

from hookflow.enums import Environment

ENVIRONMENT = os.getenv("ENVIRONMENT", Environment.LOCAL.value)

# Uvicorn workers and the arq worker can each write to their own file which
# is then shipped to the log aggregator
LOG_FILE_PATH = os.getenv("LOG_FILE_PATH", None)

# Track if logging has been initialized
_logging_initialized = False


def inject_request_id(record):
    """Make sure every record carries a request_id, even outside a request"""
    record["extra"].setdefault("request_id", "-")


def setup_logging():
    """Set up logging for the API and the worker"""
    global _logging_initialized

    # Return early if already initialized
    if _logging_initialized:
        return

    log_level = os.getenv("LOG_LEVEL", "DEBUG").upper()

    # Don't setup logging in test environment
    if ENVIRONMENT == Environment.TEST.value:
        return

    # Remove default loguru handler
    try:
        loguru.logger.remove(0)
    except ValueError:
        # Handler might already be removed
        pass

    # Configure the shared core so loggers imported before this call, and
    # the ones bound per request, all get the patcher
    loguru.logger.configure(patcher=inject_request_id)

    log_format = "{time:YYYY-MM-DD HH:mm:ss.SSS} | <level>{level}</level> | [request_id={extra[request_id]}] | {file.name}:{line} | {message}"

    if LOG_FILE_PATH:
        loguru.logger.add(
            LOG_FILE_PATH,
            level=log_level,
            serialize=True,  # Use JSON serialization for structured logs
            enqueue=True,  # Thread-safe writing
            backtrace=True,  # Include full traceback in exceptions
            diagnose=False,  # Don't include local variables in traceback for security
        )
    else:
        loguru.logger.add(
            sys.stdout,
            format=log_format,
            level=log_level,
            colorize=True,
        )

    _logging_initialized = True
