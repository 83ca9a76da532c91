"""Logfire cloud observability initialization and instrumentation."""

import logging

import logfire

from stockracer import __version__
from stockracer.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings, app=None) -> bool:
    """
    Initialize Logfire tracking when a token is configured.

    Call once at startup, before the arena is built. Instruments:
    - HTTPX clients (market-data requests)
    - The FastAPI app, when one is passed
    - Python logging (bridged to Logfire)

    Returns:
        True if Logfire was configured. Failures only warn.
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return False

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="stockracer",
            service_version=__version__,
        )

        logfire.instrument_httpx()

        if app is not None:
            logfire.instrument_fastapi(app)

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("Logfire cloud tracking initialized")
        return True

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        return False
