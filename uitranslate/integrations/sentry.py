# =============================================================================
# Sentry Error Tracking Integration
# =============================================================================
#
# Setup:
#   1. Create a Python project at sentry.io
#   2. Copy the DSN to .env: UITRANSLATE_SENTRY_DSN=https://...@sentry.io/...
#
# Usage:
#   init_sentry(settings) runs at app startup (in uitranslate/api/app.py).
#   capture_exception() reports background job failures; it only logs when
#   Sentry is not initialised.
#
# =============================================================================

from __future__ import annotations

import logging

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from uitranslate.config import Settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the app and CLI."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def init_sentry(settings: Settings) -> bool:
    """
    Initialize Sentry error tracking.

    Returns True if initialized, False if skipped.
    """
    if not settings.sentry_dsn:
        logger.info("Sentry DSN not set - error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(transaction_style="endpoint"),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.ERROR,
            ),
        ],
        send_default_pii=False,
        before_send=_filter_events,
        before_send_transaction=_filter_transactions,
    )

    logger.info("Sentry initialized for %s", settings.environment)
    return True


def _filter_events(event: dict, hint: dict) -> dict | None:
    """Filter out expected HTTP errors and scrub cookies."""
    if "exc_info" in hint:
        _, exc_value, _ = hint["exc_info"]

        from fastapi import HTTPException
        if isinstance(exc_value, HTTPException) and exc_value.status_code in (400, 404, 422):
            return None

    headers = event.get("request", {}).get("headers")
    if headers:
        for key in list(headers.keys()):
            if key.lower() in ("authorization", "cookie"):
                headers[key] = "[Filtered]"

    return event


def _filter_transactions(event: dict, hint: dict) -> dict | None:
    """Drop health checks."""
    if event.get("transaction", "") in ("/health", "/healthz", "/ready"):
        return None
    return event


def capture_exception(error: Exception, **context) -> str | None:
    """
    Capture an exception to Sentry.

    Returns the event ID if captured, None otherwise.
    """
    if not sentry_sdk.is_initialized():
        logger.error("Error (Sentry disabled): %s", context, exc_info=error)
        return None

    with sentry_sdk.new_scope() as scope:
        for key, value in context.items():
            scope.set_extra(key, value)
        return sentry_sdk.capture_exception(error)
