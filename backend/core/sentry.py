"""
Sentry integration for the AssetDrop backend.

Error tracking is enabled only when a DSN is configured and the service runs in
production (or SENTRY_ENABLED=true forces it on).
"""

import os
import logging
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.httpx import HttpxIntegration

logger = logging.getLogger(__name__)

IGNORED_TRANSACTIONS = ["/health", "/api/health-check"]


def init_sentry(
    dsn: Optional[str] = None,
    environment: Optional[str] = None,
    release: Optional[str] = None,
) -> bool:
    """
    Initialize Sentry error tracking.

    Args:
        dsn: Sentry DSN. Falls back to the SENTRY_DSN env var.
        environment: Environment name (development, staging, production).
        release: Release version string.

    Returns:
        True when the SDK was initialized.
    """
    sentry_dsn = dsn or os.getenv("SENTRY_DSN")

    if not sentry_dsn:
        logger.info("Sentry DSN not configured. Error tracking disabled.")
        return False

    env = environment or os.getenv("ENVIRONMENT", "development")
    rel = release or os.getenv("SENTRY_RELEASE", "development")

    enabled = env == "production" or os.getenv("SENTRY_ENABLED", "false").lower() == "true"
    if not enabled:
        logger.info(f"Sentry disabled for environment: {env}")
        return False

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=env,
        release=rel,
        traces_sample_rate=0.1 if env == "production" else 1.0,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            AsyncioIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            HttpxIntegration(),
        ],
        # Uploaded file names and client emails stay out of events
        send_default_pii=False,
        attach_stacktrace=True,
        max_breadcrumbs=50,
        before_send=before_send,
        before_send_transaction=before_send_transaction,
    )

    logger.info(f"Sentry initialized for environment: {env}")
    return True


def before_send(event, hint):
    """Scrub credentials and link passwords from outgoing events."""
    request = event.get("request")
    if request:
        headers = request.get("headers", {})
        for header in ("Authorization", "Cookie", "X-Link-Password"):
            if header in headers:
                headers[header] = "[Filtered]"
    return event


def before_send_transaction(event, hint):
    transaction_name = event.get("transaction", "")
    for ignored in IGNORED_TRANSACTIONS:
        if transaction_name.endswith(ignored):
            return None
    return event


def capture_exception(exception: Exception, **context) -> Optional[str]:
    """Capture an exception to Sentry with extra context, returning the event id."""
    for key, value in context.items():
        sentry_sdk.set_extra(key, value)
    return sentry_sdk.capture_exception(exception)
