"""Sentry error tracking integration.

Initializes Sentry SDK if SENTRY_DSN env variable is set.
Outbound Gemini URLs carry the API key as ``?key=``. The httpx integration
copies it into breadcrumb and span data (``url``, ``http.query``), so events,
transactions and breadcrumbs are scrubbed before they leave the process.
"""

import logging

from app.core.config import settings
from app.core.logging import redact_api_keys

logger = logging.getLogger(__name__)


def scrub_api_keys(value):
    """Replace ``key=<secret>`` query values in strings, dicts and lists."""
    if isinstance(value, str):
        return redact_api_keys(value)
    if isinstance(value, dict):
        return {k: scrub_api_keys(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [scrub_api_keys(v) for v in value]
    return value


def _before_send(event, hint):
    return scrub_api_keys(event)


def _before_breadcrumb(crumb, hint):
    return scrub_api_keys(crumb)


def init_sentry() -> None:
    """Initialize Sentry if SENTRY_DSN is configured."""
    if not settings.sentry_dsn:
        logger.debug("Sentry DSN not configured, skipping")
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        traces_sample_rate=0.1 if settings.app_env == "production" else 1.0,
        send_default_pii=False,
        before_send=_before_send,
        before_send_transaction=_before_send,
        before_breadcrumb=_before_breadcrumb,
        integrations=[FastApiIntegration(transaction_style="endpoint")],
    )
    logger.info("Sentry initialized (env=%s)", settings.app_env)
