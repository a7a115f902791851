"""Sentry SDK integration.

Captures unexpected exceptions without leaking credentials. This service
handles the App private key, App JWTs and installation tokens on every
request, so the scrubber also walks request headers (Authorization).

No-op when SENTRY_DSN is empty so local runs and CI never need the SDK
configured.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Any key containing one of these fragments has its value redacted
_SENSITIVE_KEYS = frozenset(
    {"key", "secret", "password", "token", "dsn", "jwt", "authorization"}
)

REDACTED = "[REDACTED]"


def _scrub_secrets(event: dict[str, Any], hint: Any) -> dict[str, Any]:
    """Sentry before_send hook: redact values for sensitive keys.

    Covers `extra`, `request.data` and `request.headers`.
    """
    _scrub_dict(event.get("extra", {}))
    request = event.get("request", {})
    for section in ("data", "headers"):
        value = request.get(section)
        if isinstance(value, dict):
            _scrub_dict(value)
    return event


def _scrub_dict(d: dict[str, Any]) -> None:
    """Recursively redact sensitive values in-place."""
    for key in list(d.keys()):
        value = d[key]
        if any(sensitive in str(key).lower() for sensitive in _SENSITIVE_KEYS):
            d[key] = REDACTED
        elif isinstance(value, dict):
            _scrub_dict(value)
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, dict):
                    _scrub_dict(item)


def init_sentry(dsn: str, environment: str = "development") -> None:
    """Initialise the Sentry SDK.

    Args:
        dsn: Sentry DSN string. Empty string disables Sentry entirely.
        environment: Sentry environment tag ("development" | "production").
    """
    if not dsn or not dsn.strip():
        logger.debug("Sentry DSN not configured, skipping initialisation")
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        integrations=[FastApiIntegration()],
        traces_sample_rate=0.1,
        send_default_pii=False,
        before_send=_scrub_secrets,
    )
    logger.info("Sentry initialised (environment=%s)", environment)
