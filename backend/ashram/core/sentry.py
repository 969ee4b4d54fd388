from __future__ import annotations

import logging

from ashram.core.config import settings


def init_sentry() -> bool:
    """Start error reporting when a DSN is configured; returns whether it was enabled."""
    if not settings.sentry_dsn:
        return False

    import sentry_sdk
    from sentry_sdk.integrations import Integration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    integrations: list[Integration] = [FastApiIntegration()]
    if settings.sentry_enable_logs:
        level_name = str(settings.sentry_log_level or "error").strip().upper()
        event_level = getattr(logging, level_name, logging.ERROR)
        integrations.append(LoggingIntegration(level=event_level, event_level=event_level))

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=settings.app_version,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        integrations=integrations,
        attach_stacktrace=True,
        # Receipts carry donor names; keep them out of events.
        send_default_pii=False,
    )
    return True
