"""
Lightweight telemetry wrapper for terrafit.

This module provides optional integration with Sentry for crash and error
reporting from the command line tool. It is safe when Sentry is not installed
or when no DSN is configured: every function then does nothing.
"""
from __future__ import annotations

import os
import sys
from typing import Optional

_ENABLED: bool = False
_EXCEPTHOOK_INSTALLED: bool = False


def _before_send(event, hint):
    """
    Scrub potentially sensitive fields before sending to Sentry.

    Removes user/request payloads and the local paths of processed datasets.
    """
    event.pop("user", None)
    event.pop("request", None)
    extra = event.get("extra")
    if isinstance(extra, dict):
        extra.pop("dataset", None)
    return event


def init_telemetry(dsn: Optional[str], release: str, environment: str = "cli") -> None:
    """
    Initialize Sentry-based telemetry if a DSN is provided.

    Parameters
    ----------
    dsn : str | None
        Sentry DSN. When ``None`` or empty the ``TERRAFIT_SENTRY_DSN``
        environment variable is used; without either, telemetry stays off.
    release : str
        Library release string (e.g., terrafit.__version__).
    environment : str
        Environment label (e.g., "cli", "dev").
    """
    global _ENABLED, _EXCEPTHOOK_INSTALLED

    if _ENABLED:
        return

    # Allow environment variable override to hard-disable telemetry
    if os.environ.get("TERRAFIT_TELEMETRY_DISABLED", "").strip() == "1":
        return

    if not dsn:
        dsn = os.environ.get("TERRAFIT_SENTRY_DSN", "").strip() or None
    if not dsn:
        return

    try:
        import sentry_sdk  # type: ignore[import]
        from sentry_sdk.integrations.logging import LoggingIntegration  # type: ignore[import]
    except ImportError:
        # Sentry SDK not installed
        return

    logging_integration = LoggingIntegration(
        level=None,        # Do not auto-capture all logs
        event_level=None,  # Only explicit captures / unhandled exceptions
    )

    sentry_sdk.init(
        dsn=dsn,
        release=release,
        environment=environment,
        integrations=[logging_integration],
        before_send=_before_send,
        attach_stacktrace=True,
        send_default_pii=False,
    )
    sentry_sdk.set_tag("application", "terrafit")
    sentry_sdk.set_tag("component", environment)
    _ENABLED = True

    # Install a simple global excepthook as a last-resort safety net.
    if not _EXCEPTHOOK_INSTALLED:
        _install_global_excepthook()
        _EXCEPTHOOK_INSTALLED = True


def _install_global_excepthook() -> None:
    """Install a global sys.excepthook that reports to Sentry when enabled."""
    original_hook = sys.excepthook

    def _hook(exc_type, exc_value, exc_traceback):
        # Avoid reporting KeyboardInterrupt
        if exc_type is not KeyboardInterrupt:
            capture_exception(exc_value)
        if original_hook:
            original_hook(exc_type, exc_value, exc_traceback)

    sys.excepthook = _hook


def capture_exception(exc: BaseException) -> None:
    """
    Manually capture an exception and send to telemetry backend, if enabled.
    """
    if not _ENABLED:
        return
    import sentry_sdk  # type: ignore[import]

    sentry_sdk.capture_exception(exc)
    # Flush to ensure the event is sent immediately
    sentry_sdk.flush(timeout=2.0)


def capture_message(message: str, level: str = "info", **tags) -> None:
    """
    Manually capture a message if telemetry is enabled.

    Parameters
    ----------
    message : str
        Message text to record.
    level : str
        Sentry level string, e.g., "info", "warning", "error".
    **tags :
        Optional key/value tags to attach to the event.
    """
    if not _ENABLED:
        return
    import sentry_sdk  # type: ignore[import]

    sentry_sdk.capture_message(message, level=level, tags=tags)
    sentry_sdk.flush(timeout=2.0)


def telemetry_enabled() -> bool:
    """Return True if telemetry/Sentry has been initialized for this process."""
    return _ENABLED
