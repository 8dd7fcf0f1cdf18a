"""
Infrastructure layer for configuration and observability.

Provides:
- Environment-backed settings (pydantic-settings)
- Structured logging with sensitive data redaction
"""
from wavespeed.infra.logging import (
    configure_logging,
    get_logger,
    sanitize_log_context,
    LogContext,
    SENSITIVE_KEYS,
)
from wavespeed.infra.settings import (
    Settings,
    get_settings,
    clear_settings_cache,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "sanitize_log_context",
    "LogContext",
    "SENSITIVE_KEYS",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
