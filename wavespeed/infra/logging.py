"""
Structured logging for the WaveSpeed SDK.

SDK loggers write through the stdlib ``wavespeed`` logger, which carries a
NullHandler, so nothing is printed until the application configures
logging. ``configure_logging`` installs the structlog pipeline; level and
format default to ``WAVESPEED_LOG_LEVEL`` / ``WAVESPEED_LOG_FORMAT``.
"""
from __future__ import annotations

import logging
import sys
from typing import Any, Dict, Optional

import structlog

from wavespeed.infra.settings import get_settings
from wavespeed.version import VERSION

ROOT_LOGGER = "wavespeed"

SENSITIVE_KEYS = frozenset({
    "api_key",
    "authorization",
    "token",
    "secret",
    "password",
    "credential",
})

logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())


def _is_sensitive(key: str) -> bool:
    key = key.lower()
    return any(fragment in key for fragment in SENSITIVE_KEYS)


def sanitize_log_context(context: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``context`` with sensitive values replaced, recursively."""
    def clean(value: Any) -> Any:
        if isinstance(value, dict):
            return sanitize_log_context(value)
        if isinstance(value, (list, tuple)):
            return [clean(item) for item in value]
        return value

    return {
        key: "[REDACTED]" if _is_sensitive(key) else clean(value)
        for key, value in context.items()
    }


def redact_secrets(logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    return sanitize_log_context(event_dict)


def add_sdk_version(logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    event_dict["sdk"] = ROOT_LOGGER
    event_dict["sdk_version"] = VERSION
    return event_dict


def configure_logging(
    log_level: Optional[str] = None,
    json_format: Optional[bool] = None,
) -> None:
    """
    Install the structlog pipeline and a stdout handler.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
            (default: WAVESPEED_LOG_LEVEL)
        json_format: Render JSON lines instead of console output
            (default: WAVESPEED_LOG_FORMAT == "json")
    """
    settings = get_settings()
    if log_level is None:
        log_level = settings.LOG_LEVEL
    if json_format is None:
        json_format = settings.LOG_FORMAT == "json"

    renderer = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            add_sdk_version,
            redact_secrets,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )
    # httpx logs every request at INFO
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str):
    """Structlog logger backed by the stdlib logger ``name``."""
    return structlog.wrap_logger(logging.getLogger(name))


class LogContext:
    """
    Bind key/value pairs to every log line emitted inside the block.

    Usage:
        with LogContext(model="wavespeed-ai/flux-dev", task_attempt=1):
            logger.info("prediction_submitted")
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        structlog.contextvars.unbind_contextvars(*self.context.keys())
