"""
WaveSpeed Python SDK.

Async client for the WaveSpeed inference platform: submit a model job,
wait for it by polling or in sync mode, and upload input files.

Usage:
    from wavespeed import Client

    async with Client() as client:  # reads WAVESPEED_API_KEY
        result = await client.run(
            "wavespeed-ai/z-image/turbo",
            {"prompt": "A beautiful sunset"},
        )
        print(result.outputs)
"""
from wavespeed.version import VERSION
from wavespeed.inference import (
    Client,
    create_client,
    RunResult,
    PredictionStatus,
    ErrorKind,
    WaveSpeedError,
    ConfigurationError,
    ConnectionExhaustedError,
    HttpStatusError,
    MalformedResponseError,
    PredictionFailedError,
    PredictionTimeoutError,
    PredictionCancelledError,
    UploadError,
    is_retryable,
)
from wavespeed.infra.logging import configure_logging
from wavespeed.infra.settings import Settings, get_settings

__version__ = VERSION

__all__ = [
    "__version__",
    "Client",
    "create_client",
    "RunResult",
    "PredictionStatus",
    "Settings",
    "get_settings",
    "configure_logging",
    "ErrorKind",
    "WaveSpeedError",
    "ConfigurationError",
    "ConnectionExhaustedError",
    "HttpStatusError",
    "MalformedResponseError",
    "PredictionFailedError",
    "PredictionTimeoutError",
    "PredictionCancelledError",
    "UploadError",
    "is_retryable",
]
