"""
Prediction client for the WaveSpeed inference API.

Provides:
- Client: Submit / poll / retry orchestration (run, upload)
- ApiTransport / execute_with_retry: HTTP calls with connection-level retries
- Job / RetryPolicy: Per-attempt lifecycle state and retry configuration

Usage:
    async with create_client(api_key="...") as client:
        result = await client.run("wavespeed-ai/flux-dev", {"prompt": "A cat"})
"""
from wavespeed.inference.client import Client, create_client
from wavespeed.inference.job import Job, RetryPolicy
from wavespeed.inference.schemas import (
    ApiEnvelope,
    Prediction,
    PredictionStatus,
    RunResult,
    UploadEnvelope,
)
from wavespeed.inference.transport import ApiTransport, execute_with_retry
from wavespeed.inference.exceptions import (
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
    JobStateError,
    is_retryable,
)

__all__ = [
    # Client
    "Client",
    "create_client",
    "ApiTransport",
    "execute_with_retry",
    # State
    "Job",
    "RetryPolicy",
    # Schemas
    "ApiEnvelope",
    "Prediction",
    "PredictionStatus",
    "RunResult",
    "UploadEnvelope",
    # Exceptions
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
    "JobStateError",
    "is_retryable",
]
