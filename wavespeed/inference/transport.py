"""
HTTP transport for the WaveSpeed API.

Provides:
- execute_with_retry: Connection-level retry with linear backoff
- ApiTransport: One-shot HTTP helpers (submit, get_result, upload)

RETRY SEMANTICS:
- Only transport failures (connect, DNS, TLS, read/write timeouts) are
  retried here, up to max_connection_retries + 1 attempts in total
- Attempt k (0-indexed) is followed by a wait of retry_interval * (k + 1)
- Non-200 responses are raised as HttpStatusError and never retried at
  this layer; task-level classification happens in the client
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx
from pydantic import ValidationError

from wavespeed.infra.logging import get_logger
from wavespeed.inference.exceptions import (
    ConfigurationError,
    ConnectionExhaustedError,
    HttpStatusError,
    MalformedResponseError,
)
from wavespeed.inference.schemas import ApiEnvelope, UploadEnvelope

logger = get_logger(__name__)

T = TypeVar("T")
SleepFunc = Callable[[float], Awaitable[None]]

API_PREFIX = "/api/v3"
MISSING_API_KEY_MESSAGE = (
    "API key is required. Set WAVESPEED_API_KEY environment variable "
    "or pass api_key to Client()."
)


# =============================================================================
# Connection Retrier
# =============================================================================


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_connection_retries: int,
    retry_interval: float,
    description: str = "request",
    sleep: SleepFunc = asyncio.sleep,
) -> T:
    """
    Run one logical HTTP operation, retrying transport failures.

    Args:
        operation: Zero-argument coroutine function doing one round trip
        max_connection_retries: Retries after the first attempt
        retry_interval: Backoff unit in seconds
        description: Operation label for logs and the final error
        sleep: Awaitable delay used between attempts

    Returns:
        Whatever the operation returns

    Raises:
        ConnectionExhaustedError: If every attempt failed at transport level
        Exception: Any non-transport error from the operation, unchanged
    """
    total_attempts = max_connection_retries + 1

    for attempt in range(total_attempts):
        try:
            return await operation()

        except httpx.TransportError as e:
            logger.warning(
                "connection_error",
                extra={
                    "operation": description,
                    "attempt": attempt + 1,
                    "max_attempts": total_attempts,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )

            if attempt >= max_connection_retries:
                raise ConnectionExhaustedError(
                    f"Failed to {description} after {total_attempts} attempts",
                    attempts=total_attempts,
                    original_error=e,
                ) from e

            delay = retry_interval * (attempt + 1)
            logger.info(
                "connection_retry",
                extra={
                    "operation": description,
                    "attempt": attempt + 1,
                    "backoff_seconds": delay,
                }
            )
            await sleep(delay)

    # range() always runs at least once and every path above returns or raises
    raise AssertionError("unreachable")


# =============================================================================
# HTTP Helpers
# =============================================================================


class ApiTransport:
    """
    Thin async HTTP layer over the prediction API.

    Each method performs exactly one round trip. The underlying
    ``httpx.AsyncClient`` is created lazily and shared by concurrent calls.

    Usage:
        transport = ApiTransport(api_key="...", base_url="https://api.wavespeed.ai")
        envelope = await transport.submit("wavespeed-ai/flux-dev", {"prompt": "A cat"})
        await transport.aclose()
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        connection_timeout: float = 10.0,
        timeout: float = 36000.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize API transport.

        Args:
            api_key: Bearer token (validated lazily, per request)
            base_url: API base URL without trailing slash
            connection_timeout: Connect timeout in seconds
            timeout: Default total timeout per request in seconds
            transport: Optional httpx transport (e.g. httpx.MockTransport)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.connection_timeout = connection_timeout
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout(None),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    def require_api_key(self) -> str:
        """
        Return the API key or fail before any network call.

        Raises:
            ConfigurationError: If no API key is configured
        """
        if not self.api_key:
            raise ConfigurationError(MISSING_API_KEY_MESSAGE)
        return self.api_key

    def _headers(self, json_body: bool = True) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.require_api_key()}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _timeout(self, timeout: Optional[float]) -> httpx.Timeout:
        total = timeout if timeout is not None else self.timeout
        return httpx.Timeout(total, connect=min(self.connection_timeout, total))

    def _url(self, path: str) -> str:
        return f"{self.base_url}{API_PREFIX}/{path.lstrip('/')}"

    @staticmethod
    def _decode(response: httpx.Response, what: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Invalid JSON in {what} response",
                details={"body": response.text[:500]},
            ) from e

    @staticmethod
    def _envelope(payload: Any, what: str) -> ApiEnvelope:
        try:
            envelope = ApiEnvelope.model_validate(payload)
        except ValidationError as e:
            raise MalformedResponseError(
                f"Unexpected {what} response shape: {e}",
            ) from e
        if envelope.code is not None and envelope.code != 200:
            raise HttpStatusError(
                f"Failed to {what}",
                status_code=envelope.code,
                body=envelope.message or "",
            )
        return envelope

    async def submit(
        self,
        model: str,
        body: Dict[str, Any],
        timeout: Optional[float] = None,
    ) -> ApiEnvelope:
        """
        Submit a prediction request.

        Args:
            model: Model identifier (e.g. "wavespeed-ai/flux-dev")
            body: JSON request body
            timeout: Total request timeout in seconds

        Returns:
            Parsed response envelope

        Raises:
            ConfigurationError: If no API key is configured
            HttpStatusError: On any non-200 status
            MalformedResponseError: On undecodable responses
            httpx.TransportError: On transport failure (retried by caller)
        """
        headers = self._headers()
        client = await self._get_client()
        response = await client.post(
            self._url(model),
            json=body,
            headers=headers,
            timeout=self._timeout(timeout),
        )
        if response.status_code != 200:
            raise HttpStatusError(
                "Failed to submit prediction",
                status_code=response.status_code,
                body=response.text,
            )
        return self._envelope(self._decode(response, "submit"), "submit prediction")

    async def get_result(
        self,
        prediction_id: str,
        timeout: Optional[float] = None,
    ) -> ApiEnvelope:
        """
        Fetch the current state of a prediction.

        Args:
            prediction_id: Service-assigned prediction id
            timeout: Total request timeout in seconds

        Returns:
            Parsed response envelope
        """
        headers = self._headers(json_body=False)
        client = await self._get_client()
        response = await client.get(
            self._url(f"predictions/{prediction_id}/result"),
            headers=headers,
            timeout=self._timeout(timeout),
        )
        if response.status_code != 200:
            raise HttpStatusError(
                f"Failed to get result for task {prediction_id}",
                status_code=response.status_code,
                body=response.text,
            )
        return self._envelope(
            self._decode(response, "result"),
            f"get result for task {prediction_id}",
        )

    async def upload(
        self,
        path: Path,
        timeout: Optional[float] = None,
    ) -> UploadEnvelope:
        """
        Upload a file as multipart form field ``file``.

        The file is read on every call so retried attempts send the full body.

        Args:
            path: Local file path
            timeout: Total request timeout in seconds

        Returns:
            Parsed upload envelope (``code`` is not checked here)
        """
        headers = self._headers(json_body=False)
        content = path.read_bytes()
        client = await self._get_client()
        response = await client.post(
            self._url("media/upload/binary"),
            files={"file": (path.name, content, "application/octet-stream")},
            headers=headers,
            timeout=self._timeout(timeout),
        )
        if response.status_code != 200:
            raise HttpStatusError(
                "Failed to upload file",
                status_code=response.status_code,
                body=response.text,
            )
        payload = self._decode(response, "upload")
        try:
            return UploadEnvelope.model_validate(payload)
        except ValidationError as e:
            raise MalformedResponseError(f"Unexpected upload response shape: {e}") from e
