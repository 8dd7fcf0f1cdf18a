"""
WaveSpeed prediction client.

Provides:
- Client: Submit / poll / retry orchestration for one prediction per run()
- create_client: Factory for the application's composition root

Architecture:
- Every HTTP call goes through execute_with_retry (connection-level retries)
- run() wraps the whole submit + poll attempt in a task-level retry loop;
  a retried task is a brand-new submission with a new prediction id
- Retry decisions use is_retryable() on typed errors, never message text

TIMEOUT SEMANTICS:
- ``timeout`` is a per-attempt budget measured from the start of that
  attempt; a task retry starts with a fresh budget
- The budget is checked before every result fetch, never mid-request

Usage:
    async with Client(api_key="...") as client:
        result = await client.run(
            "wavespeed-ai/z-image/turbo",
            {"prompt": "A cat"},
        )
        print(result.outputs)
"""
from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Optional, Union

import httpx

from wavespeed.infra.logging import LogContext, get_logger
from wavespeed.infra.settings import Settings, get_settings
from wavespeed.inference.exceptions import (
    ConnectionExhaustedError,
    HttpStatusError,
    MalformedResponseError,
    PredictionCancelledError,
    PredictionFailedError,
    PredictionTimeoutError,
    UploadError,
    is_retryable,
)
from wavespeed.inference.job import Job, RetryPolicy
from wavespeed.inference.schemas import (
    ApiEnvelope,
    Prediction,
    PredictionInput,
    PredictionStatus,
    RunResult,
)
from wavespeed.inference.transport import ApiTransport, SleepFunc, execute_with_retry

logger = get_logger(__name__)


class Client:
    """
    Async client for the WaveSpeed prediction API.

    Every option falls back to ``Settings`` (and through it to the
    ``WAVESPEED_*`` environment) when not given. Instances hold no
    per-job state, so concurrent ``run`` calls are independent and only
    share the connection pool.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        connection_timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        max_connection_retries: Optional[int] = None,
        retry_interval: Optional[float] = None,
        poll_interval: Optional[float] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: WaveSpeed API key (default: WAVESPEED_API_KEY)
            base_url: API base URL (default: WAVESPEED_BASE_URL)
            connection_timeout: Connect timeout in seconds
            max_retries: Task-level retries for run()
            max_connection_retries: Retries per HTTP request on transport errors
            retry_interval: Base backoff interval in seconds
            poll_interval: Interval between status checks in seconds
            settings: Settings instance (default: get_settings())
            transport: Optional httpx transport, e.g. httpx.MockTransport
            sleep: Awaitable delay used for backoff and polling
        """
        settings = settings or get_settings()

        def pick(value, default):
            return default if value is None else value

        self.base_url = pick(base_url, settings.BASE_URL).rstrip("/")
        self.policy = RetryPolicy(
            max_task_retries=pick(max_retries, settings.MAX_RETRIES),
            max_connection_retries=pick(max_connection_retries, settings.MAX_CONNECTION_RETRIES),
            retry_interval=pick(retry_interval, settings.RETRY_INTERVAL),
            poll_interval=pick(poll_interval, settings.POLL_INTERVAL),
        )
        self._api = ApiTransport(
            api_key=pick(api_key, settings.get_api_key()),
            base_url=self.base_url,
            connection_timeout=pick(connection_timeout, settings.CONNECTION_TIMEOUT),
            timeout=settings.TIMEOUT,
            transport=transport,
        )
        self._sleep: SleepFunc = sleep or asyncio.sleep

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close HTTP client and release the connection pool."""
        await self._api.aclose()

    # =========================================================================
    # Waiting and cancellation
    # =========================================================================

    @staticmethod
    def _check_cancelled(
        cancel_event: Optional[asyncio.Event],
        prediction_id: Optional[str] = None,
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise PredictionCancelledError(prediction_id=prediction_id)

    async def _wait(
        self,
        delay: float,
        cancel_event: Optional[asyncio.Event],
        prediction_id: Optional[str] = None,
    ) -> None:
        """Sleep for ``delay`` seconds, waking early if cancellation is signalled."""
        self._check_cancelled(cancel_event, prediction_id)
        if cancel_event is None:
            await self._sleep(delay)
            return

        sleeper = asyncio.ensure_future(self._sleep(delay))
        watcher = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({sleeper, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, watcher):
                if not task.done():
                    task.cancel()

        if cancel_event.is_set():
            raise PredictionCancelledError(prediction_id=prediction_id)
        sleeper.result()

    def _retrier_sleep(
        self,
        cancel_event: Optional[asyncio.Event],
        prediction_id: Optional[str] = None,
    ) -> SleepFunc:
        async def sleep(delay: float) -> None:
            await self._wait(delay, cancel_event, prediction_id)
        return sleep

    # =========================================================================
    # Single attempt
    # =========================================================================

    async def _submit(
        self,
        job: Job,
        sync_mode: bool,
        policy: RetryPolicy,
        cancel_event: Optional[asyncio.Event],
    ) -> ApiEnvelope:
        body = job.request_body(sync_mode)
        self._check_cancelled(cancel_event)
        return await execute_with_retry(
            lambda: self._api.submit(job.model, body, timeout=policy.timeout),
            max_connection_retries=policy.max_connection_retries,
            retry_interval=policy.retry_interval,
            description="submit prediction",
            sleep=self._retrier_sleep(cancel_event),
        )

    async def _get_result(
        self,
        job: Job,
        policy: RetryPolicy,
        cancel_event: Optional[asyncio.Event],
    ) -> ApiEnvelope:
        self._check_cancelled(cancel_event, job.id)
        return await execute_with_retry(
            lambda: self._api.get_result(job.id, timeout=policy.timeout),
            max_connection_retries=policy.max_connection_retries,
            retry_interval=policy.retry_interval,
            description=f"get result for task {job.id}",
            sleep=self._retrier_sleep(cancel_event, job.id),
        )

    @staticmethod
    def _data(envelope: ApiEnvelope) -> Prediction:
        if envelope.data is None:
            raise MalformedResponseError(
                f"No data in response: {envelope.model_dump(exclude_none=True)}"
            )
        return envelope.data

    def _finish(self, job: Job) -> RunResult:
        if job.status == PredictionStatus.FAILED:
            logger.warning(
                "prediction_failed",
                extra={"prediction_id": job.id, "error": job.error}
            )
            raise PredictionFailedError(job.id, job.error)
        logger.info(
            "prediction_completed",
            extra={"prediction_id": job.id, "output_count": len(job.outputs)}
        )
        return RunResult(id=job.id, model=job.model, outputs=job.outputs)

    async def _run_once(
        self,
        job: Job,
        sync_mode: bool,
        policy: RetryPolicy,
        cancel_event: Optional[asyncio.Event],
    ) -> RunResult:
        """
        Drive one job from submission to a terminal state.

        Raises:
            PredictionFailedError: Service reported failure
            PredictionTimeoutError: Budget exceeded while polling
            PredictionCancelledError: cancel_event was set
        """
        start_time = time.monotonic()

        envelope = await self._submit(job, sync_mode, policy, cancel_event)
        data = self._data(envelope)

        if sync_mode:
            # The submit response is the final answer; there is no poll phase
            if data.status != PredictionStatus.COMPLETED:
                raise PredictionFailedError(data.id, data.error)
            job.apply(data)
            return self._finish(job)

        if not data.id:
            raise MalformedResponseError(
                f"No request ID in response: {envelope.model_dump(exclude_none=True)}"
            )
        job.apply(data)
        logger.info(
            "prediction_submitted",
            extra={"prediction_id": job.id, "status": job.status.value}
        )

        while True:
            if policy.timeout is not None:
                elapsed = time.monotonic() - start_time
                if elapsed >= policy.timeout:
                    logger.warning(
                        "prediction_timeout",
                        extra={
                            "prediction_id": job.id,
                            "elapsed_seconds": round(elapsed, 3),
                            "timeout_seconds": policy.timeout,
                        }
                    )
                    raise PredictionTimeoutError(job.id, policy.timeout)

            envelope = await self._get_result(job, policy, cancel_event)
            job.apply(self._data(envelope))

            if job.is_terminal:
                return self._finish(job)

            logger.debug(
                "prediction_pending",
                extra={"prediction_id": job.id, "status": job.status.value}
            )
            await self._wait(policy.poll_interval, cancel_event, job.id)

    # =========================================================================
    # Public API
    # =========================================================================

    async def run(
        self,
        model: str,
        input: Optional[PredictionInput] = None,
        *,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        enable_sync_mode: bool = False,
        max_retries: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RunResult:
        """
        Run a model and wait for the output.

        Args:
            model: Model identifier (e.g. "wavespeed-ai/flux-dev")
            input: Input parameters for the model (never mutated)
            timeout: Per-attempt time budget in seconds (None = no limit)
            poll_interval: Interval between status checks in seconds
            enable_sync_mode: Let the server block until the result is ready
            max_retries: Task-level retries (default: client setting)
            cancel_event: Set to abort at the next wait or network call

        Returns:
            RunResult with the prediction's outputs

        Raises:
            ConfigurationError: If no API key is configured
            PredictionFailedError: If the prediction fails
            PredictionTimeoutError: If every attempt times out
            PredictionCancelledError: If cancel_event is set
            HttpStatusError: On non-retryable or exhausted HTTP errors
            ConnectionExhaustedError: If transport retries run out on the last attempt
        """
        self._api.require_api_key()
        policy = self.policy.with_overrides(
            timeout=timeout,
            poll_interval=poll_interval,
            max_task_retries=max_retries,
        )
        total_attempts = policy.max_task_retries + 1

        for attempt in range(total_attempts):
            job = Job.create(model, input)
            with LogContext(model=model, task_attempt=attempt + 1):
                try:
                    return await self._run_once(job, enable_sync_mode, policy, cancel_event)

                except Exception as e:
                    retryable = is_retryable(e)
                    logger.warning(
                        "task_attempt_failed",
                        extra={
                            "attempt": attempt + 1,
                            "max_attempts": total_attempts,
                            "prediction_id": job.id,
                            "retryable": retryable,
                            "error": str(e),
                            "error_type": type(e).__name__,
                        }
                    )
                    if not retryable or attempt >= policy.max_task_retries:
                        raise

                    delay = policy.backoff(attempt)
                    logger.info(
                        "task_retry",
                        extra={"attempt": attempt + 1, "backoff_seconds": delay}
                    )
                    await self._wait(delay, cancel_event)

        raise AssertionError("unreachable")

    async def upload(
        self,
        file: Union[str, Path],
        *,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> str:
        """
        Upload a file to WaveSpeed.

        Retried at the connection level only; there is no task-level retry.

        Args:
            file: Local file path
            timeout: Total request timeout in seconds (default: settings)
            cancel_event: Set to abort between connection retries

        Returns:
            URL of the uploaded file, exactly as returned by the service

        Raises:
            ConfigurationError: If no API key is configured
            FileNotFoundError: If the path does not exist
            UploadError: If the upload fails
        """
        self._api.require_api_key()
        path = Path(file)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {file}")

        self._check_cancelled(cancel_event)
        try:
            envelope = await execute_with_retry(
                lambda: self._api.upload(path, timeout=timeout),
                max_connection_retries=self.policy.max_connection_retries,
                retry_interval=self.policy.retry_interval,
                description="upload file",
                sleep=self._retrier_sleep(cancel_event),
            )
        except (HttpStatusError, ConnectionExhaustedError, MalformedResponseError, OSError) as e:
            raise UploadError(
                f"Failed to upload file: {e}",
                status_code=getattr(e, "status_code", None),
            ) from e

        if envelope.code != 200:
            raise UploadError(
                f"Upload failed: {envelope.message or 'Unknown error'}",
                status_code=envelope.code,
            )
        if envelope.data is None or not envelope.data.download_url:
            raise UploadError("Upload failed: no download_url in response")

        logger.info("file_uploaded", extra={"file_name": path.name})
        return envelope.data.download_url


# =============================================================================
# Factory Function
# =============================================================================


def create_client(
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    settings: Optional[Settings] = None,
    **options,
) -> Client:
    """
    Create a client for the application's composition root.

    The returned instance is meant to be built once and passed to the
    code that needs it; the SDK keeps no process-wide default client.

    Args:
        api_key: WaveSpeed API key (default: from settings)
        base_url: API base URL (default: from settings)
        settings: Settings instance (default: get_settings())
        **options: Any other Client keyword argument

    Returns:
        Client instance
    """
    return Client(api_key=api_key, base_url=base_url, settings=settings, **options)
