"""
Job lifecycle bookkeeping.

A ``Job`` is the in-memory record of one submit + poll attempt. It is
created by the orchestrator for every task attempt, updated as responses
arrive, and dropped when the attempt ends. ``RetryPolicy`` carries the
resolved retry / polling / timeout knobs for one ``Client.run`` call.
"""
from __future__ import annotations

import copy
import dataclasses
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from pydantic import JsonValue

from wavespeed.inference.exceptions import ConfigurationError, JobStateError
from wavespeed.inference.schemas import Prediction, PredictionInput, PredictionStatus

SYNC_MODE_FLAG = "enable_sync_mode"


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry, polling and timeout configuration.

    Attributes:
        max_task_retries: Whole-job restarts after a retryable failure
        max_connection_retries: Retries of a single HTTP call on transport errors
        retry_interval: Backoff unit; the k-th retry waits retry_interval * k
        poll_interval: Wait between status fetches
        timeout: Per-attempt wall-clock budget (None = unbounded)
    """

    max_task_retries: int = 0
    max_connection_retries: int = 5
    retry_interval: float = 1.0
    poll_interval: float = 1.0
    timeout: Optional[float] = None

    def __post_init__(self):
        if self.max_task_retries < 0 or self.max_connection_retries < 0:
            raise ConfigurationError("Retry counts must be non-negative")
        if self.retry_interval < 0 or self.poll_interval < 0:
            raise ConfigurationError("Intervals must be non-negative")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("timeout must be positive when set")

    def with_overrides(self, **overrides: Any) -> "RetryPolicy":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        return dataclasses.replace(self, **changes)

    def backoff(self, attempt: int) -> float:
        """Delay after the failed 0-indexed ``attempt``: linear in the base interval."""
        return self.retry_interval * (attempt + 1)


@dataclass
class Job:
    """
    One inference request tracked through to a terminal status.

    Invariants:
    - ``id`` is assigned at most once
    - ``status`` only moves forward; terminal states are final
    - ``outputs`` is set iff COMPLETED, ``error`` iff FAILED
    """

    model: str
    input: Mapping[str, JsonValue] = field(default_factory=dict)
    id: Optional[str] = None
    status: PredictionStatus = PredictionStatus.PENDING
    outputs: List[JsonValue] = field(default_factory=list)
    error: Optional[str] = None

    def __post_init__(self):
        if not self.model:
            raise ConfigurationError("model is required")
        # Snapshot so later caller mutations never reach the request
        self.input = MappingProxyType(copy.deepcopy(dict(self.input)))

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "model" and "model" in self.__dict__:
            raise JobStateError("model is immutable once set")
        super().__setattr__(name, value)

    @classmethod
    def create(cls, model: str, input: Optional[PredictionInput] = None) -> "Job":
        return cls(model=model, input=input or {})

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def request_body(self, sync_mode: bool = False) -> Dict[str, Any]:
        """
        Build the JSON body for submission.

        Args:
            sync_mode: Add the server-side blocking flag

        Returns:
            A fresh dict; the job's snapshot is left untouched
        """
        body = copy.deepcopy(dict(self.input))
        if sync_mode:
            body[SYNC_MODE_FLAG] = True
        return body

    def assign_id(self, prediction_id: str) -> None:
        """Record the service-assigned id."""
        if not prediction_id:
            raise JobStateError("Prediction id must be a non-empty string")
        if self.id is not None and self.id != prediction_id:
            raise JobStateError(
                f"Job already has id {self.id}; refusing to reassign to {prediction_id}",
                details={"prediction_id": self.id},
            )
        self.id = prediction_id

    def apply(self, prediction: Prediction) -> PredictionStatus:
        """
        Fold a service response into the job.

        Args:
            prediction: ``data`` object from a submit or result response

        Returns:
            The job's status after the update

        Raises:
            JobStateError: If the update would leave a terminal state
        """
        if prediction.id:
            self.assign_id(prediction.id)

        new_status = prediction.status
        if self.is_terminal:
            if new_status != self.status:
                raise JobStateError(
                    f"Job {self.id} is {self.status.value}; cannot move to {new_status.value}",
                    details={"prediction_id": self.id},
                )
            return self.status

        self.status = new_status
        if new_status == PredictionStatus.COMPLETED:
            self.outputs = list(prediction.outputs)
            self.error = None
        elif new_status == PredictionStatus.FAILED:
            self.outputs = []
            self.error = prediction.error or "Unknown error"
        return self.status
