"""
Pydantic schemas for the prediction API.

These schemas define the contract between the client and the WaveSpeed
service. Wire models keep unknown fields so model-specific data passes
through untouched; inputs and outputs are typed as ``JsonValue``.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator

# Caller-supplied model input
PredictionInput = Mapping[str, JsonValue]


class PredictionStatus(str, Enum):
    """Service-reported prediction status."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def _missing_(cls, value: object) -> "PredictionStatus":
        # "created" and any status this SDK does not know yet are non-terminal
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return cls.PENDING

    @property
    def is_terminal(self) -> bool:
        return self in (PredictionStatus.COMPLETED, PredictionStatus.FAILED)


class WireModel(BaseModel):
    """Base model for service responses."""

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
    )


# =============================================================================
# Prediction Schemas
# =============================================================================


class Prediction(WireModel):
    """
    The ``data`` object of a submit or result response.

    Only the fields the client acts on are declared; everything else
    the service sends is preserved as extra fields.
    """

    id: Optional[str] = Field(default=None, description="Service-assigned prediction id")
    model: Optional[str] = Field(default=None, description="Model identifier")
    status: PredictionStatus = Field(default=PredictionStatus.PENDING)
    outputs: List[JsonValue] = Field(default_factory=list, description="Result artifacts")
    error: Optional[str] = Field(default=None, description="Failure reason")

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> PredictionStatus:
        if v is None:
            return PredictionStatus.PENDING
        return PredictionStatus(v)

    @field_validator("outputs", mode="before")
    @classmethod
    def null_outputs_are_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("error", mode="before")
    @classmethod
    def blank_error_is_unset(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ApiEnvelope(WireModel):
    """Top-level ``{"code", "message", "data"}`` response wrapper."""

    code: Optional[int] = None
    message: Optional[str] = None
    data: Optional[Prediction] = None


# =============================================================================
# Upload Schemas
# =============================================================================


class UploadData(WireModel):
    """The ``data`` object of an upload response."""

    download_url: Optional[str] = None


class UploadEnvelope(WireModel):
    """Upload response wrapper."""

    code: Optional[int] = None
    message: Optional[str] = None
    data: Optional[UploadData] = None


# =============================================================================
# Client Results
# =============================================================================


class RunResult(BaseModel):
    """
    Outcome of a completed prediction.

    Returned by ``Client.run``; ``outputs`` holds the model's result
    artifacts (URLs or inline data) in service order.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: Optional[str] = Field(default=None, description="Prediction id")
    model: str = Field(..., description="Model identifier")
    outputs: List[JsonValue] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Return the ``{"outputs": [...]}`` mapping shape."""
        return {"outputs": list(self.outputs)}
