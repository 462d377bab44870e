"""Push event payload models.

Payloads arrive from the live channel with camelCase keys; these models validate
them and expose snake_case attributes to the rest of the engine.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import EntryKind

_KINDS = {k.value for k in EntryKind}


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ProgressEvent(_Payload):
    total_processed: int | None = Field(
        default=None, ge=0, alias="totalProcessed", description="Upstream processed count."
    )
    anomalies_detected: int | None = Field(
        default=None, ge=0, alias="anomaliesDetected", description="Upstream anomaly count."
    )
    avg_processing_time_ms: float | None = Field(
        default=None,
        ge=0.0,
        alias="avgProcessingTime",
        description="Upstream running mean processing time (ms).",
    )


class DataEvent(_Payload):
    kind: EntryKind = Field(default=EntryKind.INFO, alias="type", description="Entry kind.")
    message: str = Field(description="Text payload.")
    agent: str | None = Field(default=None, description="Originating agent label.")
    processing_time_ms: float | None = Field(
        default=None, ge=0.0, alias="processingTime", description="Processing time (ms)."
    )
    confidence: float | None = Field(default=None, ge=0.0, le=1.0, description="0..1 confidence.")
    anomaly: dict[str, Any] | None = Field(default=None, description="Anomaly detail.")

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, v: Any) -> Any:
        if v is None:
            return EntryKind.INFO
        if isinstance(v, str):
            name = v.strip().lower()
            # Unknown labels still display; they just never match a non-ALL filter.
            return name if name in _KINDS else EntryKind.INFO
        return v

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, v: Any) -> Any:
        # Numeric scalars are valid text payloads; bools are not.
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("anomaly", mode="before")
    @classmethod
    def _normalize_anomaly(cls, v: Any) -> Any:
        if isinstance(v, str):
            return {"description": v}
        return v


class ErrorEvent(_Payload):
    message: str = Field(default="Unknown stream error", description="Error text.")
