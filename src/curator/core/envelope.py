"""Uniform result envelope for every domain analysis.

Every domain call returns a ``ResultEnvelope``: ``data`` is always populated,
even when the call failed, so callers never have to null-check it. The
``metadata.version`` suffix records provenance (``-model``, ``-mock``,
``-fallback``) for observability only.

Example:
    >>> envelope = model_envelope(profile, processing_time_ms=812)
    >>> envelope.metadata.version
    '1.0.0-model'
    >>> failed = fallback_envelope(fallback_profile, error="Rate limit exceeded")
    >>> failed.success, failed.data is not None
    (False, True)
"""

from __future__ import annotations

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

ENVELOPE_VERSION = "1.0.0"

T = TypeVar("T", bound=BaseModel)


class Provenance(str, Enum):
    """Where the data in an envelope came from.

    Attributes:
        MODEL: Parsed from a generative model response.
        MOCK: Synthesized because the model client was not available.
        FALLBACK: Synthesized because the model path failed.
    """

    MODEL = "model"
    MOCK = "mock"
    FALLBACK = "fallback"


class EnvelopeMetadata(BaseModel):
    """Processing metadata attached to an envelope."""

    processing_time_ms: int = Field(default=0, ge=0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    version: str = f"{ENVELOPE_VERSION}-{Provenance.MODEL.value}"


class ResultEnvelope(BaseModel, Generic[T]):
    """``{success, data, error, metadata}`` wrapper around a domain result.

    Attributes:
        success: Whether the model path produced this result without error.
        data: The domain record. Required; never None.
        error: Error description, empty on success.
        metadata: Timing, confidence and provenance version.
    """

    success: bool
    data: T
    error: str = ""
    metadata: EnvelopeMetadata = Field(default_factory=EnvelopeMetadata)

    @property
    def provenance(self) -> Provenance:
        return provenance_of(self)

    @property
    def confidence(self) -> float:
        return self.metadata.confidence


def _version(provenance: Provenance) -> str:
    return f"{ENVELOPE_VERSION}-{provenance.value}"


def _confidence_of(data: BaseModel) -> float:
    value = getattr(data, "confidence", 0.0)
    return min(1.0, max(0.0, float(value)))


def model_envelope(data: T, processing_time_ms: int = 0) -> ResultEnvelope[T]:
    """Wrap a parsed model result."""
    return ResultEnvelope[type(data)](  # type: ignore[misc]
        success=True,
        data=data,
        metadata=EnvelopeMetadata(
            processing_time_ms=max(0, int(processing_time_ms)),
            confidence=_confidence_of(data),
            version=_version(Provenance.MODEL),
        ),
    )


def mock_envelope(data: T, processing_time_ms: int = 0) -> ResultEnvelope[T]:
    """Wrap data synthesized because the model client was unavailable."""
    return ResultEnvelope[type(data)](  # type: ignore[misc]
        success=True,
        data=data,
        metadata=EnvelopeMetadata(
            processing_time_ms=max(0, int(processing_time_ms)),
            confidence=_confidence_of(data),
            version=_version(Provenance.MOCK),
        ),
    )


def fallback_envelope(
    data: T,
    error: str,
    processing_time_ms: int = 0,
) -> ResultEnvelope[T]:
    """Wrap data synthesized after the model path failed."""
    return ResultEnvelope[type(data)](  # type: ignore[misc]
        success=False,
        data=data,
        error=error or "Analysis failed",
        metadata=EnvelopeMetadata(
            processing_time_ms=max(0, int(processing_time_ms)),
            confidence=_confidence_of(data),
            version=_version(Provenance.FALLBACK),
        ),
    )


def provenance_of(envelope: ResultEnvelope) -> Provenance:
    """Read the provenance suffix back from an envelope's version string."""
    suffix = envelope.metadata.version.rsplit("-", 1)[-1]
    try:
        return Provenance(suffix)
    except ValueError:
        return Provenance.MODEL
