"""Per-user analysis bundle.

The bundle aggregates the envelopes of every domain plus the dynamic
comments. It is created on the first completed domain, overwritten as a
superset after every later one, and only ever destroyed through explicit
cache invalidation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from curator.core.envelope import ResultEnvelope
from curator.core.profiles import (
    CreativeProfile,
    CulturalContext,
    Domain,
    DynamicComment,
    EmotionProfile,
    GrowthProfile,
    GrowthSnapshot,
    LifestyleProfile,
    PersonalityProfile,
    SuggestionSet,
)
from curator.core.summary import FeatureSummary

GROWTH_HISTORY_LIMIT = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunState(str, Enum):
    """Lifecycle of an analysis run as recorded on the bundle."""

    IDLE = "idle"
    RUNNING = "running"
    PARTIALLY_COMPLETE = "partially_complete"
    COMPLETE = "complete"


class AnalysisBundle(BaseModel):
    """All analysis results for one user.

    Attributes:
        user_id: Owner of the bundle.
        created_at: When the bundle was first created.
        updated_at: When the bundle was last written.
        state: Run state at the time of the last write.
        feature_summary: Summary the latest run was computed from.
        emotion..personality: One optional envelope per domain.
        comments: Envelopes of the dynamic comments of the latest run.
        growth_history: Growth snapshots, oldest first, capped at 50.
    """

    user_id: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    state: RunState = RunState.IDLE
    feature_summary: Optional[FeatureSummary] = None

    emotion: Optional[ResultEnvelope[EmotionProfile]] = None
    lifestyle: Optional[ResultEnvelope[LifestyleProfile]] = None
    growth: Optional[ResultEnvelope[GrowthProfile]] = None
    creative: Optional[ResultEnvelope[CreativeProfile]] = None
    cultural: Optional[ResultEnvelope[CulturalContext]] = None
    suggestions: Optional[ResultEnvelope[SuggestionSet]] = None
    personality: Optional[ResultEnvelope[PersonalityProfile]] = None

    comments: list[ResultEnvelope[DynamicComment]] = Field(default_factory=list)
    growth_history: list[GrowthSnapshot] = Field(default_factory=list)

    def get(self, domain: Domain) -> Optional[ResultEnvelope]:
        """Return the envelope stored for a domain, if any."""
        return getattr(self, domain.value)

    def set(self, domain: Domain, envelope: ResultEnvelope) -> None:
        """Store a domain envelope, replacing any previous one."""
        setattr(self, domain.value, envelope)
        self.touch()

    def completed_domains(self) -> list[Domain]:
        return [domain for domain in Domain if self.get(domain) is not None]

    def record_growth(self, snapshot: GrowthSnapshot) -> None:
        """Append a growth snapshot, keeping only the most recent entries."""
        self.growth_history.append(snapshot)
        if len(self.growth_history) > GROWTH_HISTORY_LIMIT:
            self.growth_history = self.growth_history[-GROWTH_HISTORY_LIMIT:]

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def overall_confidence(self) -> float:
        """Mean envelope confidence over the populated domains."""
        envelopes = [self.get(domain) for domain in self.completed_domains()]
        if not envelopes:
            return 0.0
        return sum(e.metadata.confidence for e in envelopes) / len(envelopes)
