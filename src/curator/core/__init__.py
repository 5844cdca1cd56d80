"""Core data models for the Personal Curator.

This package contains the records every other component depends on:

- **ContentItem / QualityScore / ImageFeatures**: the read-only input history
- **FeatureSummary**: immutable statistics derived from the history
- **Profiles**: typed, range-checked results for every analysis domain
- **ResultEnvelope**: uniform wrapper carrying success, data and provenance
- **AnalysisBundle**: the per-user aggregate persisted by the cache

Example:
    >>> from datetime import datetime
    >>> from curator.core import ContentItem, QualityScore
    >>> item = ContentItem(
    ...     title="Morning walk",
    ...     created_at=datetime(2024, 5, 1, 7, 30),
    ...     quality=QualityScore(technical=72, composition=68, creativity=80, engagement=55),
    ... )
    >>> item.quality.level
    <ScoreLevel.C: 'C'>
"""

from curator.core.bundle import GROWTH_HISTORY_LIMIT, AnalysisBundle, RunState
from curator.core.content import ContentItem, ImageFeatures, QualityScore, ScoreLevel
from curator.core.envelope import (
    EnvelopeMetadata,
    Provenance,
    ResultEnvelope,
    fallback_envelope,
    mock_envelope,
    model_envelope,
    provenance_of,
)
from curator.core.profiles import (
    CommentStyle,
    CreativeProfile,
    CulturalContext,
    Domain,
    DomainProfile,
    DynamicComment,
    EmotionProfile,
    GrowthProfile,
    GrowthSnapshot,
    LifestyleProfile,
    Milestone,
    PersonalityProfile,
    Suggestion,
    SuggestionSet,
)
from curator.core.summary import FeatureSummary, TrendLabel

__all__ = [
    # Input
    "ContentItem",
    "ImageFeatures",
    "QualityScore",
    "ScoreLevel",
    # Summary
    "FeatureSummary",
    "TrendLabel",
    # Profiles
    "Domain",
    "DomainProfile",
    "EmotionProfile",
    "LifestyleProfile",
    "GrowthProfile",
    "GrowthSnapshot",
    "Milestone",
    "CreativeProfile",
    "PersonalityProfile",
    "Suggestion",
    "SuggestionSet",
    "CulturalContext",
    "CommentStyle",
    "DynamicComment",
    # Envelope
    "EnvelopeMetadata",
    "Provenance",
    "ResultEnvelope",
    "model_envelope",
    "mock_envelope",
    "fallback_envelope",
    "provenance_of",
    # Bundle
    "AnalysisBundle",
    "RunState",
    "GROWTH_HISTORY_LIMIT",
]
