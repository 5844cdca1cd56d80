"""Tests for the core data models.

Tests cover:
- QualityScore total and level derivation
- ContentItem normalization
- Profile range validation
- Suggestion ranking
- ResultEnvelope builders and provenance
- AnalysisBundle growth history cap and serialization
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from curator.core import (
    GROWTH_HISTORY_LIMIT,
    AnalysisBundle,
    ContentItem,
    Domain,
    EmotionProfile,
    GrowthProfile,
    GrowthSnapshot,
    LifestyleProfile,
    Provenance,
    QualityScore,
    ResultEnvelope,
    ScoreLevel,
    Suggestion,
    SuggestionSet,
    fallback_envelope,
    mock_envelope,
    model_envelope,
)
from curator.core.profiles import CommentStyle

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


class TestQualityScore:
    """Tests for QualityScore."""

    @pytest.mark.parametrize(
        "total, level",
        [
            (95, ScoreLevel.S),
            (90, ScoreLevel.S),
            (89, ScoreLevel.A),
            (80, ScoreLevel.A),
            (70, ScoreLevel.B),
            (60, ScoreLevel.C),
            (50, ScoreLevel.D),
            (49, ScoreLevel.E),
            (0, ScoreLevel.E),
        ],
    )
    def test_level_thresholds(self, total, level):
        assert ScoreLevel.from_total(total) == level

    def test_total_is_rounded_mean(self):
        score = QualityScore(technical=80, composition=70, creativity=90, engagement=60)
        assert score.total == 75
        assert score.level == ScoreLevel.B

    def test_explicit_total_drives_level(self):
        score = QualityScore(technical=10, composition=10, creativity=10, engagement=10, total=91)
        assert score.level == ScoreLevel.S

    def test_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            QualityScore(technical=101)


class TestContentItem:
    def test_tags_from_comma_string(self):
        item = ContentItem(created_at=NOW, tags="sea, sky,, ")
        assert item.tags == ["sea", "sky"]

    def test_descriptors_without_quality(self):
        item = ContentItem(created_at=NOW)
        assert item.features is None
        assert item.subject_text() == ""
        assert item.id


class TestProfiles:
    """Range checks on profile records."""

    def test_emotion_defaults_in_range(self):
        profile = EmotionProfile()
        assert 0.0 <= profile.emotions.joy <= 1.0
        assert profile.patterns.time_preference == "mixed"

    def test_emotion_rejects_out_of_range(self):
        with pytest.raises(ValidationError):
            EmotionProfile(confidence=1.5)

    def test_lifestyle_rejects_bad_hour(self):
        with pytest.raises(ValidationError):
            LifestyleProfile(active_hours=[7, 24])

    def test_lifestyle_rejects_short_week(self):
        with pytest.raises(ValidationError):
            LifestyleProfile(weekday_pattern=[1, 2, 3])

    def test_growth_areas(self):
        profile = GrowthProfile(technical=90, artistic=40, consistency=60, improvement=70)
        assert profile.strongest_area() == "technical"
        assert profile.weakest_area() == "artistic"

    def test_growth_snapshot_copies_skills(self):
        profile = GrowthProfile(technical=81, artistic=62)
        snapshot = GrowthSnapshot.from_profile(profile, recorded_at=NOW)
        assert (snapshot.technical, snapshot.artistic) == (81, 62)

    def test_comment_style_key_excludes_length(self):
        a = CommentStyle(tone="warm", focus="technical", persona="friend", length="short")
        b = CommentStyle(tone="warm", focus="technical", persona="friend", length="long")
        assert a.key() == b.key()


class TestSuggestionRanking:
    """Suggestions are ordered by priority, then engagement."""

    def test_priority_before_engagement(self):
        suggestions = SuggestionSet(
            suggestions=[
                Suggestion(title="a", priority="medium", engagement=0.9),
                Suggestion(title="b", priority="urgent", engagement=0.6),
                Suggestion(title="c", priority="high", engagement=0.8),
                Suggestion(title="d", priority="high", engagement=0.95),
            ]
        )
        assert [s.title for s in suggestions.ranked().suggestions] == ["b", "d", "c", "a"]

    def test_limit(self):
        suggestions = SuggestionSet(suggestions=[Suggestion(title=str(i)) for i in range(5)])
        assert len(suggestions.ranked(limit=2).suggestions) == 2


class TestEnvelope:
    """Tests for the envelope builders."""

    def test_model_envelope(self):
        envelope = model_envelope(EmotionProfile(confidence=0.8), processing_time_ms=120)

        assert envelope.success is True
        assert envelope.error == ""
        assert envelope.metadata.version == "1.0.0-model"
        assert envelope.confidence == 0.8
        assert envelope.provenance == Provenance.MODEL

    def test_mock_envelope(self):
        envelope = mock_envelope(EmotionProfile(confidence=0.3))
        assert envelope.success is True
        assert envelope.provenance == Provenance.MOCK

    def test_fallback_envelope_always_has_data(self):
        envelope = fallback_envelope(EmotionProfile(confidence=0.2), error="Rate limit exceeded")

        assert envelope.success is False
        assert envelope.data is not None
        assert envelope.error == "Rate limit exceeded"
        assert envelope.metadata.version == "1.0.0-fallback"

    def test_fallback_envelope_needs_an_error(self):
        envelope = fallback_envelope(EmotionProfile(), error="")
        assert envelope.error

    def test_negative_processing_time_clamped(self):
        envelope = model_envelope(EmotionProfile(), processing_time_ms=-5)
        assert envelope.metadata.processing_time_ms == 0

    def test_json_round_trip(self):
        envelope = model_envelope(GrowthProfile(technical=77))
        restored = ResultEnvelope[GrowthProfile].model_validate_json(envelope.model_dump_json())
        assert restored.data.technical == 77


class TestAnalysisBundle:
    """Tests for AnalysisBundle."""

    def test_set_and_get(self):
        bundle = AnalysisBundle(user_id="u1")
        bundle.set(Domain.EMOTION, model_envelope(EmotionProfile(confidence=0.8)))

        assert bundle.get(Domain.EMOTION).data.confidence == 0.8
        assert bundle.completed_domains() == [Domain.EMOTION]

    def test_overall_confidence(self):
        bundle = AnalysisBundle(user_id="u1")
        assert bundle.overall_confidence() == 0.0

        bundle.set(Domain.EMOTION, model_envelope(EmotionProfile(confidence=0.8)))
        bundle.set(Domain.GROWTH, model_envelope(GrowthProfile(confidence=0.4)))
        assert bundle.overall_confidence() == pytest.approx(0.6)

    def test_growth_history_keeps_most_recent(self):
        bundle = AnalysisBundle(user_id="u1")
        for i in range(GROWTH_HISTORY_LIMIT + 5):
            bundle.record_growth(
                GrowthSnapshot(recorded_at=NOW + timedelta(days=i), technical=i % 100)
            )

        assert len(bundle.growth_history) == GROWTH_HISTORY_LIMIT
        assert bundle.growth_history[0].technical == 5
        assert bundle.growth_history[-1].recorded_at == NOW + timedelta(days=GROWTH_HISTORY_LIMIT + 4)

    def test_serialization_round_trip(self):
        bundle = AnalysisBundle(user_id="u1")
        bundle.set(Domain.GROWTH, model_envelope(GrowthProfile(technical=82)))

        restored = AnalysisBundle.model_validate_json(bundle.model_dump_json())

        assert restored.growth.data.technical == 82
        assert restored.emotion is None
