"""Feature summary model.

A FeatureSummary is the immutable aggregate the FeatureExtractor derives
from a window of content items. Re-analysis always produces a new summary;
instances are frozen.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TrendLabel(str, Enum):
    """Three-phase trend classification of quality scores.

    Attributes:
        RISING: Last phase mean exceeds the first by more than 10 points.
        IMPROVING: Difference above 5 points.
        STABLE: Difference within [-5, 5].
        DECLINING: Difference below -5 points.
        UNDETERMINED: Fewer than three usable phases.
    """

    RISING = "rising"
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
    UNDETERMINED = "undetermined"


HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7


class FeatureSummary(BaseModel):
    """Derived, immutable statistics over a user's content history.

    Attributes:
        item_count: Number of items the summary was built from.
        is_sufficient: False for the "insufficient data" sentinel.
        top_subjects: Most frequent subject tokens, most frequent first.
        top_moods: Most frequent mood tokens.
        top_tags: Most frequent tags.
        trend: Overall quality trend across three chronological phases.
        phase_means: Mean overall quality per phase (empty when undetermined).
        score_trends: Trend per sub-score name.
        average_scores: Mean per sub-score name over all scored items.
        hour_histogram: Post counts per local hour (0-23).
        weekday_histogram: Post counts per weekday (Monday = 0).
        first_posted_at: Earliest item timestamp.
        last_posted_at: Latest item timestamp.
    """

    item_count: int = Field(default=0, ge=0)
    is_sufficient: bool = False
    top_subjects: tuple[str, ...] = ()
    top_moods: tuple[str, ...] = ()
    top_tags: tuple[str, ...] = ()
    trend: TrendLabel = TrendLabel.UNDETERMINED
    phase_means: tuple[float, ...] = ()
    score_trends: dict[str, TrendLabel] = Field(default_factory=dict)
    average_scores: dict[str, float] = Field(default_factory=dict)
    hour_histogram: tuple[int, ...] = (0,) * HOURS_PER_DAY
    weekday_histogram: tuple[int, ...] = (0,) * DAYS_PER_WEEK
    first_posted_at: datetime | None = None
    last_posted_at: datetime | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("hour_histogram")
    @classmethod
    def check_hours(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if len(v) != HOURS_PER_DAY:
            raise ValueError(f"hour_histogram must have {HOURS_PER_DAY} buckets, got {len(v)}")
        return v

    @field_validator("weekday_histogram")
    @classmethod
    def check_weekdays(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if len(v) != DAYS_PER_WEEK:
            raise ValueError(f"weekday_histogram must have {DAYS_PER_WEEK} buckets, got {len(v)}")
        return v

    @classmethod
    def insufficient(cls) -> "FeatureSummary":
        """Return the sentinel summary used when there is nothing to analyze."""
        return cls()

    def peak_hours(self, count: int = 3) -> list[int]:
        """Return the busiest hours, earliest first on ties."""
        ranked = sorted(range(HOURS_PER_DAY), key=lambda h: (-self.hour_histogram[h], h))
        return [h for h in ranked[:count] if self.hour_histogram[h] > 0]

    def to_prompt_text(self) -> str:
        """Render the summary as compact lines for prompt embedding."""
        if not self.is_sufficient:
            return "No content history available (insufficient data)."

        lines = [
            f"Posts analyzed: {self.item_count}",
            f"Top subjects: {', '.join(self.top_subjects) or 'none'}",
            f"Top moods: {', '.join(self.top_moods) or 'none'}",
            f"Top tags: {', '.join(self.top_tags) or 'none'}",
            f"Quality trend: {self.trend.value}",
        ]
        if self.phase_means:
            lines.append(
                "Phase means: " + " -> ".join(f"{mean:.1f}" for mean in self.phase_means)
            )
        if self.average_scores:
            lines.append(
                "Average scores: "
                + ", ".join(f"{name} {value:.1f}" for name, value in self.average_scores.items())
            )
        peaks = self.peak_hours()
        if peaks:
            lines.append("Peak posting hours: " + ", ".join(f"{h:02d}:00" for h in peaks))
        lines.append(
            "Posts by weekday (Mon-Sun): " + ", ".join(str(c) for c in self.weekday_histogram)
        )
        return "\n".join(lines)
