"""Feature extraction over a user's content history.

The FeatureExtractor is the data preparation layer that feeds the prompt
builder. It turns a list of ContentItems into an immutable FeatureSummary:

- Token frequencies over subject and mood descriptors (top-K)
- Tag frequencies
- Three-phase quality trends, overall and per sub-score
- Hour-of-day and weekday posting histograms

Extraction is pure and deterministic: the same items always produce the
same summary, and an empty history produces the "insufficient data"
sentinel instead of raising.

Example:
    >>> extractor = FeatureExtractor(top_k=5)
    >>> summary = extractor.extract(items)
    >>> summary.trend
    <TrendLabel.RISING: 'rising'>
    >>> classify_trend([50, 52, 54])
    <TrendLabel.STABLE: 'stable'>
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from datetime import datetime, timezone
from statistics import mean
from typing import Iterable, Sequence

from curator.core.content import SCORE_FIELDS, ContentItem
from curator.core.summary import DAYS_PER_WEEK, HOURS_PER_DAY, FeatureSummary, TrendLabel

logger = logging.getLogger(__name__)

# ASCII punctuation, whitespace and the common CJK punctuation marks.
TOKEN_SEPARATORS = re.compile(
    r"[\s!\"#$%&'()*+,\-./:;<=>?@\[\\\]^_`{|}~"
    r"\u3000-\u303f\uff01-\uff0f\uff1a-\uff20\uff3b-\uff40\uff5b-\uff65"
    r"\u2018\u2019\u201c\u201d\u2026\u30fb]+"
)
MIN_TOKEN_LENGTH = 3

PHASE_COUNT = 3
RISING_DELTA = 10.0
IMPROVING_DELTA = 5.0
DECLINING_DELTA = -5.0


# =============================================================================
# Pure helpers
# =============================================================================


def classify_trend(phase_means: Sequence[float]) -> TrendLabel:
    """Classify a sequence of phase means.

    Args:
        phase_means: Mean score per chronological phase.

    Returns:
        RISING when the last phase exceeds the first by more than 10 points,
        IMPROVING above 5, DECLINING below -5, otherwise STABLE.
        UNDETERMINED when fewer than three phases are available.
    """
    if len(phase_means) < PHASE_COUNT:
        return TrendLabel.UNDETERMINED

    delta = phase_means[-1] - phase_means[0]
    if delta > RISING_DELTA:
        return TrendLabel.RISING
    if delta > IMPROVING_DELTA:
        return TrendLabel.IMPROVING
    if delta < DECLINING_DELTA:
        return TrendLabel.DECLINING
    return TrendLabel.STABLE


def tokenize_descriptor(text: str) -> list[str]:
    """Split free text on punctuation and whitespace, dropping short tokens."""
    if not text:
        return []
    return [
        token.lower()
        for token in TOKEN_SEPARATORS.split(text)
        if len(token) >= MIN_TOKEN_LENGTH
    ]


def split_phases(values: Sequence[float], count: int = PHASE_COUNT) -> list[list[float]]:
    """Split values into contiguous phases of ``len // count``.

    The remainder goes to the last phase. Returns an empty list when there
    are fewer values than phases.
    """
    size = len(values) // count
    if size == 0:
        return []
    phases = [list(values[i * size : (i + 1) * size]) for i in range(count - 1)]
    phases.append(list(values[(count - 1) * size :]))
    return phases


def top_k(counter: Counter, k: int) -> tuple[str, ...]:
    """Most frequent keys first; ties keep first-seen order."""
    ranked = sorted(counter.items(), key=lambda pair: -pair[1])
    return tuple(key for key, _ in ranked[:k])


def _sort_key(item: ContentItem) -> datetime:
    # Naive timestamps are read as local time so mixed inputs still compare.
    return item.created_at.astimezone(timezone.utc)


def _local(dt: datetime) -> datetime:
    return dt.astimezone() if dt.tzinfo is not None else dt


def chronological(items: Iterable[ContentItem]) -> list[ContentItem]:
    """Return items sorted oldest first (stable)."""
    return sorted(items, key=_sort_key)


def extract_literals(items: Iterable[ContentItem], limit: int = 5) -> list[str]:
    """Return the most recent titles and subject phrases.

    Literals are passed to prompts verbatim so the model can reference the
    user's own words. Newest first, de-duplicated, order preserved.
    """
    literals: list[str] = []
    seen: set[str] = set()
    for item in reversed(chronological(items)):
        for candidate in (item.title, item.subject_text()):
            text = candidate.strip()
            if text and text not in seen:
                seen.add(text)
                literals.append(text)
                if len(literals) >= limit:
                    return literals
    return literals


# =============================================================================
# Extractor
# =============================================================================


class FeatureExtractor:
    """Derive a FeatureSummary from content items.

    Attributes:
        top_k: Number of subjects, moods and tags to keep.
        max_items: Only the most recent ``max_items`` are analyzed (None = all).
    """

    def __init__(self, top_k: int = 5, max_items: int | None = None) -> None:
        if top_k < 1:
            raise ValueError("top_k must be at least 1")
        self.top_k = top_k
        self.max_items = max_items

    def extract(self, items: Sequence[ContentItem]) -> FeatureSummary:
        """Build the summary for a content history.

        Args:
            items: Content items in any order.

        Returns:
            The derived summary, or ``FeatureSummary.insufficient()`` when
            there are no items.
        """
        if not items:
            return FeatureSummary.insufficient()

        ordered = chronological(items)
        if self.max_items is not None and len(ordered) > self.max_items:
            ordered = ordered[-self.max_items :]

        subjects: Counter = Counter()
        moods: Counter = Counter()
        tags: Counter = Counter()
        hours = [0] * HOURS_PER_DAY
        weekdays = [0] * DAYS_PER_WEEK

        for item in ordered:
            subjects.update(tokenize_descriptor(item.subject_text()))
            moods.update(tokenize_descriptor(item.mood_text()))
            tags.update(tag for tag in item.tags if tag)

            local = _local(item.created_at)
            hours[local.hour] += 1
            weekdays[local.weekday()] += 1

        phase_means, score_trends, average_scores = self._score_statistics(ordered)

        summary = FeatureSummary(
            item_count=len(ordered),
            is_sufficient=True,
            top_subjects=top_k(subjects, self.top_k),
            top_moods=top_k(moods, self.top_k),
            top_tags=top_k(tags, self.top_k),
            trend=classify_trend(phase_means),
            phase_means=tuple(round(value, 2) for value in phase_means),
            score_trends=score_trends,
            average_scores=average_scores,
            hour_histogram=tuple(hours),
            weekday_histogram=tuple(weekdays),
            first_posted_at=ordered[0].created_at,
            last_posted_at=ordered[-1].created_at,
        )
        logger.debug(
            f"Extracted features from {summary.item_count} items (trend: {summary.trend.value})"
        )
        return summary

    def _score_statistics(
        self, ordered: list[ContentItem]
    ) -> tuple[list[float], dict, dict[str, float]]:
        scored = [item.quality for item in ordered if item.quality is not None]
        if not scored:
            return [], {}, {}

        average_scores = {
            name: round(mean(getattr(score, name) for score in scored), 1)
            for name in SCORE_FIELDS
        }

        per_field_phases: dict[str, list[float]] = {}
        score_trends = {}
        for name in SCORE_FIELDS:
            phases = split_phases([getattr(score, name) for score in scored])
            per_field_phases[name] = [mean(phase) for phase in phases]
            score_trends[name] = classify_trend(per_field_phases[name])

        phase_count = len(per_field_phases[SCORE_FIELDS[0]])
        overall = [
            mean(per_field_phases[name][i] for name in SCORE_FIELDS) for i in range(phase_count)
        ]
        return overall, score_trends, average_scores
