"""Line-format response parser.

The model is asked to answer with ``KEY: value`` lines. This module turns
that free text into typed profile records. Parsing is total: malformed,
truncated or empty text never raises. Every field is decoded on its own,
so one bad line only degrades that field to its default, and every decoded
value is clamped or checked against its allowed set before the profile
model sees it.

Example:
    >>> parser = ResponseParser()
    >>> profile = parser.parse(Domain.EMOTION, "JOY: 0.9\\nSTRESS: 7 (high)\\n")
    >>> profile.emotions.joy, profile.emotions.stress
    (0.9, 1.0)
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from curator.core.profiles import (
    ACTIVITY_LEVELS,
    DIFFICULTIES,
    LOCATION_PREFERENCES,
    MUSIC_MOODS,
    PRIORITIES,
    SEASON_PREFERENCES,
    SOCIAL_PREFERENCES,
    SUGGESTION_CATEGORIES,
    TIME_PREFERENCES,
    CommentStyle,
    CreativeProfile,
    CulturalContext,
    Domain,
    DomainProfile,
    DynamicComment,
    EmotionProfile,
    EmotionScores,
    GrowthProfile,
    InterestScores,
    LifestyleProfile,
    PatternPreferences,
    PersonalityProfile,
    SeasonalActivity,
    Suggestion,
    SuggestionSet,
)
from curator.core.summary import TrendLabel

logger = logging.getLogger(__name__)

Fields = dict[str, str]

LIST_MARKER = re.compile(r"^\s*(?:[-*+>#•]+|\d+[.)])\s*")
NON_NUMERIC = re.compile(r"[^\d.]")
SUGGESTION_HEADER = re.compile(
    r"^[\s*#\->]*(?:GROWTH_)?SUGGESTION_\d+\b.*$", re.IGNORECASE | re.MULTILINE
)
BRACKET_PAIRS = {"[": "]", "(": ")", "{": "}"}

DEFAULT_CONFIDENCE: dict[str, float] = {
    Domain.EMOTION.value: 0.5,
    Domain.LIFESTYLE.value: 0.6,
    Domain.GROWTH.value: 0.7,
    Domain.CREATIVE.value: 0.7,
    Domain.PERSONALITY.value: 0.6,
    Domain.CULTURAL.value: 0.6,
    Domain.SUGGESTIONS.value: 0.6,
    "comment": 0.6,
}

EMOTION_KEYS = ("joy", "peace", "excitement", "melancholy", "nostalgia", "curiosity", "stress")
INTEREST_KEYS = ("nature", "urban", "art", "food", "people", "travel", "culture", "technology")
SEASON_KEYS = ("spring", "summer", "autumn", "winter")
TREND_VALUES = tuple(label.value for label in TrendLabel)


# =============================================================================
# Tokenizer and decoders
# =============================================================================


def tokenize(text: str) -> Fields:
    """Split text into ``KEY -> value`` pairs.

    Keys are the text before the first ``:`` on a line, with list markers
    and markdown emphasis removed, upper-cased. Lines with an empty key or
    value are ignored. The last occurrence of a key wins.
    """
    fields: Fields = {}
    if not text:
        return fields

    for line in text.splitlines():
        if ":" not in line:
            continue
        raw_key, _, raw_value = line.partition(":")
        key = LIST_MARKER.sub("", raw_key).strip().strip("*_`").strip().upper()
        value = raw_value.strip().strip("*").strip()
        if key and value:
            fields[key] = value
    return fields


def _number(raw: str) -> float | None:
    """Keep only digits and dots, then parse; None when nothing readable is left."""
    cleaned = NON_NUMERIC.sub("", raw)
    try:
        return float(cleaned)
    except ValueError:
        return None


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def clamped_float(fields: Fields, key: str, default: float, lo: float, hi: float) -> float:
    """Decode a float, clamped to ``[lo, hi]``; ``default`` when absent or unreadable."""
    raw = fields.get(key)
    number = _number(raw) if raw is not None else None
    if number is None:
        return _clamp(default, lo, hi)
    return _clamp(number, lo, hi)


def clamped_int(fields: Fields, key: str, default: int, lo: int, hi: int) -> int:
    """Decode an integer (fractions truncated), clamped to ``[lo, hi]``."""
    raw = fields.get(key)
    number = _number(raw) if raw is not None else None
    if number is None:
        return int(_clamp(default, lo, hi))
    return int(_clamp(number, lo, hi))


def enum_value(fields: Fields, key: str, allowed: Sequence[str], default: str) -> str:
    """Decode a categorical value; anything outside ``allowed`` yields ``default``."""
    value = fields.get(key, "").strip().lower()
    return value if value in allowed else default


def string_list(fields: Fields, key: str, delimiter: str = ",") -> list[str]:
    """Decode a delimited list, stripping one surrounding bracket pair."""
    raw = fields.get(key, "").strip()
    if len(raw) >= 2 and BRACKET_PAIRS.get(raw[0]) == raw[-1]:
        raw = raw[1:-1]
    return [part.strip().strip("\"'").strip() for part in raw.split(delimiter) if part.strip()]


def int_list(fields: Fields, key: str, lo: int, hi: int) -> list[int]:
    """Decode a delimited list of integers, dropping unreadable entries."""
    values: list[int] = []
    for part in string_list(fields, key):
        number = _number(part)
        if number is not None:
            values.append(int(_clamp(number, lo, hi)))
    return values


def text_value(fields: Fields, key: str, default: str = "") -> str:
    return fields.get(key, default)


def confidence(fields: Fields, domain: str, key: str = "CONFIDENCE") -> float:
    return clamped_float(fields, key, DEFAULT_CONFIDENCE[domain], 0.0, 1.0)


def split_suggestion_blocks(text: str) -> list[str]:
    """Return the text of every ``SUGGESTION_<n>`` block, headers excluded."""
    headers = list(SUGGESTION_HEADER.finditer(text or ""))
    blocks = []
    for index, header in enumerate(headers):
        end = headers[index + 1].start() if index + 1 < len(headers) else len(text)
        blocks.append(text[header.end() : end])
    return blocks


# =============================================================================
# Parser
# =============================================================================


class ResponseParser:
    """Decode model text into domain profiles.

    Example:
        >>> parser = ResponseParser()
        >>> context = parser.parse(Domain.CULTURAL, "MUSIC_MOOD: Peaceful\\nART_STYLES: [ink, collage]")
        >>> context.music_mood, context.art_styles
        ('peaceful', ['ink', 'collage'])
    """

    def parse(
        self,
        domain: Domain,
        text: str,
        trend: TrendLabel = TrendLabel.UNDETERMINED,
    ) -> DomainProfile:
        """Parse the response for a domain.

        Args:
            domain: Which profile to build.
            text: Raw model output (may be empty or malformed).
            trend: Default creative progression when the text omits it.

        Returns:
            A fully populated, range-valid profile.
        """
        text = text or ""
        if domain == Domain.SUGGESTIONS:
            return self.parse_suggestions(text)

        fields = tokenize(text)
        if not fields:
            logger.debug(f"No key/value lines found in {domain.value} response")

        if domain == Domain.EMOTION:
            return self._emotion(fields)
        if domain == Domain.LIFESTYLE:
            return self._lifestyle(fields)
        if domain == Domain.GROWTH:
            return self._growth(fields)
        if domain == Domain.CREATIVE:
            return self._creative(fields, trend)
        if domain == Domain.CULTURAL:
            return self._cultural(fields)
        return self._personality(fields)

    def parse_comment(self, text: str, style: CommentStyle) -> DynamicComment:
        fields = tokenize(text or "")
        return DynamicComment(
            style=style,
            main=text_value(fields, "MAIN"),
            insight=text_value(fields, "INSIGHT"),
            suggestion=text_value(fields, "SUGGESTION"),
            hidden_message=text_value(fields, "HIDDEN_MESSAGE"),
            confidence=confidence(fields, "comment"),
        )

    def parse_suggestions(self, text: str) -> SuggestionSet:
        suggestions = []
        for block in split_suggestion_blocks(text):
            suggestion = self._suggestion(tokenize(block))
            if suggestion is not None:
                suggestions.append(suggestion)
        return SuggestionSet(
            suggestions=suggestions,
            confidence=confidence(tokenize(text), Domain.SUGGESTIONS.value),
        )

    # -------------------------------------------------------------------------
    # Per-domain decoding
    # -------------------------------------------------------------------------

    def _emotion(self, fields: Fields) -> EmotionProfile:
        return EmotionProfile(
            emotions=EmotionScores(
                **{k: clamped_float(fields, k.upper(), 0.5, 0.0, 1.0) for k in EMOTION_KEYS}
            ),
            interests=InterestScores(
                **{k: clamped_float(fields, k.upper(), 0.5, 0.0, 1.0) for k in INTEREST_KEYS}
            ),
            patterns=PatternPreferences(
                time_preference=enum_value(fields, "TIME_PREF", TIME_PREFERENCES, "mixed"),
                season_preference=enum_value(fields, "SEASON_PREF", SEASON_PREFERENCES, "mixed"),
                location_preference=enum_value(
                    fields, "LOCATION_PREF", LOCATION_PREFERENCES, "mixed"
                ),
                social_preference=enum_value(fields, "SOCIAL_PREF", SOCIAL_PREFERENCES, "mixed"),
            ),
            summary=text_value(fields, "SUMMARY"),
            confidence=confidence(fields, Domain.EMOTION.value),
        )

    def _lifestyle(self, fields: Fields) -> LifestyleProfile:
        defaults = LifestyleProfile()
        active_hours = int_list(fields, "ACTIVE_HOURS", 0, 23)[:3] or defaults.active_hours
        weekday = int_list(fields, "WEEKDAY_PATTERN", 0, 10)
        weekend = int_list(fields, "WEEKEND_PATTERN", 0, 10)

        return LifestyleProfile(
            active_hours=active_hours,
            weekday_pattern=weekday if len(weekday) == 7 else defaults.weekday_pattern,
            weekend_pattern=weekend if len(weekend) == 2 else defaults.weekend_pattern,
            post_frequency=clamped_float(fields, "POST_FREQUENCY", 2.0, 0.0, 50.0),
            travel_radius_km=clamped_float(fields, "TRAVEL_RADIUS", 10.0, 0.0, 1000.0),
            favorite_locations=string_list(fields, "FAVORITE_LOCATIONS"),
            activity_level=enum_value(fields, "ACTIVITY_LEVEL", ACTIVITY_LEVELS, "medium"),
            seasonal=SeasonalActivity(
                **{
                    season: clamped_float(fields, f"SEASONAL_{season.upper()}", 0.5, 0.0, 1.0)
                    for season in SEASON_KEYS
                }
            ),
            weather_preferences=string_list(fields, "WEATHER_PREFS"),
            summary=text_value(fields, "LIFESTYLE_SUMMARY"),
            confidence=confidence(fields, Domain.LIFESTYLE.value),
        )

    def _growth(self, fields: Fields) -> GrowthProfile:
        def score(key: str, default: int = 50) -> int:
            return clamped_int(fields, key, default, 0, 100)

        return GrowthProfile(
            technical=score("TECHNICAL"),
            artistic=score("ARTISTIC"),
            consistency=score("CONSISTENCY"),
            improvement=score("IMPROVEMENT"),
            location_diversity=score("LOCATION"),
            time_diversity=score("TIME"),
            subject_diversity=score("SUBJECT"),
            style_diversity=score("STYLE"),
            positivity=score("POSITIVITY"),
            openness=score("OPENNESS"),
            self_confidence=score("SELF_CONFIDENCE", score("CONFIDENCE")),
            social=score("SOCIAL"),
            strengths=string_list(fields, "STRENGTHS"),
            next_challenges=string_list(fields, "NEXT_CHALLENGES"),
            summary=text_value(fields, "GROWTH_SUMMARY"),
            confidence=confidence(fields, Domain.GROWTH.value, key="CONFIDENCE_LEVEL"),
        )

    def _creative(self, fields: Fields, trend: TrendLabel) -> CreativeProfile:
        return CreativeProfile(
            creative_personality=text_value(fields, "CREATIVE_PERSONALITY"),
            aesthetic_profile=text_value(fields, "AESTHETIC_PROFILE"),
            technical_growth=text_value(fields, "TECHNICAL_GROWTH"),
            composition_style=text_value(fields, "COMPOSITION_STYLE"),
            color_sensitivity=text_value(fields, "COLOR_SENSITIVITY"),
            subject_psychology=text_value(fields, "SUBJECT_PSYCHOLOGY"),
            unique_strength=text_value(fields, "UNIQUE_STRENGTH"),
            next_evolution=text_value(fields, "NEXT_EVOLUTION"),
            inspiration_patterns=text_value(fields, "INSPIRATION_PATTERNS"),
            creativity_score=clamped_int(fields, "CREATIVITY_SCORE", 50, 0, 100),
            progression=TrendLabel(enum_value(fields, "PROGRESSION", TREND_VALUES, trend.value)),
            confidence=confidence(fields, Domain.CREATIVE.value, key="CONFIDENCE_LEVEL"),
        )

    def _cultural(self, fields: Fields) -> CulturalContext:
        return CulturalContext(
            music_genres=string_list(fields, "MUSIC_GENRES"),
            music_mood=enum_value(fields, "MUSIC_MOOD", MUSIC_MOODS, "balanced"),
            music_recommendations=string_list(fields, "MUSIC_RECOMMENDATIONS"),
            art_styles=string_list(fields, "ART_STYLES"),
            venue_types=string_list(fields, "VENUE_TYPES"),
            confidence=confidence(fields, Domain.CULTURAL.value),
        )

    def _personality(self, fields: Fields) -> PersonalityProfile:
        return PersonalityProfile(
            personality_type=text_value(fields, "PERSONALITY_TYPE"),
            description=text_value(fields, "DESCRIPTION"),
            strengths=string_list(fields, "STRENGTHS"),
            hidden_desires=string_list(fields, "HIDDEN_DESIRES"),
            archetype=text_value(fields, "ARCHETYPE"),
            evolution_stage=text_value(fields, "EVOLUTION_STAGE"),
            dominant_emotions=string_list(fields, "DOMINANT_EMOTIONS"),
            emotional_range=clamped_int(fields, "EMOTIONAL_RANGE", 50, 0, 100),
            expression_style=text_value(fields, "EXPRESSION_STYLE"),
            connection_style=text_value(fields, "CONNECTION_STYLE"),
            current_phase=text_value(fields, "CURRENT_PHASE"),
            next_level_unlock=text_value(fields, "NEXT_LEVEL_UNLOCK"),
            personal_mythology=text_value(fields, "PERSONAL_MYTHOLOGY"),
            confidence=confidence(fields, Domain.PERSONALITY.value),
        )

    def _suggestion(self, fields: Fields) -> Suggestion | None:
        title = text_value(fields, "TITLE").strip()
        if not title:
            return None
        return Suggestion(
            title=title,
            description=text_value(fields, "DESCRIPTION"),
            reasoning=text_value(fields, "REASONING"),
            action=text_value(fields, "ACTION"),
            duration=text_value(fields, "DURATION"),
            category=enum_value(fields, "TYPE", SUGGESTION_CATEGORIES, "experience"),
            priority=enum_value(fields, "PRIORITY", PRIORITIES, "medium"),
            engagement=clamped_float(fields, "ENGAGEMENT", 0.7, 0.0, 1.0),
            difficulty=enum_value(fields, "DIFFICULTY", DIFFICULTIES, "medium"),
            target_area=text_value(fields, "TARGET_AREA"),
        )
