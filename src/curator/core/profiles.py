"""Domain profile models.

Every profile is a plain record of named scalar fields with a declared range
(``Field(ge=..., le=...)``) or an enumerated domain (``Literal``). Parser
output and fallback output are both constructed through these models, so a
value outside its range can never reach a consumer.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

from curator.core.summary import TrendLabel


# =============================================================================
# Enums and Literal domains
# =============================================================================


class Domain(str, Enum):
    """Facets of a user profile computed by the pipeline."""

    EMOTION = "emotion"
    LIFESTYLE = "lifestyle"
    GROWTH = "growth"
    CREATIVE = "creative"
    CULTURAL = "cultural"
    SUGGESTIONS = "suggestions"
    PERSONALITY = "personality"


TimePreference = Literal["morning", "afternoon", "evening", "night", "mixed"]
SeasonPreference = Literal["spring", "summer", "autumn", "winter", "mixed"]
LocationPreference = Literal["indoor", "outdoor", "mixed"]
SocialPreference = Literal["solo", "group", "mixed"]
ActivityLevel = Literal["low", "medium", "high"]
MusicMood = Literal["energetic", "peaceful", "contemplative", "balanced"]
SuggestionCategory = Literal[
    "experience",
    "location",
    "activity",
    "cultural",
    "growth",
    "food",
    "fitness",
    "education",
    "lifestyle",
]
Priority = Literal["low", "medium", "high", "urgent"]
Difficulty = Literal["easy", "medium", "hard", "expert"]
Tone = Literal["warm", "analytical", "poetic", "encouraging", "philosophical"]
Focus = Literal["technical", "emotional", "creative", "growth", "storytelling"]
Persona = Literal["friend", "mentor", "peer", "admirer", "philosopher"]
CommentLength = Literal["short", "medium", "long"]

TIME_PREFERENCES: tuple[str, ...] = ("morning", "afternoon", "evening", "night", "mixed")
SEASON_PREFERENCES: tuple[str, ...] = ("spring", "summer", "autumn", "winter", "mixed")
LOCATION_PREFERENCES: tuple[str, ...] = ("indoor", "outdoor", "mixed")
SOCIAL_PREFERENCES: tuple[str, ...] = ("solo", "group", "mixed")
ACTIVITY_LEVELS: tuple[str, ...] = ("low", "medium", "high")
MUSIC_MOODS: tuple[str, ...] = ("energetic", "peaceful", "contemplative", "balanced")
SUGGESTION_CATEGORIES: tuple[str, ...] = (
    "experience",
    "location",
    "activity",
    "cultural",
    "growth",
    "food",
    "fitness",
    "education",
    "lifestyle",
)
PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "urgent")
DIFFICULTIES: tuple[str, ...] = ("easy", "medium", "hard", "expert")
TONES: tuple[str, ...] = ("warm", "analytical", "poetic", "encouraging", "philosophical")
FOCUSES: tuple[str, ...] = ("technical", "emotional", "creative", "growth", "storytelling")
PERSONAS: tuple[str, ...] = ("friend", "mentor", "peer", "admirer", "philosopher")
COMMENT_LENGTHS: tuple[str, ...] = ("short", "medium", "long")

PRIORITY_RANK: dict[str, int] = {"urgent": 4, "high": 3, "medium": 2, "low": 1}


def _unit(default: float = 0.5) -> Any:
    return Field(default=default, ge=0.0, le=1.0)


def _score(default: int = 50) -> Any:
    return Field(default=default, ge=0, le=100)


# =============================================================================
# Emotion
# =============================================================================


class EmotionScores(BaseModel):
    """Emotional tone intensities, each in [0, 1]."""

    joy: float = _unit()
    peace: float = _unit()
    excitement: float = _unit()
    melancholy: float = _unit()
    nostalgia: float = _unit()
    curiosity: float = _unit()
    stress: float = _unit()


class InterestScores(BaseModel):
    """Interest strengths per theme, each in [0, 1]."""

    nature: float = _unit()
    urban: float = _unit()
    art: float = _unit()
    food: float = _unit()
    people: float = _unit()
    travel: float = _unit()
    culture: float = _unit()
    technology: float = _unit()


class PatternPreferences(BaseModel):
    """Categorical behavior preferences."""

    time_preference: TimePreference = "mixed"
    season_preference: SeasonPreference = "mixed"
    location_preference: LocationPreference = "mixed"
    social_preference: SocialPreference = "mixed"


class EmotionProfile(BaseModel):
    """Emotional state and taste profile.

    Attributes:
        emotions: Emotional tone intensities.
        interests: Interest strengths.
        patterns: Time/season/location/social preferences.
        summary: Short prose summary.
        confidence: Analysis confidence in [0, 1].
    """

    emotions: EmotionScores = Field(default_factory=EmotionScores)
    interests: InterestScores = Field(default_factory=InterestScores)
    patterns: PatternPreferences = Field(default_factory=PatternPreferences)
    summary: str = ""
    confidence: float = _unit(0.5)


# =============================================================================
# Lifestyle
# =============================================================================


class SeasonalActivity(BaseModel):
    """Relative activity per season, each in [0, 1]."""

    spring: float = _unit()
    summer: float = _unit()
    autumn: float = _unit()
    winter: float = _unit()


class LifestyleProfile(BaseModel):
    """Daily rhythm and activity pattern.

    Attributes:
        active_hours: Up to three most active hours (0-23).
        weekday_pattern: Activity per weekday Monday..Sunday (0-10 each).
        weekend_pattern: Saturday and Sunday activity (0-10 each).
        post_frequency: Posts per week.
        travel_radius_km: Typical travel radius.
        favorite_locations: Frequently visited kinds of places.
        activity_level: Overall activity level.
        seasonal: Activity per season.
        weather_preferences: Preferred weather for outings.
        summary: Short prose summary.
        confidence: Analysis confidence in [0, 1].
    """

    active_hours: list[int] = Field(default_factory=lambda: [9, 15, 20], max_length=3)
    weekday_pattern: list[int] = Field(
        default_factory=lambda: [5, 6, 6, 6, 6, 8, 7], min_length=7, max_length=7
    )
    weekend_pattern: list[int] = Field(default_factory=lambda: [8, 7], min_length=2, max_length=2)
    post_frequency: float = Field(default=2.0, ge=0.0, le=50.0)
    travel_radius_km: float = Field(default=10.0, ge=0.0, le=1000.0)
    favorite_locations: list[str] = Field(default_factory=list)
    activity_level: ActivityLevel = "medium"
    seasonal: SeasonalActivity = Field(default_factory=SeasonalActivity)
    weather_preferences: list[str] = Field(default_factory=list)
    summary: str = ""
    confidence: float = _unit(0.6)

    @field_validator("active_hours")
    @classmethod
    def check_hours(cls, v: list[int]) -> list[int]:
        for hour in v:
            if not 0 <= hour <= 23:
                raise ValueError(f"active hour out of range: {hour}")
        return v

    @field_validator("weekday_pattern", "weekend_pattern")
    @classmethod
    def check_pattern(cls, v: list[int]) -> list[int]:
        for value in v:
            if not 0 <= value <= 10:
                raise ValueError(f"activity pattern value out of range: {value}")
        return v


# =============================================================================
# Growth
# =============================================================================


class Milestone(BaseModel):
    """A growth milestone reached by the user."""

    kind: Literal["start", "technical", "artistic", "consistency", "diversity", "confidence"]
    title: str
    description: str = ""
    achieved_at: datetime | None = None


class GrowthProfile(BaseModel):
    """Growth trajectory across skills, diversity and emotional growth.

    All scores are integers in [0, 100].
    """

    technical: int = _score()
    artistic: int = _score()
    consistency: int = _score()
    improvement: int = _score()
    location_diversity: int = _score()
    time_diversity: int = _score()
    subject_diversity: int = _score()
    style_diversity: int = _score()
    positivity: int = _score()
    openness: int = _score()
    self_confidence: int = _score()
    social: int = _score()
    strengths: list[str] = Field(default_factory=list)
    next_challenges: list[str] = Field(default_factory=list)
    summary: str = ""
    milestones: list[Milestone] = Field(default_factory=list)
    confidence: float = _unit(0.7)

    def skill_scores(self) -> dict[str, int]:
        return {
            "technical": self.technical,
            "artistic": self.artistic,
            "consistency": self.consistency,
            "improvement": self.improvement,
        }

    def diversity_average(self) -> float:
        values = [
            self.location_diversity,
            self.time_diversity,
            self.subject_diversity,
            self.style_diversity,
        ]
        return sum(values) / len(values)

    def weakest_area(self) -> str:
        scores = self.skill_scores()
        return min(scores, key=scores.__getitem__)

    def strongest_area(self) -> str:
        scores = self.skill_scores()
        return max(scores, key=scores.__getitem__)


class GrowthSnapshot(BaseModel):
    """Point-in-time record of growth scores kept in the bundle history."""

    recorded_at: datetime
    technical: int = _score()
    artistic: int = _score()
    consistency: int = _score()
    improvement: int = _score()

    @classmethod
    def from_profile(cls, profile: GrowthProfile, recorded_at: datetime) -> "GrowthSnapshot":
        return cls(recorded_at=recorded_at, **profile.skill_scores())


# =============================================================================
# Creative
# =============================================================================


class CreativeProfile(BaseModel):
    """Photo-creative profile derived from quality scores and image descriptors."""

    creative_personality: str = ""
    aesthetic_profile: str = ""
    technical_growth: str = ""
    composition_style: str = ""
    color_sensitivity: str = ""
    subject_psychology: str = ""
    unique_strength: str = ""
    next_evolution: str = ""
    inspiration_patterns: str = ""
    creativity_score: int = _score()
    progression: TrendLabel = TrendLabel.UNDETERMINED
    confidence: float = _unit(0.7)


# =============================================================================
# Personality
# =============================================================================


class PersonalityProfile(BaseModel):
    """Deep personality synthesis merged from all prior domains."""

    personality_type: str = ""
    description: str = ""
    strengths: list[str] = Field(default_factory=list)
    hidden_desires: list[str] = Field(default_factory=list)
    archetype: str = ""
    evolution_stage: str = ""
    dominant_emotions: list[str] = Field(default_factory=list)
    emotional_range: int = _score()
    expression_style: str = ""
    connection_style: str = ""
    current_phase: str = ""
    next_level_unlock: str = ""
    personal_mythology: str = ""
    confidence: float = _unit(0.6)


# =============================================================================
# Suggestions
# =============================================================================


class Suggestion(BaseModel):
    """A single personalized suggestion."""

    title: str
    description: str = ""
    reasoning: str = ""
    action: str = ""
    duration: str = ""
    category: SuggestionCategory = "experience"
    priority: Priority = "medium"
    engagement: float = _unit(0.7)
    difficulty: Difficulty = "medium"
    target_area: str = ""

    def rank_key(self) -> tuple[int, float]:
        """Sort key: higher priority first, then higher engagement."""
        return (PRIORITY_RANK[self.priority], self.engagement)


class SuggestionSet(BaseModel):
    """Ranked suggestions for the user."""

    suggestions: list[Suggestion] = Field(default_factory=list)
    confidence: float = _unit(0.6)

    def ranked(self, limit: int | None = None) -> "SuggestionSet":
        """Return a copy sorted by priority then engagement, optionally truncated."""
        ordered = sorted(self.suggestions, key=lambda s: s.rank_key(), reverse=True)
        if limit is not None:
            ordered = ordered[:limit]
        return SuggestionSet(suggestions=ordered, confidence=self.confidence)


# =============================================================================
# Cultural Context
# =============================================================================


class CulturalContext(BaseModel):
    """Music and art recommendations derived from the emotion profile."""

    music_genres: list[str] = Field(default_factory=list)
    music_mood: MusicMood = "balanced"
    music_recommendations: list[str] = Field(default_factory=list)
    art_styles: list[str] = Field(default_factory=list)
    venue_types: list[str] = Field(default_factory=list)
    confidence: float = _unit(0.6)


# =============================================================================
# Dynamic Comments
# =============================================================================


class CommentStyle(BaseModel):
    """Stylistic tuple assigned to one dynamic comment."""

    tone: Tone
    focus: Focus
    persona: Persona
    length: CommentLength = "medium"

    def key(self) -> tuple[str, str, str]:
        """Identity of the style for de-duplication (length excluded)."""
        return (self.tone, self.focus, self.persona)


class DynamicComment(BaseModel):
    """A stylistic text variation about the user's latest content item."""

    style: CommentStyle
    main: str = ""
    insight: str = ""
    suggestion: str = ""
    hidden_message: str = ""
    confidence: float = _unit(0.6)


DomainProfile = Union[
    EmotionProfile,
    LifestyleProfile,
    GrowthProfile,
    CreativeProfile,
    CulturalContext,
    SuggestionSet,
    PersonalityProfile,
]

PROFILE_TYPES: dict[Domain, type[BaseModel]] = {
    Domain.EMOTION: EmotionProfile,
    Domain.LIFESTYLE: LifestyleProfile,
    Domain.GROWTH: GrowthProfile,
    Domain.CREATIVE: CreativeProfile,
    Domain.CULTURAL: CulturalContext,
    Domain.SUGGESTIONS: SuggestionSet,
    Domain.PERSONALITY: PersonalityProfile,
}
