"""Fallback Synthesizer: Local Profiles When the Model Path Fails.

This module produces plausible, low-confidence domain profiles without any
model call. The orchestrator uses it in two situations:

- The model client is not available (no key, AI disabled): the result is
  wrapped as ``-mock`` and counts as a success.
- The model call or its parsing failed: the result is wrapped as
  ``-fallback`` with the error text on the envelope.

Everything synthesized here goes through the same pydantic models as parser
output, so a fallback value can never leave its declared range. Randomness
comes only from the injected ``random.Random``; seed it for reproducible
output.

What fallback DOES use:
- The feature summary's trend (creative progression)
- Peak posting hours and the weekday histogram (lifestyle)
- The emotion profile (cultural context)

What fallback does NOT provide:
- Anything personal drawn from the user's own words
- Confidence of 0.5 or more

Example:
    >>> import random
    >>> from curator.ai.fallback import FallbackSynthesizer
    >>> synthesizer = FallbackSynthesizer(random.Random(7))
    >>> profile = synthesizer.synthesize(Domain.EMOTION)
    >>> profile.confidence < 0.5
    True
"""

from __future__ import annotations

import logging
import random
from typing import Callable

from curator.core.content import ContentItem
from curator.core.profiles import (
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
    Milestone,
    PatternPreferences,
    PersonalityProfile,
    SeasonalActivity,
    Suggestion,
    SuggestionSet,
)
from curator.core.summary import FeatureSummary, TrendLabel

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MIN_CONFIDENCE = 0.1
CONFIDENCE_SPREAD = 0.4

# (low, high) ranges; anything not listed uses BASE_RANGE
BASE_RANGE = (0.3, 0.7)
EMOTION_RANGES: dict[str, tuple[float, float]] = {
    "melancholy": (0.0, 0.4),
    "nostalgia": (0.0, 0.5),
    "curiosity": (0.5, 0.8),
    "stress": (0.0, 0.3),
}
INTEREST_RANGES: dict[str, tuple[float, float]] = {
    "technology": (0.0, 0.6),
}

# (base, spread) per growth score
GROWTH_RANGES: dict[str, tuple[int, int]] = {
    "technical": (65, 20),
    "artistic": (58, 25),
    "consistency": (72, 15),
    "improvement": (45, 30),
    "location_diversity": (60, 25),
    "time_diversity": (55, 20),
    "subject_diversity": (68, 20),
    "style_diversity": (52, 25),
    "positivity": (70, 20),
    "openness": (75, 15),
    "self_confidence": (62, 25),
    "social": (58, 20),
}

MUSIC_BY_MOOD: dict[str, list[str]] = {
    "energetic": ["Electronic", "Pop", "Rock"],
    "peaceful": ["Ambient", "Classical", "Jazz"],
    "contemplative": ["Indie", "Folk", "Alternative"],
    "balanced": ["Indie Pop", "Alternative", "Folk"],
}

VENUES_BY_MOOD: dict[str, list[str]] = {
    "energetic": ["live house", "festival grounds", "dance studio"],
    "peaceful": ["botanical garden", "quiet gallery", "concert hall"],
    "contemplative": ["independent bookstore", "small gallery", "acoustic bar"],
    "balanced": ["museum", "record shop", "neighborhood cafe"],
}

DEFAULT_ART_STYLES = ["contemporary art", "photography", "painting"]

FAVORITE_LOCATIONS = ["park", "cafe", "museum", "riverside", "old town", "library"]
WEATHER_OPTIONS = ["sunny", "cloudy", "after rain", "light snow", "misty morning"]

PERSONALITY_TYPES = [
    ("Quiet Observer", "Finds beauty in ordinary moments and notices small details."),
    ("Gentle Explorer", "Drawn to new places but prefers to take them in slowly."),
    ("Everyday Storyteller", "Turns daily scenes into small narratives."),
]
ARCHETYPES = ["The Wanderer", "The Sage", "The Creator", "The Seeker"]

FALLBACK_SUGGESTIONS: list[dict[str, str]] = [
    {
        "title": "Golden hour walk",
        "description": "Take a short walk an hour before sunset and photograph backlit scenes.",
        "reasoning": "Soft directional light is an easy way to practice with contrast.",
        "action": "Pick a nearby park and shoot three frames as the light changes.",
        "duration": "60 minutes",
        "category": "growth",
        "target_area": "technical",
    },
    {
        "title": "Three-element minimalism",
        "description": "Compose one photo a day using no more than three elements.",
        "reasoning": "Reducing clutter strengthens composition and intent.",
        "action": "Shoot one minimal frame each day and compare them at the end of the week.",
        "duration": "1 week",
        "category": "activity",
        "target_area": "artistic",
    },
    {
        "title": "Visit a small gallery",
        "description": "Spend an afternoon at a gallery you have never been to.",
        "reasoning": "New visual references widen your sense of style.",
        "action": "Note two works whose color or framing you want to try yourself.",
        "duration": "2 hours",
        "category": "cultural",
        "target_area": "style_diversity",
    },
    {
        "title": "Join a photo walk",
        "description": "Share a route with other photographers and compare results.",
        "reasoning": "Seeing other viewpoints of the same place is a quick way to learn.",
        "action": "Find a local photo walk or online challenge and take part once.",
        "duration": "half a day",
        "category": "experience",
        "target_area": "social",
    },
]


# =============================================================================
# Synthesizer
# =============================================================================


class FallbackSynthesizer:
    """Build domain profiles locally from a random source.

    Output satisfies the same validators as parsed model output and always
    carries a confidence in [0.1, 0.5).

    Attributes:
        rng: Random source used for every synthesized value.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()
        self._builders: dict[Domain, Callable[..., DomainProfile]] = {
            Domain.EMOTION: self._emotion,
            Domain.LIFESTYLE: self._lifestyle,
            Domain.GROWTH: self._growth,
            Domain.CREATIVE: self._creative,
            Domain.CULTURAL: self._cultural,
            Domain.SUGGESTIONS: self._suggestions,
            Domain.PERSONALITY: self._personality,
        }

    def synthesize(
        self,
        domain: Domain,
        *,
        emotion: EmotionProfile | None = None,
        summary: FeatureSummary | None = None,
    ) -> DomainProfile:
        """Synthesize a profile for one domain.

        Args:
            domain: Which profile to build.
            emotion: Emotion profile to derive the cultural context from.
            summary: Feature summary providing trend and activity hints.

        Returns:
            A range-valid profile with low confidence.
        """
        logger.debug(f"Synthesizing fallback profile for {domain.value}")
        return self._builders[domain](emotion=emotion, summary=summary)

    def synthesize_comment(
        self,
        style: CommentStyle,
        item: ContentItem | None = None,
        personality: PersonalityProfile | None = None,
    ) -> DynamicComment:
        """Build a generic comment in the requested style."""
        subject = ""
        if item is not None:
            subject = item.title or item.subject_text()
        subject = subject or "this moment"

        openers = {
            "warm": f"There is a lovely calm in {subject}.",
            "analytical": f"The framing of {subject} keeps the eye on the main subject.",
            "poetic": f"{subject.capitalize()} reads like a quiet line of verse.",
            "encouraging": f"{subject.capitalize()} shows real progress, keep going.",
            "philosophical": f"{subject.capitalize()} asks what makes an ordinary moment worth keeping.",
        }
        insight = {
            "technical": "The light is handled with care.",
            "emotional": "The mood comes through without being forced.",
            "creative": "The viewpoint feels like your own.",
            "growth": "Compared with earlier posts, the choices feel more deliberate.",
            "storytelling": "It hints at a story just outside the frame.",
        }[style.focus]
        hidden = ""
        if personality is not None and personality.next_level_unlock:
            hidden = personality.next_level_unlock

        return DynamicComment(
            style=style,
            main=openers[style.tone],
            insight=insight,
            suggestion="Try the same scene at a different time of day.",
            hidden_message=hidden,
            confidence=self._confidence(),
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _confidence(self) -> float:
        return MIN_CONFIDENCE + self.rng.random() * CONFIDENCE_SPREAD

    def _uniform(self, bounds: tuple[float, float]) -> float:
        low, high = bounds
        return round(low + self.rng.random() * (high - low), 3)

    def _score(self, name: str) -> int:
        base, spread = GROWTH_RANGES[name]
        return min(100, base + self.rng.randrange(spread))

    def _sample(self, options: list[str], count: int) -> list[str]:
        return self.rng.sample(options, min(count, len(options)))

    # -------------------------------------------------------------------------
    # Domain builders
    # -------------------------------------------------------------------------

    def _emotion(self, **_: object) -> EmotionProfile:
        emotions = {
            name: self._uniform(EMOTION_RANGES.get(name, BASE_RANGE))
            for name in EmotionScores.model_fields
        }
        interests = {
            name: self._uniform(INTEREST_RANGES.get(name, BASE_RANGE))
            for name in InterestScores.model_fields
        }
        return EmotionProfile(
            emotions=EmotionScores(**emotions),
            interests=InterestScores(**interests),
            patterns=PatternPreferences(),
            summary="A curious and steady outlook with a taste for everyday scenes.",
            confidence=self._confidence(),
        )

    def _lifestyle(self, summary: FeatureSummary | None = None, **_: object) -> LifestyleProfile:
        profile = LifestyleProfile(
            post_frequency=round(1.5 + self.rng.random() * 2.0, 1),
            travel_radius_km=float(8 + self.rng.randrange(10)),
            favorite_locations=self._sample(FAVORITE_LOCATIONS, 3),
            activity_level="medium",
            seasonal=SeasonalActivity(spring=0.8, summer=0.9, autumn=0.7, winter=0.5),
            weather_preferences=self._sample(WEATHER_OPTIONS, 3),
            summary="A steady routine with outings concentrated on weekends.",
            confidence=self._confidence(),
        )
        if summary is None or not summary.is_sufficient:
            return profile

        peak = summary.peak_hours()
        if peak:
            profile.active_hours = peak
        busiest = max(summary.weekday_histogram)
        if busiest > 0:
            weekday = [round(count * 10 / busiest) for count in summary.weekday_histogram]
            profile.weekday_pattern = weekday
            profile.weekend_pattern = weekday[5:7]
        return profile

    def _growth(self, **_: object) -> GrowthProfile:
        scores = {name: self._score(name) for name in GROWTH_RANGES}
        profile = GrowthProfile(
            **scores,
            summary="Growth tracking has started; scores settle as more posts arrive.",
            milestones=[
                Milestone(
                    kind="start",
                    title="Growth tracking started",
                    description="Your growth journey is now being tracked.",
                )
            ],
            confidence=self._confidence(),
        )
        profile.strengths = [profile.strongest_area()]
        profile.next_challenges = [f"Focus on {profile.weakest_area()}"]
        return profile

    def _creative(self, summary: FeatureSummary | None = None, **_: object) -> CreativeProfile:
        trend = summary.trend if summary is not None else TrendLabel.UNDETERMINED
        return CreativeProfile(
            creative_personality="An observer who finds beauty in everyday scenes.",
            aesthetic_profile="Natural light and calm, uncluttered frames.",
            technical_growth="Moving from safe compositions toward bolder viewpoints.",
            composition_style="Rule of thirds with the subject slightly off center.",
            color_sensitivity="Responds to warm tones and evening light.",
            subject_psychology="Prefers places and still life to posed portraits.",
            unique_strength="Poetic use of light and shadow.",
            next_evolution="Try macro or street snapshots.",
            inspiration_patterns="Chance discoveries on walks.",
            creativity_score=55 + self.rng.randrange(20),
            progression=trend,
            confidence=self._confidence(),
        )

    def _cultural(self, emotion: EmotionProfile | None = None, **_: object) -> CulturalContext:
        mood = "balanced"
        art_styles = list(DEFAULT_ART_STYLES)
        if emotion is not None:
            scores = emotion.emotions
            if scores.excitement > 0.7:
                mood = "energetic"
            elif scores.peace > 0.7:
                mood = "peaceful"
            elif scores.melancholy > 0.6:
                mood = "contemplative"
            art_styles = art_styles_for(scores)

        genres = list(MUSIC_BY_MOOD[mood])
        return CulturalContext(
            music_genres=genres,
            music_mood=mood,
            music_recommendations=[f"A {genre.lower()} playlist for your next walk" for genre in genres[:2]],
            art_styles=art_styles,
            venue_types=list(VENUES_BY_MOOD[mood]),
            confidence=self._confidence(),
        )

    def _suggestions(self, **_: object) -> SuggestionSet:
        picked = self._sample(list(range(len(FALLBACK_SUGGESTIONS))), 3)
        suggestions = [
            Suggestion(
                **FALLBACK_SUGGESTIONS[index],
                priority="medium",
                engagement=round(0.5 + self.rng.random() * 0.3, 2),
                difficulty="easy",
            )
            for index in sorted(picked)
        ]
        return SuggestionSet(suggestions=suggestions, confidence=self._confidence())

    def _personality(self, **_: object) -> PersonalityProfile:
        personality_type, description = self.rng.choice(PERSONALITY_TYPES)
        return PersonalityProfile(
            personality_type=personality_type,
            description=description,
            strengths=["observation", "patience"],
            hidden_desires=["to share quiet moments with others"],
            archetype=self.rng.choice(ARCHETYPES),
            evolution_stage="exploring",
            dominant_emotions=["curiosity", "peace"],
            emotional_range=50 + self.rng.randrange(20),
            expression_style="understated",
            connection_style="a few close connections",
            current_phase="building a personal style",
            next_level_unlock="Share a small series instead of single shots.",
            personal_mythology="A collector of ordinary light.",
            confidence=self._confidence(),
        )


def art_styles_for(emotions: EmotionScores) -> list[str]:
    """Map emotion intensities onto art styles, strongest signals first."""
    styles: list[str] = []
    if emotions.peace > 0.6:
        styles += ["minimalism", "watercolor", "landscape"]
    if emotions.excitement > 0.6:
        styles += ["pop art", "contemporary", "abstract"]
    if emotions.melancholy > 0.5:
        styles += ["impressionism", "romanticism", "realism"]
    if emotions.curiosity > 0.7:
        styles += ["surrealism", "avant-garde", "installation"]
    if emotions.nostalgia > 0.6:
        styles += ["classical", "traditional crafts"]
    return styles or list(DEFAULT_ART_STYLES)
