"""Central Pytest Fixtures for the Personal Curator.

This module provides reusable test data, fake model clients and isolated
configuration across all test modules.

Fixtures included:
- Core data: sample_items, flower_item
- Configuration: app_config (isolated config dir, fixed seed)
- Model fakes: fake_client, unavailable_client
- Storage: memory_cache, file_cache
"""

import logging
import os
import random
import threading
from datetime import datetime, timedelta, timezone

import pytest

from curator.ai.client import AITransportError
from curator.ai.fallback import FallbackSynthesizer
from curator.config import AIConfig, AnalysisConfig, AppConfig, PathsConfig, reset_config
from curator.core.content import ContentItem, ImageFeatures, QualityScore
from curator.storage.cache import FileKeyValueStore, InMemoryKeyValueStore, ResultCache

# =============================================================================
# Helper Functions
# =============================================================================

BASE_TIME = datetime(2024, 4, 1, 9, 0, tzinfo=timezone.utc)


def make_item(
    index: int,
    score: int | None = 60,
    subject: str = "",
    mood: str = "",
    title: str | None = None,
    tags: list[str] | None = None,
    created_at: datetime | None = None,
) -> ContentItem:
    """Build a content item with uniform sub-scores.

    Args:
        index: Used for the id, default title and default timestamp (days).
        score: Value for all four sub-scores, or None for an unscored item.
        subject: Main subject descriptor.
        mood: Mood descriptor.
        title: Post title (defaults to "Post <index>").
        tags: Tag list.
        created_at: Timestamp (defaults to BASE_TIME + index days).

    Returns:
        The content item.
    """
    quality = None
    if score is not None:
        features = ImageFeatures(main_subject=subject, mood=mood) if subject or mood else None
        quality = QualityScore(
            technical=score,
            composition=score,
            creativity=score,
            engagement=score,
            image_features=features,
        )
    return ContentItem(
        id=f"item-{index}",
        title=f"Post {index}" if title is None else title,
        tags=tags or [],
        created_at=created_at or BASE_TIME + timedelta(days=index),
        quality=quality,
    )


# Canned model answers, one per prompt kind
MODEL_RESPONSES = {
    "emotion": """
JOY: 0.8
PEACE: 0.75
EXCITEMENT: 0.4
MELANCHOLY: 0.1
NOSTALGIA: 0.3
CURIOSITY: 0.9
STRESS: 0.2
NATURE: 0.9
URBAN: 0.3
ART: 0.6
FOOD: 0.5
PEOPLE: 0.2
TRAVEL: 0.7
CULTURE: 0.6
TECHNOLOGY: 0.1
TIME_PREF: Morning
SEASON_PREF: spring
LOCATION_PREF: outdoor
SOCIAL_PREF: solo
CONFIDENCE: 0.85
SUMMARY: Calm and curious, happiest outdoors in the morning.
""",
    "lifestyle": """
ACTIVE_HOURS: 7, 12, 18
WEEKDAY_PATTERN: 3, 4, 4, 5, 6, 9, 8
WEEKEND_PATTERN: 9, 8
POST_FREQUENCY: 3.5
TRAVEL_RADIUS: 15
FAVORITE_LOCATIONS: [park, riverside, cafe]
ACTIVITY_LEVEL: high
SEASONAL_SPRING: 0.9
SEASONAL_SUMMER: 0.8
SEASONAL_AUTUMN: 0.7
SEASONAL_WINTER: 0.4
WEATHER_PREFS: sunny, misty morning
CONFIDENCE: 0.8
LIFESTYLE_SUMMARY: Early riser who walks before work.
""",
    "growth": """
TECHNICAL: 85
ARTISTIC: 70
CONSISTENCY: 88
IMPROVEMENT: 72
LOCATION: 60
TIME: 55
SUBJECT: 66
STYLE: 58
POSITIVITY: 80
OPENNESS: 77
SELF_CONFIDENCE: 65
SOCIAL: 50
GROWTH_SUMMARY: Technique is sharpening quickly.
STRENGTHS: light, patience
NEXT_CHALLENGES: portraits, night shots
CONFIDENCE_LEVEL: 0.9
""",
    "creative": """
CREATIVE_PERSONALITY: A patient observer of small things.
AESTHETIC_PROFILE: Soft light, muted greens.
TECHNICAL_GROWTH: Steadier exposure.
COMPOSITION_STYLE: Off-center subjects.
COLOR_SENSITIVITY: Warm evening tones.
SUBJECT_PSYCHOLOGY: Prefers flowers to people.
UNIQUE_STRENGTH: Backlit petals.
NEXT_EVOLUTION: Macro work.
INSPIRATION_PATTERNS: Morning walks.
CREATIVITY_SCORE: 78
CONFIDENCE_LEVEL: 0.8
""",
    "cultural": """
MUSIC_GENRES: [Ambient, Classical, Jazz]
MUSIC_MOOD: peaceful
MUSIC_RECOMMENDATIONS: Nils Frahm, Erik Satie
ART_STYLES: watercolor, landscape, minimalism
VENUE_TYPES: botanical garden, small gallery
CONFIDENCE: 0.7
""",
    "suggestions": """
SUGGESTION_1
TITLE: Sunrise at the rose garden
PRIORITY: medium
ENGAGEMENT: 0.9
TYPE: experience
SUGGESTION_2
TITLE: Macro lens afternoon
PRIORITY: urgent
ENGAGEMENT: 0.6
TYPE: growth
DIFFICULTY: hard
SUGGESTION_3
TITLE: Join a photo walk
PRIORITY: high
ENGAGEMENT: 0.8
TYPE: activity
CONFIDENCE: 0.75
""",
    "personality": """
PERSONALITY_TYPE: Quiet Observer
DESCRIPTION: Notices what others walk past.
STRENGTHS: patience, attention
HIDDEN_DESIRES: to exhibit one day
ARCHETYPE: The Sage
EVOLUTION_STAGE: exploring
DOMINANT_EMOTIONS: curiosity, peace
EMOTIONAL_RANGE: 64
EXPRESSION_STYLE: understated
CONNECTION_STYLE: one-to-one
CURRENT_PHASE: building a style
NEXT_LEVEL_UNLOCK: Share a series.
PERSONAL_MYTHOLOGY: A collector of morning light.
CONFIDENCE: 0.8
""",
    "comment": """
MAIN: The petals glow against the dark hedge.
INSIGHT: You wait for the light.
SUGGESTION: Try the same flower at dusk.
HIDDEN_MESSAGE: Keep going.
CONFIDENCE: 0.7
""",
}

# Schema keys that only appear in one prompt kind
PROMPT_MARKERS = (
    ("HIDDEN_MESSAGE:", "comment"),
    ("PERSONALITY_TYPE:", "personality"),
    ("SUGGESTION_<n>", "suggestions"),
    ("MUSIC_MOOD:", "cultural"),
    ("CREATIVITY_SCORE:", "creative"),
    ("SELF_CONFIDENCE:", "growth"),
    ("ACTIVE_HOURS:", "lifestyle"),
    ("SOCIAL_PREF:", "emotion"),
)


def prompt_kind(prompt: str) -> str:
    """Identify which analysis a prompt was built for."""
    for marker, kind in PROMPT_MARKERS:
        if marker in prompt:
            return kind
    raise AssertionError("Unrecognized prompt")


class FakeModelClient:
    """In-process GenerativeModelClient returning canned answers.

    Attributes:
        available: Value reported by is_available().
        failures: Prompt kinds whose invoke() raises AITransportError.
        responses: Canned answer per prompt kind.
        calls: Prompt kinds in the order they were invoked.
        prompts: Prompt texts in the order they were invoked.
    """

    def __init__(self, available=True, failures=(), responses=None):
        self.available = available
        self.failures = set(failures)
        self.responses = dict(MODEL_RESPONSES)
        if responses:
            self.responses.update(responses)
        self.calls = []
        self.prompts = []
        self._lock = threading.Lock()

    def is_available(self):
        return self.available

    def invoke(self, prompt):
        kind = prompt_kind(prompt)
        with self._lock:
            self.calls.append(kind)
            self.prompts.append(prompt)
        if kind in self.failures:
            raise AITransportError(f"{kind} transport failure")
        return self.responses[kind]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep real keys and CURATOR_* variables out of every test."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    for name in [n for n in os.environ if n.startswith("CURATOR_")]:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo handlers installed by setup_logging during a test."""
    package_logger = logging.getLogger("curator")
    handlers = package_logger.handlers[:]
    level, propagate = package_logger.level, package_logger.propagate
    yield
    for handler in package_logger.handlers:
        if handler not in handlers:
            handler.close()
    package_logger.handlers = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate


@pytest.fixture
def sample_items():
    """Nine scored posts with rising quality, flower subjects and tags."""
    scores = [50, 50, 50, 55, 55, 55, 68, 68, 68]
    subjects = ["赤い花と青空", "flower garden", "old bridge", "花", "flower bed",
                "river bank", "花", "flower macro", "morning river"]
    return [
        make_item(
            i,
            score=score,
            subject=subjects[i],
            mood="calm, bright",
            title="花" if i == 8 else f"Walk {i}",
            tags=["flowers", "walk"] if i % 2 == 0 else ["walk"],
        )
        for i, score in enumerate(scores)
    ]


@pytest.fixture
def flower_item():
    return make_item(0, score=80, subject="花", mood="gentle", title="花")


@pytest.fixture
def app_config(tmp_path):
    """Configuration with an isolated config dir and a fixed seed."""
    return AppConfig(
        ai=AIConfig(timeout_seconds=5, max_retries=0, retry_base_delay=0.0),
        analysis=AnalysisConfig(random_seed=7, comment_count=3),
        paths=PathsConfig(config_dir=tmp_path / "curator"),
    )


@pytest.fixture
def fake_client():
    return FakeModelClient()


@pytest.fixture
def unavailable_client():
    return FakeModelClient(available=False)


@pytest.fixture
def synthesizer():
    return FallbackSynthesizer(random.Random(42))


@pytest.fixture
def memory_cache():
    return ResultCache(InMemoryKeyValueStore())


@pytest.fixture
def file_cache(tmp_path):
    return ResultCache(FileKeyValueStore(tmp_path / "cache"))
