"""Centralized prompt templates for the Personal Curator.

This module is the SINGLE SOURCE of all prompts sent to the model. Every
domain has a registered ``PromptTemplate`` with a system instruction, a
``string.Template`` user prompt and a line-format output schema.

Design Principles:
- Line-format outputs: every template asks for ``KEY: value`` lines the
  ResponseParser can read without a JSON parser
- Explicit ranges: every numeric key states its range, every categorical
  key its allowed values
- The user's own words: recent titles and subjects are embedded verbatim

Example:
    >>> from curator.ai.prompts import build_prompt
    >>> prompt = build_prompt(Domain.EMOTION, summary, ["花", "Evening tram"])
    >>> "花" in prompt
    True
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass, field
from enum import Enum
from string import Template
from typing import Any, Sequence

from curator.core.content import ContentItem
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
    Domain,
    EmotionProfile,
    GrowthProfile,
    LifestyleProfile,
    PersonalityProfile,
)
from curator.core.summary import FeatureSummary

NOT_AVAILABLE = "Not available."


# =============================================================================
# Enums
# =============================================================================


class PromptCategory(str, Enum):
    """Categories of prompts, one per analysis domain plus comments."""

    EMOTION = "emotion"
    LIFESTYLE = "lifestyle"
    GROWTH = "growth"
    CREATIVE = "creative"
    CULTURAL = "cultural"
    SUGGESTIONS = "suggestions"
    PERSONALITY = "personality"
    COMMENT = "comment"


# =============================================================================
# Data Structures
# =============================================================================


@dataclass
class PromptTemplate:
    """Metadata and content for a prompt template.

    Attributes:
        id: Unique identifier (e.g. "emotion_v1").
        category: Which analysis the prompt serves.
        version: Version string for tracking wording changes.
        system_instruction: Role and behavior instructions for the model.
        user_prompt_template: ``string.Template`` text with ``$placeholders``.
        output_schema: Ordered ``KEY -> type/range`` description.
        required_variables: Variables that must be provided to ``render``.
        description: What the prompt is for.
    """

    id: str
    category: PromptCategory
    version: str
    system_instruction: str
    user_prompt_template: str
    output_schema: dict[str, str] = field(default_factory=dict)
    required_variables: set[str] = field(default_factory=set)
    description: str = ""

    def render(self, **variables: Any) -> tuple[str, str]:
        """Render the template.

        Returns:
            Tuple of (system_instruction, rendered_user_prompt).

        Raises:
            ValueError: If required variables are missing.
        """
        missing = self.validate_variables(variables)
        if missing:
            raise ValueError(f"Missing required variables for prompt '{self.id}': {missing}")

        if "output_schema" not in variables:
            variables["output_schema"] = render_output_schema(self.output_schema)

        rendered = Template(self.user_prompt_template).safe_substitute(variables)
        return self.system_instruction, rendered

    def validate_variables(self, variables: dict[str, Any]) -> list[str]:
        return sorted(self.required_variables - set(variables))


# =============================================================================
# System Instructions
# =============================================================================


CURATOR_SYSTEM = textwrap.dedent(
    """
    You are a thoughtful personal curator who studies a person's photo posts
    to understand their mood, habits and creative growth. You are warm but
    precise, you never invent facts that the data does not support, and you
    refer to the person's own words when they are given.

    Answer ONLY with lines of the form KEY: value, one key per line, using
    exactly the keys listed in the output format. Respect every stated range
    and list of allowed values. Do not use markdown or JSON.
"""
).strip()

COMMENT_SYSTEM = textwrap.dedent(
    """
    You write short personal comments about a person's latest photo post.
    Adopt the requested tone, focus and persona exactly. Be specific to the
    post, never generic.

    Answer ONLY with lines of the form KEY: value using the listed keys.
"""
).strip()


def _allowed(values: Sequence[str]) -> str:
    return "one of " + " | ".join(values)


# =============================================================================
# Output Schemas
# =============================================================================


UNIT = "float 0.0-1.0"
SCORE = "integer 0-100"

EMOTION_SCHEMA: dict[str, str] = {
    "JOY": UNIT,
    "PEACE": UNIT,
    "EXCITEMENT": UNIT,
    "MELANCHOLY": UNIT,
    "NOSTALGIA": UNIT,
    "CURIOSITY": UNIT,
    "STRESS": UNIT,
    "NATURE": UNIT,
    "URBAN": UNIT,
    "ART": UNIT,
    "FOOD": UNIT,
    "PEOPLE": UNIT,
    "TRAVEL": UNIT,
    "CULTURE": UNIT,
    "TECHNOLOGY": UNIT,
    "TIME_PREF": _allowed(TIME_PREFERENCES),
    "SEASON_PREF": _allowed(SEASON_PREFERENCES),
    "LOCATION_PREF": _allowed(LOCATION_PREFERENCES),
    "SOCIAL_PREF": _allowed(SOCIAL_PREFERENCES),
    "CONFIDENCE": UNIT,
    "SUMMARY": "text, 1-2 sentences",
}

LIFESTYLE_SCHEMA: dict[str, str] = {
    "ACTIVE_HOURS": "up to 3 integers 0-23, comma separated",
    "WEEKDAY_PATTERN": "7 integers 0-10 for Monday..Sunday, comma separated",
    "WEEKEND_PATTERN": "2 integers 0-10 for Saturday, Sunday, comma separated",
    "POST_FREQUENCY": "float 0-50 posts per week",
    "TRAVEL_RADIUS": "float 0-1000 kilometres",
    "FAVORITE_LOCATIONS": "comma separated list",
    "ACTIVITY_LEVEL": _allowed(ACTIVITY_LEVELS),
    "SEASONAL_SPRING": UNIT,
    "SEASONAL_SUMMER": UNIT,
    "SEASONAL_AUTUMN": UNIT,
    "SEASONAL_WINTER": UNIT,
    "WEATHER_PREFS": "comma separated list",
    "CONFIDENCE": UNIT,
    "LIFESTYLE_SUMMARY": "text, 1-2 sentences",
}

GROWTH_SCHEMA: dict[str, str] = {
    "TECHNICAL": SCORE,
    "ARTISTIC": SCORE,
    "CONSISTENCY": SCORE,
    "IMPROVEMENT": SCORE,
    "LOCATION": f"{SCORE} (location diversity)",
    "TIME": f"{SCORE} (time-of-day diversity)",
    "SUBJECT": f"{SCORE} (subject diversity)",
    "STYLE": f"{SCORE} (style diversity)",
    "POSITIVITY": SCORE,
    "OPENNESS": SCORE,
    "SELF_CONFIDENCE": SCORE,
    "SOCIAL": SCORE,
    "GROWTH_SUMMARY": "text, 1-2 sentences",
    "STRENGTHS": "comma separated list",
    "NEXT_CHALLENGES": "comma separated list",
    "CONFIDENCE_LEVEL": UNIT,
}

CREATIVE_SCHEMA: dict[str, str] = {
    "CREATIVE_PERSONALITY": "text",
    "AESTHETIC_PROFILE": "text",
    "TECHNICAL_GROWTH": "text",
    "COMPOSITION_STYLE": "text",
    "COLOR_SENSITIVITY": "text",
    "SUBJECT_PSYCHOLOGY": "text",
    "UNIQUE_STRENGTH": "text",
    "NEXT_EVOLUTION": "text",
    "INSPIRATION_PATTERNS": "text",
    "CREATIVITY_SCORE": SCORE,
    "CONFIDENCE_LEVEL": UNIT,
}

CULTURAL_SCHEMA: dict[str, str] = {
    "MUSIC_GENRES": "comma separated list of 3 genres",
    "MUSIC_MOOD": _allowed(MUSIC_MOODS),
    "MUSIC_RECOMMENDATIONS": "comma separated list of artists or pieces",
    "ART_STYLES": "comma separated list of 3 art styles",
    "VENUE_TYPES": "comma separated list of places to visit",
    "CONFIDENCE": UNIT,
}

SUGGESTION_BLOCK_SCHEMA: dict[str, str] = {
    "SUGGESTION_<n>": "header line that starts suggestion number n (1, 2, 3, ...)",
    "TITLE": "short title",
    "DESCRIPTION": "text",
    "REASONING": "text: why this fits the person",
    "ACTION": "text: the concrete first step",
    "DURATION": "text, e.g. 2 hours",
    "TYPE": _allowed(SUGGESTION_CATEGORIES),
    "PRIORITY": _allowed(PRIORITIES),
    "ENGAGEMENT": UNIT,
    "DIFFICULTY": _allowed(DIFFICULTIES),
    "TARGET_AREA": "text: which skill or habit it develops",
}

PERSONALITY_SCHEMA: dict[str, str] = {
    "PERSONALITY_TYPE": "short label",
    "DESCRIPTION": "text, 2-3 sentences",
    "STRENGTHS": "comma separated list",
    "HIDDEN_DESIRES": "comma separated list",
    "ARCHETYPE": "short label",
    "EVOLUTION_STAGE": "short label",
    "DOMINANT_EMOTIONS": "comma separated list",
    "EMOTIONAL_RANGE": SCORE,
    "EXPRESSION_STYLE": "text",
    "CONNECTION_STYLE": "text",
    "CURRENT_PHASE": "text",
    "NEXT_LEVEL_UNLOCK": "text",
    "PERSONAL_MYTHOLOGY": "text, one evocative sentence",
    "CONFIDENCE": UNIT,
}

COMMENT_SCHEMA: dict[str, str] = {
    "MAIN": "the comment itself",
    "INSIGHT": "one observation about the person",
    "SUGGESTION": "one gentle idea for the next post",
    "HIDDEN_MESSAGE": "one line of quiet encouragement",
    "CONFIDENCE": UNIT,
}

COMMENT_LENGTH_HINTS = {
    "short": "1 sentence",
    "medium": "2-3 sentences",
    "long": "4-5 sentences",
}


# =============================================================================
# Prompt Templates
# =============================================================================


_USER_MATERIAL = textwrap.dedent(
    """
    ## Content Statistics
    $summary_text

    ## In Their Own Words (recent titles and subjects)
    $literals
"""
).strip()


EMOTION_PROMPT = PromptTemplate(
    id="emotion_v1",
    category=PromptCategory.EMOTION,
    version="1.0.0",
    description="Estimate emotional tone, interests and behavior preferences.",
    system_instruction=CURATOR_SYSTEM,
    user_prompt_template=textwrap.dedent(
        """
        Read this person's posting history and estimate their current emotional
        state, what they are drawn to, and when and how they like to go out.

        """
    ).lstrip()
    + _USER_MATERIAL
    + textwrap.dedent(
        """

        ## Output Format
        $output_schema
        """
    ).rstrip(),
    output_schema=EMOTION_SCHEMA,
    required_variables={"summary_text", "literals"},
)

LIFESTYLE_PROMPT = PromptTemplate(
    id="lifestyle_v1",
    category=PromptCategory.LIFESTYLE,
    version="1.0.0",
    description="Describe daily rhythm, weekly pattern and seasonal activity.",
    system_instruction=CURATOR_SYSTEM,
    user_prompt_template=textwrap.dedent(
        """
        Describe this person's daily rhythm and lifestyle from when and what they
        post. Use the hour and weekday counts below as your primary evidence.

        """
    ).lstrip()
    + _USER_MATERIAL
    + textwrap.dedent(
        """

        ## Output Format
        $output_schema
        """
    ).rstrip(),
    output_schema=LIFESTYLE_SCHEMA,
    required_variables={"summary_text", "literals"},
)

GROWTH_PROMPT = PromptTemplate(
    id="growth_v1",
    category=PromptCategory.GROWTH,
    version="1.0.0",
    description="Score skills, diversity and emotional growth.",
    system_instruction=CURATOR_SYSTEM,
    user_prompt_template=textwrap.dedent(
        """
        Assess how this person has grown as a photographer and as a person.
        The quality trend compares three chronological phases of their posts.
        SELF_CONFIDENCE is their confidence as a creator, CONFIDENCE_LEVEL is
        your confidence in this assessment.

        """
    ).lstrip()
    + _USER_MATERIAL
    + textwrap.dedent(
        """

        ## Output Format
        $output_schema
        """
    ).rstrip(),
    output_schema=GROWTH_SCHEMA,
    required_variables={"summary_text", "literals"},
)

CREATIVE_PROMPT = PromptTemplate(
    id="creative_v1",
    category=PromptCategory.CREATIVE,
    version="1.0.0",
    description="Describe the person's photographic and creative character.",
    system_instruction=CURATOR_SYSTEM,
    user_prompt_template=textwrap.dedent(
        """
        Describe this person's creative character from their photos: composition,
        color, subjects and how their technique has developed.

        """
    ).lstrip()
    + _USER_MATERIAL
    + textwrap.dedent(
        """

        ## Output Format
        $output_schema
        """
    ).rstrip(),
    output_schema=CREATIVE_SCHEMA,
    required_variables={"summary_text", "literals"},
)

CULTURAL_PROMPT = PromptTemplate(
    id="cultural_v1",
    category=PromptCategory.CULTURAL,
    version="1.0.0",
    description="Recommend music and art matching the emotion profile.",
    system_instruction=CURATOR_SYSTEM,
    user_prompt_template=textwrap.dedent(
        """
        Recommend music and art that match this person's emotional profile and
        interests.

        ## Emotion Profile
        $emotion_context

        """
    ).lstrip()
    + _USER_MATERIAL
    + textwrap.dedent(
        """

        ## Output Format
        $output_schema
        """
    ).rstrip(),
    output_schema=CULTURAL_SCHEMA,
    required_variables={"summary_text", "literals", "emotion_context"},
)

SUGGESTIONS_PROMPT = PromptTemplate(
    id="suggestions_v1",
    category=PromptCategory.SUGGESTIONS,
    version="1.0.0",
    description="Propose personalized experiences and growth steps.",
    system_instruction=CURATOR_SYSTEM,
    user_prompt_template=textwrap.dedent(
        """
        Propose $max_suggestions personalized suggestions: places, experiences
        and practice ideas that fit this person's mood, rhythm and growth edge.
        Start every suggestion with its own SUGGESTION_<n> header line.

        ## Emotion Profile
        $emotion_context

        ## Lifestyle
        $lifestyle_context

        ## Growth
        $growth_context

        """
    ).lstrip()
    + _USER_MATERIAL
    + textwrap.dedent(
        """

        ## Output Format (repeat the block for each suggestion)
        $output_schema
        """
    ).rstrip(),
    output_schema=SUGGESTION_BLOCK_SCHEMA,
    required_variables={
        "summary_text",
        "literals",
        "emotion_context",
        "lifestyle_context",
        "growth_context",
        "max_suggestions",
    },
)

PERSONALITY_PROMPT = PromptTemplate(
    id="personality_v1",
    category=PromptCategory.PERSONALITY,
    version="1.0.0",
    description="Synthesize a personality portrait from every prior analysis.",
    system_instruction=CURATOR_SYSTEM,
    user_prompt_template=textwrap.dedent(
        """
        Synthesize a personality portrait of this person from everything known
        about them so far. Be specific and kind.

        ## Emotion Profile
        $emotion_context

        ## Lifestyle
        $lifestyle_context

        ## Creative Profile
        $creative_context

        """
    ).lstrip()
    + _USER_MATERIAL
    + textwrap.dedent(
        """

        ## Output Format
        $output_schema
        """
    ).rstrip(),
    output_schema=PERSONALITY_SCHEMA,
    required_variables={
        "summary_text",
        "literals",
        "emotion_context",
        "lifestyle_context",
        "creative_context",
    },
)

COMMENT_PROMPT = PromptTemplate(
    id="comment_v1",
    category=PromptCategory.COMMENT,
    version="1.0.0",
    description="Write one stylistic comment about the latest post.",
    system_instruction=COMMENT_SYSTEM,
    user_prompt_template=textwrap.dedent(
        """
        Write a comment about this person's latest post.

        ## Style
        - Tone: $tone
        - Focus: $focus
        - Persona: speak as their $persona
        - Length of MAIN: $length_hint

        ## Latest Post
        $item_context

        ## Who They Are
        $personality_context

        ## Output Format
        $output_schema
        """
    ).strip(),
    output_schema=COMMENT_SCHEMA,
    required_variables={"tone", "focus", "persona", "length_hint", "item_context"},
)


# =============================================================================
# Registry
# =============================================================================

PROMPT_REGISTRY: dict[str, PromptTemplate] = {}

DOMAIN_PROMPTS: dict[Domain, str] = {
    Domain.EMOTION: EMOTION_PROMPT.id,
    Domain.LIFESTYLE: LIFESTYLE_PROMPT.id,
    Domain.GROWTH: GROWTH_PROMPT.id,
    Domain.CREATIVE: CREATIVE_PROMPT.id,
    Domain.CULTURAL: CULTURAL_PROMPT.id,
    Domain.SUGGESTIONS: SUGGESTIONS_PROMPT.id,
    Domain.PERSONALITY: PERSONALITY_PROMPT.id,
}


def register_prompt(template: PromptTemplate) -> None:
    """Add a template to the registry.

    Raises:
        ValueError: If a template with the same id is already registered.
    """
    if template.id in PROMPT_REGISTRY:
        raise ValueError(f"Prompt '{template.id}' is already registered")
    PROMPT_REGISTRY[template.id] = template


def get_prompt(prompt_id: str) -> PromptTemplate:
    """Look up a template by id.

    Raises:
        KeyError: If the id is unknown.
    """
    if prompt_id not in PROMPT_REGISTRY:
        available = ", ".join(sorted(PROMPT_REGISTRY))
        raise KeyError(f"Prompt '{prompt_id}' not found. Available prompts: {available}")
    return PROMPT_REGISTRY[prompt_id]


def list_prompts(category: PromptCategory | None = None) -> list[PromptTemplate]:
    templates = list(PROMPT_REGISTRY.values())
    if category is not None:
        templates = [t for t in templates if t.category == category]
    return sorted(templates, key=lambda t: t.id)


def _register_builtin_prompts() -> None:
    for template in [
        EMOTION_PROMPT,
        LIFESTYLE_PROMPT,
        GROWTH_PROMPT,
        CREATIVE_PROMPT,
        CULTURAL_PROMPT,
        SUGGESTIONS_PROMPT,
        PERSONALITY_PROMPT,
        COMMENT_PROMPT,
    ]:
        register_prompt(template)


_register_builtin_prompts()


# =============================================================================
# Context Formatting
# =============================================================================


def render_output_schema(schema: dict[str, str]) -> str:
    """Render a schema as ``KEY: description`` lines."""
    return "\n".join(f"{key}: {description}" for key, description in schema.items())


def format_literals(literals: Sequence[str]) -> str:
    """One quoted literal per line, exactly as the user wrote it."""
    if not literals:
        return NOT_AVAILABLE
    return "\n".join(f'- "{literal}"' for literal in literals)


def format_emotion(profile: EmotionProfile | None) -> str:
    if profile is None:
        return NOT_AVAILABLE
    emotions = ", ".join(f"{k} {v:.2f}" for k, v in profile.emotions.model_dump().items())
    interests = ", ".join(f"{k} {v:.2f}" for k, v in profile.interests.model_dump().items())
    patterns = ", ".join(f"{k} {v}" for k, v in profile.patterns.model_dump().items())
    lines = [f"Emotions: {emotions}", f"Interests: {interests}", f"Preferences: {patterns}"]
    if profile.summary:
        lines.append(f"Summary: {profile.summary}")
    return "\n".join(lines)


def format_lifestyle(profile: LifestyleProfile | None) -> str:
    if profile is None:
        return NOT_AVAILABLE
    lines = [
        f"Active hours: {', '.join(str(h) for h in profile.active_hours) or 'unknown'}",
        f"Activity level: {profile.activity_level}",
        f"Posts per week: {profile.post_frequency:.1f}",
        f"Favorite locations: {', '.join(profile.favorite_locations) or 'unknown'}",
    ]
    if profile.summary:
        lines.append(f"Summary: {profile.summary}")
    return "\n".join(lines)


def format_growth(profile: GrowthProfile | None) -> str:
    if profile is None:
        return NOT_AVAILABLE
    skills = ", ".join(f"{k} {v}" for k, v in profile.skill_scores().items())
    lines = [
        f"Skills: {skills}",
        f"Diversity average: {profile.diversity_average():.0f}",
        f"Weakest area: {profile.weakest_area()}",
        f"Next challenges: {', '.join(profile.next_challenges) or 'unknown'}",
    ]
    return "\n".join(lines)


def format_creative(profile: CreativeProfile | None) -> str:
    if profile is None:
        return NOT_AVAILABLE
    lines = [
        f"Creative personality: {profile.creative_personality or 'unknown'}",
        f"Aesthetic: {profile.aesthetic_profile or 'unknown'}",
        f"Unique strength: {profile.unique_strength or 'unknown'}",
        f"Creativity score: {profile.creativity_score}",
        f"Progression: {profile.progression.value}",
    ]
    return "\n".join(lines)


def format_personality(profile: PersonalityProfile | None) -> str:
    if profile is None:
        return NOT_AVAILABLE
    lines = [
        f"Type: {profile.personality_type or 'unknown'}",
        f"Archetype: {profile.archetype or 'unknown'}",
        f"Strengths: {', '.join(profile.strengths) or 'unknown'}",
        f"Current phase: {profile.current_phase or 'unknown'}",
    ]
    return "\n".join(lines)


def format_item(item: ContentItem) -> str:
    lines = [f'Title: "{item.title}"' if item.title else "Title: (untitled)"]
    if item.comment:
        lines.append(f'Their comment: "{item.comment}"')
    if item.tags:
        lines.append(f"Tags: {', '.join(item.tags)}")
    features = item.features
    if features is not None and not features.is_empty():
        if features.main_subject:
            lines.append(f'Subject: "{features.main_subject}"')
        if features.mood:
            lines.append(f"Mood: {features.mood}")
        if features.composition_type:
            lines.append(f"Composition: {features.composition_type}")
        if features.main_colors:
            lines.append(f"Colors: {', '.join(features.main_colors)}")
    if item.quality is not None:
        scores = ", ".join(f"{k} {v}" for k, v in item.quality.sub_scores().items())
        lines.append(f"Quality: {scores} (level {item.quality.level.value})")
    return "\n".join(lines)


def _compose(system: str, user: str) -> str:
    return f"{system}\n\n{user}"


# =============================================================================
# Builders
# =============================================================================


def build_prompt(
    domain: Domain,
    summary: FeatureSummary,
    literals: Sequence[str],
    **context: Any,
) -> str:
    """Render the prompt for a domain.

    Args:
        domain: Which analysis to prompt for.
        summary: Feature summary of the user's history.
        literals: User-authored strings, embedded verbatim.
        **context: Prior profiles for dependent domains (``emotion``,
            ``lifestyle``, ``growth``, ``creative``) and ``max_suggestions``.

    Returns:
        The full prompt text (system instruction followed by the user prompt).
    """
    template = get_prompt(DOMAIN_PROMPTS[domain])
    system, user = template.render(
        summary_text=summary.to_prompt_text(),
        literals=format_literals(literals),
        emotion_context=format_emotion(context.get("emotion")),
        lifestyle_context=format_lifestyle(context.get("lifestyle")),
        growth_context=format_growth(context.get("growth")),
        creative_context=format_creative(context.get("creative")),
        max_suggestions=context.get("max_suggestions", 6),
    )
    return _compose(system, user)


def build_comment_prompt(
    style: CommentStyle,
    item: ContentItem,
    personality: PersonalityProfile | None = None,
) -> str:
    """Render the prompt for one dynamic comment about ``item``."""
    template = get_prompt(COMMENT_PROMPT.id)
    system, user = template.render(
        tone=style.tone,
        focus=style.focus,
        persona=style.persona,
        length_hint=COMMENT_LENGTH_HINTS[style.length],
        item_context=format_item(item),
        personality_context=format_personality(personality),
    )
    return _compose(system, user)
