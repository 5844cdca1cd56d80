"""Content history models for the Personal Curator.

These records describe what the surrounding application hands to the
pipeline: a user's posts with their optional quality scoring and image
descriptors. The pipeline only ever reads them.

Models follow a tiered flow:
1. IMAGE DESCRIPTORS (ImageFeatures)
2. QUALITY SCORING (QualityScore)
3. CONTENT HISTORY (ContentItem)
"""

from __future__ import annotations

import uuid as uuid_module
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Enums
# =============================================================================


class ScoreLevel(str, Enum):
    """Discrete quality level derived from a total score.

    Thresholds: S >= 90, A >= 80, B >= 70, C >= 60, D >= 50, otherwise E.
    """

    S = "S"
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"

    @classmethod
    def from_total(cls, total: float) -> "ScoreLevel":
        """Map a total score onto its level label."""
        if total >= 90:
            return cls.S
        if total >= 80:
            return cls.A
        if total >= 70:
            return cls.B
        if total >= 60:
            return cls.C
        if total >= 50:
            return cls.D
        return cls.E


SCORE_FIELDS: tuple[str, ...] = ("technical", "composition", "creativity", "engagement")


# =============================================================================
# Image Descriptors
# =============================================================================


class ImageFeatures(BaseModel):
    """Categorical descriptors produced by an upstream image analysis.

    Attributes:
        main_subject: Free text naming what the photo shows.
        color_temperature: e.g. "warm", "cool", "neutral".
        mood: Free text describing the atmosphere.
        composition_type: e.g. "rule of thirds", "centered".
        lighting_quality: e.g. "soft natural light".
        main_colors: Dominant colors.
    """

    main_subject: str = ""
    color_temperature: str = ""
    mood: str = ""
    composition_type: str = ""
    lighting_quality: str = ""
    main_colors: list[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    def is_empty(self) -> bool:
        return not any(
            [
                self.main_subject,
                self.color_temperature,
                self.mood,
                self.composition_type,
                self.lighting_quality,
                self.main_colors,
            ]
        )


# =============================================================================
# Quality Scoring
# =============================================================================


class QualityScore(BaseModel):
    """Per-post quality sub-scores.

    All sub-scores are integers in [0, 100]. ``total`` is derived as the
    rounded mean of the four sub-scores when it is not supplied, and ``level``
    always follows ``total``.

    Example:
        >>> score = QualityScore(technical=80, composition=70, creativity=90, engagement=60)
        >>> score.total
        75
        >>> score.level
        <ScoreLevel.B: 'B'>
    """

    technical: int = Field(default=50, ge=0, le=100)
    composition: int = Field(default=50, ge=0, le=100)
    creativity: int = Field(default=50, ge=0, le=100)
    engagement: int = Field(default=50, ge=0, le=100)
    total: int | None = Field(default=None, ge=0, le=100)
    level: ScoreLevel | None = None
    comment: str = ""
    image_features: ImageFeatures | None = None

    @model_validator(mode="after")
    def derive_total_and_level(self) -> "QualityScore":
        """Fill in total and level from the sub-scores."""
        if self.total is None:
            mean = sum(self.sub_scores().values()) / len(SCORE_FIELDS)
            object.__setattr__(self, "total", int(round(mean)))
        object.__setattr__(self, "level", ScoreLevel.from_total(self.total))
        return self

    def sub_scores(self) -> dict[str, int]:
        """Return the four sub-scores keyed by name."""
        return {name: getattr(self, name) for name in SCORE_FIELDS}


# =============================================================================
# Content Item
# =============================================================================


class ContentItem(BaseModel):
    """One unit of user history (a post).

    Attributes:
        id: Stable identifier from the content store.
        title: Post title as written by the user.
        comment: Free-text comment attached by the user.
        tags: Tag names.
        created_at: When the post was created.
        quality: Optional quality scoring for the attached photo.
    """

    id: str = Field(default_factory=lambda: str(uuid_module.uuid4()))
    title: str = ""
    comment: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    quality: QualityScore | None = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: object) -> object:
        """Accept a comma-separated string or a list; drop blanks."""
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, list):
            return [str(tag).strip() for tag in v if str(tag).strip()]
        return v

    @property
    def features(self) -> ImageFeatures | None:
        """Shortcut to the image descriptors, if any."""
        if self.quality is None:
            return None
        return self.quality.image_features

    def subject_text(self) -> str:
        features = self.features
        return features.main_subject if features else ""

    def mood_text(self) -> str:
        features = self.features
        return features.mood if features else ""
