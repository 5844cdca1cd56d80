"""Feature extraction for the Personal Curator."""

from curator.analysis.features import (
    FeatureExtractor,
    classify_trend,
    extract_literals,
    tokenize_descriptor,
)

__all__ = [
    "FeatureExtractor",
    "classify_trend",
    "extract_literals",
    "tokenize_descriptor",
]
