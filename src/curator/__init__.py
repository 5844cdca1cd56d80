"""Personal Curator - AI analysis of a user's photo posts.

Turns a content history into emotion, lifestyle, growth, creative and
personality profiles, with local fallback when the model is unavailable.
"""

__version__ = "1.0.0"
