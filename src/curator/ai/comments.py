"""Dynamic comment style planning.

A run asks for K comments about the user's latest post. Each comment gets a
distinct (tone, focus, persona) tuple drawn from a single shuffle of the
5 x 5 x 5 style space, so the first 125 comments never repeat a tuple.
"""

from __future__ import annotations

import itertools
import random

from curator.core.profiles import COMMENT_LENGTHS, FOCUSES, PERSONAS, TONES, CommentStyle

STYLE_SPACE_SIZE = len(TONES) * len(FOCUSES) * len(PERSONAS)


def plan_comment_styles(count: int, rng: random.Random) -> list[CommentStyle]:
    """Pick ``count`` comment styles.

    The style space is shuffled once and read in order; styles repeat only
    when ``count`` exceeds the size of the space.

    Args:
        count: Number of comments to plan. Zero or less yields no styles.
        rng: Random source for the shuffle and the length choice.

    Returns:
        The planned styles, in generation order.
    """
    if count <= 0:
        return []

    space = list(itertools.product(TONES, FOCUSES, PERSONAS))
    rng.shuffle(space)

    styles = []
    for tone, focus, persona in itertools.islice(itertools.cycle(space), count):
        styles.append(
            CommentStyle(
                tone=tone,
                focus=focus,
                persona=persona,
                length=rng.choice(COMMENT_LENGTHS),
            )
        )
    return styles
