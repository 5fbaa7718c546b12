from __future__ import annotations

import math

CHARS_PER_TOKEN = 4


def estimate_tokens(content: str) -> int:
    """Approximate the model token count of `content`.

    This is a deliberately crude proxy (about four characters per token), cheap
    enough to run on every file of an export.

    Args:
        content (str): the text to measure

    Returns:
        int: `ceil(len(content) / 4)`, so 0 only for empty text
    """
    return math.ceil(len(content) / CHARS_PER_TOKEN)
