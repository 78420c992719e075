"""Text utility functions for narration, captions and filter arguments."""

import math
import re
from fractions import Fraction

# Characters with a meaning in ffmpeg filter option values and filtergraphs.
_OPTION_SPECIALS = ("\\", "'", ":")
_GRAPH_SPECIALS = ("\\", "'", "[", "]", ",", ";")


def spoken_seconds(word_count: int, words_per_second: float = 2.5) -> int:
    """
    Whole seconds needed to speak a number of words, rounded up.

    Args:
        word_count: Number of words.
        words_per_second: Speaking rate (default 2.5, i.e. 150 WPM).

    Returns:
        Duration in seconds.
    """
    if words_per_second <= 0:
        raise ValueError("words_per_second must be positive")
    return math.ceil(Fraction(word_count) / Fraction(str(words_per_second)))


def collapse_whitespace(text: str) -> str:
    """Join all runs of whitespace (including newlines) into single spaces."""
    return " ".join(text.split())


def truncate(text: str, limit: int, suffix: str = "") -> str:
    """
    Truncate text to ``limit`` characters, appending ``suffix`` when cut.

    Args:
        text: Text to truncate.
        limit: Maximum number of characters kept from ``text``.
        suffix: Marker appended to truncated text (e.g. "...").

    Returns:
        Truncated text.
    """
    if len(text) <= limit:
        return text
    return text[:limit] + suffix


def strip_punctuation(text: str) -> str:
    """Drop everything except word characters and whitespace."""
    return re.sub(r"[^\w\s]", "", text)


def escape_filter_value(value: str) -> str:
    """
    Escape a value for use as a filter option inside an ffmpeg filtergraph.

    Two levels apply: the option parser (``\\``, ``'``, ``:``) and then the
    filtergraph parser (``\\``, ``'``, ``[``, ``]``, ``,``, ``;``).

    Args:
        value: Raw option value (a path, drawtext text, a force_style string).

    Returns:
        Escaped value, safe to embed after ``option=``.
    """
    for char in _OPTION_SPECIALS:
        value = value.replace(char, "\\" + char)
    escaped = []
    for char in value:
        escaped.append("\\" + char if char in _GRAPH_SPECIALS else char)
    return "".join(escaped)
