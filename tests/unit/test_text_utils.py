"""Tests for text and I/O utility functions."""

from pathlib import Path

import pytest

from narrated_video.utils.io_utils import is_non_empty_file, run_output_paths, slugify
from narrated_video.utils.text_utils import (
    collapse_whitespace,
    escape_filter_value,
    spoken_seconds,
    strip_punctuation,
    truncate,
)


@pytest.mark.parametrize("words,seconds", [(0, 0), (1, 1), (5, 2), (8, 4), (30, 12), (45, 18), (10, 4)])
def test_spoken_seconds_rounds_up(words, seconds):
    assert spoken_seconds(words, 2.5) == seconds


def test_spoken_seconds_rejects_non_positive_rate():
    with pytest.raises(ValueError):
        spoken_seconds(10, 0)


def test_collapse_whitespace():
    assert collapse_whitespace("Line one\n\n  line   two ") == "Line one line two"


def test_truncate():
    assert truncate("abcdef", 3) == "abc"
    assert truncate("abcdef", 3, "...") == "abc..."
    assert truncate("abc", 3, "...") == "abc"


def test_strip_punctuation():
    assert strip_punctuation("Wait, what?! It's 5:00.") == "Wait what Its 500"


def test_escape_filter_value_plain_text_unchanged():
    assert escape_filter_value("Hello world") == "Hello world"


def test_escape_filter_value_colon():
    """Colons are escaped for the option parser, then the backslash for the graph parser."""
    assert escape_filter_value("C:/captions.srt") == "C\\\\:/captions.srt"


def test_escape_filter_value_graph_specials():
    """Commas and brackets are only special to the graph parser."""
    assert escape_filter_value("a,b[c]") == "a\\,b\\[c\\]"


def test_escape_filter_value_quote():
    assert escape_filter_value("it's") == "it\\\\\\'s"


def test_slugify():
    assert slugify("Why Is The Sky Blue?") == "why-is-the-sky-blue"
    assert slugify("script_42") == "script_42"


def test_run_output_paths():
    """Output names are derived from the run id."""
    paths = run_output_paths("outputs", "run_7")

    assert paths.video == Path("outputs/run_7_video.mp4")
    assert paths.captions == Path("outputs/run_7_captions.srt")
    assert paths.thumbnail == Path("outputs/run_7_thumbnail.png")
    assert paths.work_dir == Path("outputs/run_7_work")


def test_is_non_empty_file(tmp_path):
    empty = tmp_path / "empty.bin"
    empty.write_bytes(b"")
    full = tmp_path / "full.bin"
    full.write_bytes(b"x")

    assert not is_non_empty_file(empty)
    assert is_non_empty_file(full)
    assert not is_non_empty_file(tmp_path / "missing.bin")
    assert not is_non_empty_file(None)
    assert not is_non_empty_file(tmp_path)
