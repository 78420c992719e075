"""Shared pytest fixtures and configuration."""

import threading
from pathlib import Path

import pytest

from narrated_video.core.config import Settings
from narrated_video.core.errors import MediaProbeError, ToolError
from narrated_video.core.logging_config import get_logger
from narrated_video.models.schemas import NarrationSegment, SegmentKind


class FakeRunner:
    """Stands in for ToolRunner: records commands and writes bytes to the output path."""

    def __init__(self, fail_tools=None, payload=b"fake-media", error=None):
        self.calls = []
        self.fail_tools = set(fail_tools or [])
        self.payload = payload
        self.error = error

    def run(self, args, *, tool, timeout=None):
        self.calls.append({"args": list(args), "tool": tool, "timeout": timeout})
        if self.error is not None:
            raise self.error
        if tool in self.fail_tools:
            raise ToolError(tool, "forced failure", returncode=1)
        Path(args[-1]).parent.mkdir(parents=True, exist_ok=True)
        Path(args[-1]).write_bytes(self.payload)
        return None


@pytest.fixture
def settings(tmp_path):
    """Create test settings instance writing into a temporary directory."""
    return Settings(
        output_dir=str(tmp_path / "outputs"),
        background_music_path=str(tmp_path / "assets" / "music" / "background.mp3"),
        video_width=320,
        video_height=180,
        thumbnail_width=320,
        thumbnail_height=180,
    )


@pytest.fixture
def logger():
    """Create test logger instance."""
    return get_logger(__name__)


@pytest.fixture
def fake_runner():
    """Recording runner that always succeeds."""
    return FakeRunner()


@pytest.fixture
def example_segments():
    """Six segments with word counts 8, 30, 40, 45, 12, 10."""
    kinds = [
        SegmentKind.HOOK,
        SegmentKind.CONTEXT,
        SegmentKind.EXPLANATION,
        SegmentKind.EXPLANATION,
        SegmentKind.SUMMARY,
        SegmentKind.CTA,
    ]
    counts = [8, 30, 40, 45, 12, 10]
    return [
        NarrationSegment(kind=kind, text=" ".join(f"word{i}" for i in range(count)))
        for kind, count in zip(kinds, counts)
    ]


@pytest.fixture
def runner_factory():
    """Build FakeRunners with custom failure behaviour."""
    return FakeRunner


@pytest.fixture
def hanging_call():
    """A callable that blocks until the test finishes, then fails."""
    release = threading.Event()

    def hang(*args):
        release.wait(10)
        raise MediaProbeError("released after test")

    yield hang
    release.set()


@pytest.fixture
def short_timeout_settings(settings):
    """Settings with a sub-second tool timeout."""
    return settings.model_copy(update={"tool_timeout_seconds": 0.2})
