"""Tests for fallback ladders."""

import pytest

from narrated_video.core.errors import FallbackExhaustedError, ToolError
from narrated_video.utils.fallback import FallbackLadder, Strategy


def _writer(path, payload=b"image"):
    def run(spec):
        path.write_bytes(payload)
        return path

    return run


def _failing(message="forced failure"):
    def run(spec):
        raise ToolError("renderer", message, returncode=1)

    return run


def test_first_strategy_wins(tmp_path, logger):
    """When the preferred level works, no other level runs."""
    calls = []

    def second(spec):
        calls.append(spec)
        return tmp_path / "never.png"

    ladder = FallbackLadder(
        "Test", [Strategy("primary", _writer(tmp_path / "a.png")), Strategy("secondary", second)], logger
    )
    outcome = ladder.run("spec")

    assert outcome.strategy == "primary"
    assert outcome.path == tmp_path / "a.png"
    assert not outcome.degraded
    assert calls == []


def test_failure_moves_to_next_level(tmp_path, logger):
    """A raising strategy is recorded and the next one is tried."""
    ladder = FallbackLadder(
        "Test",
        [Strategy("primary", _failing()), Strategy("secondary", _writer(tmp_path / "b.png"))],
        logger,
        service="Rasterizer",
    )
    outcome = ladder.run("spec", context={"segment": 0})

    assert outcome.strategy == "secondary"
    assert outcome.degraded
    assert [a.strategy for a in outcome.attempts] == ["primary", "secondary"]
    assert "forced failure" in outcome.attempts[0].error
    assert outcome.attempts[1].error is None


def test_empty_file_counts_as_failure(tmp_path, logger):
    """A zero-byte artifact is treated like an error."""
    ladder = FallbackLadder(
        "Test",
        [
            Strategy("primary", _writer(tmp_path / "empty.png", payload=b"")),
            Strategy("secondary", _writer(tmp_path / "full.png")),
        ],
        logger,
    )
    outcome = ladder.run("spec")

    assert outcome.strategy == "secondary"
    assert "EmptyArtifactError" in outcome.attempts[0].error


def test_missing_file_counts_as_failure(tmp_path, logger):
    """A strategy returning a path it never wrote is treated like an error."""
    ladder = FallbackLadder(
        "Test",
        [Strategy("primary", lambda spec: tmp_path / "ghost.png"), Strategy("secondary", _writer(tmp_path / "c.png"))],
        logger,
    )
    assert ladder.run("spec").strategy == "secondary"


def test_all_levels_failing_raises(logger):
    """Exhausting the ladder reports every attempt."""
    ladder = FallbackLadder("Thumbnail", [Strategy("one", _failing("a")), Strategy("two", _failing("b"))], logger)

    with pytest.raises(FallbackExhaustedError) as exc_info:
        ladder.run("spec")

    assert exc_info.value.ladder == "Thumbnail"
    assert [a.strategy for a in exc_info.value.attempts] == ["one", "two"]
    assert "one" in str(exc_info.value) and "two" in str(exc_info.value)


def test_spec_passed_unchanged(tmp_path, logger):
    """Every level receives the same input."""
    seen = []

    def record_and_fail(spec):
        seen.append(spec)
        raise RuntimeError("nope")

    def record_and_write(spec):
        seen.append(spec)
        return _writer(tmp_path / "d.png")(spec)

    spec = {"segment": 3}
    FallbackLadder("Test", [Strategy("one", record_and_fail), Strategy("two", record_and_write)], logger).run(spec)

    assert seen == [spec, spec]


def test_ladder_needs_strategies(logger):
    """A ladder without levels is a programming error."""
    with pytest.raises(ValueError):
        FallbackLadder("Empty", [], logger)
