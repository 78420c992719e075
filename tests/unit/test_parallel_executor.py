"""Tests for Parallel Executor."""

import threading
import time

import pytest

from narrated_video.core.errors import MediaProbeError, ToolTimeoutError
from narrated_video.utils.parallel_executor import ParallelExecutor, call_with_timeout


@pytest.fixture
def parallel_executor(settings, logger):
    """Create ParallelExecutor instance for testing."""
    return ParallelExecutor(settings, logger)


def test_results_follow_submission_order(parallel_executor):
    """Slow early tasks still come back first."""

    def task(i):
        return lambda: (time.sleep(0.05 * (3 - i)), i)[1]

    results = parallel_executor.run_ordered([task(i) for i in range(4)], max_workers=4)

    assert [result for result, _ in results] == [0, 1, 2, 3]
    assert all(error is None for _, error in results)


def test_errors_are_returned_not_raised(parallel_executor):
    def boom():
        raise ValueError("bad segment")

    results = parallel_executor.run_ordered([lambda: 1, boom], task_names=["ok", "boom"])

    assert results[0] == (1, None)
    assert results[1][0] is None
    assert isinstance(results[1][1], ValueError)


def test_call_with_timeout_returns_result():
    assert call_with_timeout(lambda a, b: a + b, 1.0, 2, 3) == 5


def test_call_with_timeout_propagates_errors():
    def fail(path):
        raise MediaProbeError(f"could not read {path}")

    with pytest.raises(MediaProbeError, match="narration.mp3"):
        call_with_timeout(fail, 1.0, "narration.mp3")


def test_call_with_timeout_gives_up(hanging_call):
    """The caller is released once the timeout expires."""
    start = time.monotonic()

    with pytest.raises(ToolTimeoutError, match="timed out") as exc_info:
        call_with_timeout(hanging_call, 0.2, "video.mp4", label="frame extraction")

    assert time.monotonic() - start < 5
    assert exc_info.value.tool == "frame extraction"


def test_call_with_timeout_keeps_builtin_timeout_errors():
    """A TimeoutError raised by the call itself is not mistaken for the deadline."""

    def raise_timeout():
        raise TimeoutError("socket timed out")

    with pytest.raises(TimeoutError, match="socket"):
        call_with_timeout(raise_timeout, 1.0)
