"""Parallel Executor - runs per-segment jobs with bounded parallelism and ordered results."""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable, Optional

from narrated_video.core.config import Settings
from narrated_video.core.errors import ToolTimeoutError


class ParallelExecutor:
    """Executes independent jobs and hands results back in submission order."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize parallel executor.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.max_parallel_asset_jobs = getattr(settings, "max_parallel_asset_jobs", 1)

    def run_ordered(
        self,
        tasks: list[Callable],
        task_names: Optional[list[str]] = None,
        run_id: Optional[str] = None,
        max_workers: Optional[int] = None,
    ) -> list[tuple[Any, Optional[Exception]]]:
        """
        Execute tasks and return their outcomes in the order they were given.

        Args:
            tasks: List of callables to execute
            task_names: Optional list of task names for logging
            run_id: Optional run ID for logging context
            max_workers: Maximum number of parallel workers (defaults to max_parallel_asset_jobs)

        Returns:
            List of tuples: (result, exception) for each task, aligned with ``tasks``
        """
        if not tasks:
            return []

        max_workers = max_workers or self.max_parallel_asset_jobs
        log_prefix = f"[{run_id}] " if run_id else ""

        def name_of(i: int) -> str:
            return task_names[i] if task_names and i < len(task_names) else f"task_{i+1}"

        if max_workers == 1:
            results = []
            for i, task in enumerate(tasks):
                try:
                    results.append((task(), None))
                except Exception as e:
                    self.logger.error(f"{log_prefix}❌ {name_of(i)} failed: {e}")
                    results.append((None, e))
            return results

        self.logger.debug(f"{log_prefix}Parallel jobs: {len(tasks)} tasks with max {max_workers} workers")
        start_time = time.time()
        results: list[tuple[Any, Optional[Exception]]] = [(None, None)] * len(tasks)

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_index = {executor.submit(task): i for i, task in enumerate(tasks)}
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = (future.result(), None)
                except Exception as e:
                    self.logger.error(f"{log_prefix}❌ {name_of(index)} failed: {e}")
                    results[index] = (None, e)

        total_elapsed = time.time() - start_time
        successful = sum(1 for _, error in results if error is None)
        self.logger.debug(
            f"{log_prefix}Job batch complete: {successful}/{len(tasks)} successful in {total_elapsed:.2f}s"
        )
        return results


def call_with_timeout(func: Callable, timeout: float, *args: Any, label: str = "task") -> Any:
    """
    Run one blocking call on a worker thread and stop waiting after ``timeout``.

    Used for in-process decoders (moviepy) that start their own ffmpeg
    readers outside the ToolRunner. The abandoned call keeps running in its
    thread until it returns; only the caller is released.

    Args:
        func: Callable to execute
        timeout: Seconds to wait for the result
        *args: Positional arguments for ``func``
        label: Tool label used in the timeout error

    Returns:
        Whatever ``func`` returns

    Raises:
        ToolTimeoutError: If ``func`` does not finish within ``timeout``
        Exception: Anything ``func`` raises, unchanged
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=label.replace(" ", "_"))
    future = executor.submit(func, *args)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeoutError as e:
        if future.done():
            raise
        raise ToolTimeoutError(label, f"timed out after {timeout:g}s") from e
    finally:
        executor.shutdown(wait=False)
