"""Tool Runner - blocking, time-bounded invocations of external tools."""

import shlex
import subprocess
import time
from typing import Any, Optional, Sequence

from narrated_video.core.config import Settings
from narrated_video.core.errors import ToolError, ToolTimeoutError, ToolUnavailableError

STDERR_TAIL_CHARS = 2000


class ToolRunner:
    """Runs external tools (ffmpeg) and converts their failures into ToolError."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize tool runner.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger

    def run(
        self,
        args: Sequence[str],
        *,
        tool: str,
        timeout: Optional[float] = None,
    ) -> subprocess.CompletedProcess:
        """
        Run one command to completion.

        Args:
            args: Command and arguments (never passed through a shell)
            tool: Short tool label for logs and errors (e.g. "renderer")
            timeout: Seconds before the process is killed (defaults to tool_timeout_seconds)

        Returns:
            The completed process

        Raises:
            ToolUnavailableError: If the executable cannot be started
            ToolTimeoutError: If the process exceeds the timeout
            ToolError: If the process exits with a non-zero status
        """
        timeout = timeout if timeout is not None else self.settings.tool_timeout_seconds
        command = list(args)
        self.logger.debug(f"[{tool}] {shlex.join(command)}")

        start_time = time.time()
        try:
            result = subprocess.run(command, capture_output=True, text=True, timeout=timeout)
        except FileNotFoundError as e:
            raise ToolUnavailableError(tool, f"executable not found: {command[0]}") from e
        except PermissionError as e:
            raise ToolUnavailableError(tool, f"executable not runnable: {command[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise ToolTimeoutError(tool, f"timed out after {timeout:.0f}s") from e

        elapsed = time.time() - start_time
        if result.returncode != 0:
            stderr_tail = (result.stderr or "")[-STDERR_TAIL_CHARS:]
            lines = stderr_tail.strip().splitlines()
            raise ToolError(
                tool,
                f"exited with status {result.returncode}: {lines[-1] if lines else 'no output'}",
                returncode=result.returncode,
                stderr=stderr_tail,
            )

        self.logger.debug(f"[{tool}] finished in {elapsed:.2f}s")
        return result
