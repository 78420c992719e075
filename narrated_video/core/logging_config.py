"""Logging setup for composition runs (console plus optional rotating file)."""

import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

NO_RUN = "-"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[run_id]}</magenta> | <cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[run_id]} | {extra[name]}:{function}:{line} | {message}"


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> None:
    """
    Route all composition logs to stderr and, optionally, a rotating file.

    Every record carries the run id it was logged under (``-`` outside a run),
    so interleaved API runs can be told apart.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path to log file (zip-compressed on rotation)
        rotation: Log rotation size
        retention: Log retention period
        serialize: Write the file sink as JSON lines instead of text
    """
    level = log_level.upper()
    logger.remove()
    logger.configure(extra={"name": "narrated_video", "run_id": NO_RUN})

    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            serialize=serialize,
        )


def get_logger(name: str, **context: Any) -> Any:
    """
    Get a logger instance with optional context.

    Args:
        name: Logger name (typically __name__)
        **context: Additional context fields (run_id, stage, etc.)

    Returns:
        Logger instance with bound context
    """
    return logger.bind(name=name, **context)


def bind_run(run_logger: Any, run_id: str) -> Any:
    """Tag a service logger with a run id; loggers without ``bind`` are returned as-is."""
    bind = getattr(run_logger, "bind", None)
    return bind(run_id=run_id) if bind else run_logger


setup_logging()
