"""Fallback ladders: ordered strategies tried until one yields a non-empty file."""

from pathlib import Path
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field

from narrated_video.core.errors import EmptyArtifactError, FallbackExhaustedError
from narrated_video.utils.error_handler import format_error_message, get_fallback_suggestion
from narrated_video.utils.io_utils import is_non_empty_file

SpecT = TypeVar("SpecT")


class Strategy(Generic[SpecT]):
    """A named way of producing an artifact from a spec."""

    def __init__(self, name: str, run: Callable[[SpecT], Path]):
        self.name = name
        self.run = run

    def __repr__(self) -> str:
        return f"Strategy({self.name!r})"


class LadderAttempt(BaseModel):
    """Record of one strategy attempt."""

    strategy: str
    error: Optional[str] = None


class LadderOutcome(BaseModel):
    """The artifact a ladder produced and how it got there."""

    path: Path
    strategy: str
    attempts: list[LadderAttempt] = Field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when the first strategy did not produce the artifact."""
        return len(self.attempts) > 1


class FallbackLadder(Generic[SpecT]):
    """Tries each strategy in order and returns the first non-empty artifact."""

    def __init__(
        self,
        name: str,
        strategies: Sequence[Strategy[SpecT]],
        logger: Any,
        service: Optional[str] = None,
    ):
        """
        Initialize a fallback ladder.

        Args:
            name: Ladder name used in logs and errors
            strategies: Strategies, most preferred first
            logger: Logger instance
            service: Service label used to look up fallback suggestions
        """
        if not strategies:
            raise ValueError("a fallback ladder needs at least one strategy")
        self.name = name
        self.strategies = list(strategies)
        self.logger = logger
        self.service = service

    def run(self, spec: SpecT, context: Optional[dict] = None) -> LadderOutcome:
        """
        Run strategies until one produces a non-empty file.

        Args:
            spec: Input handed unchanged to every strategy
            context: Extra fields for log messages

        Returns:
            LadderOutcome with the produced path and the attempt log

        Raises:
            FallbackExhaustedError: If every strategy failed
        """
        attempts: list[LadderAttempt] = []
        for strategy in self.strategies:
            try:
                path = strategy.run(spec)
                if not is_non_empty_file(path):
                    raise EmptyArtifactError(f"{strategy.name} produced an empty or missing file: {path}")
            except Exception as e:
                attempts.append(LadderAttempt(strategy=strategy.name, error=f"{type(e).__name__}: {e}"))
                self.logger.warning(
                    format_error_message(
                        f"{self.name} [{strategy.name}]",
                        e,
                        context=context,
                        suggestion=get_fallback_suggestion(self.service, e) if self.service else None,
                    )
                )
                continue

            attempts.append(LadderAttempt(strategy=strategy.name))
            if len(attempts) > 1:
                self.logger.info(f"{self.name}: recovered with '{strategy.name}' after {len(attempts) - 1} failed level(s)")
            return LadderOutcome(path=Path(path), strategy=strategy.name, attempts=attempts)

        raise FallbackExhaustedError(self.name, attempts)
