"""Audio Mix Planner - decides how narration and background music are combined."""

from pathlib import Path
from typing import Any, Optional

from narrated_video.core.config import Settings
from narrated_video.models.schemas import AudioMixPlan, DurationReconciliation
from narrated_video.utils.io_utils import is_non_empty_file

SHORTEST_POLICY = "shortest"

# Differences below this are rounding noise, not divergence.
DIVERGENCE_TOLERANCE_SECONDS = 0.5


class AudioMixPlanner:
    """Builds an AudioMixPlan; the Render Graph Compiler executes it."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the mix planner.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.music_path = Path(settings.background_music_path)

    def plan(self, narration_path: Path) -> AudioMixPlan:
        """
        Plan the audio mix for a run.

        With background music at the configured location, narration and music
        are attenuated to their configured levels and mixed to the longest
        input. Without it, narration passes through unattenuated.

        Args:
            narration_path: Synthesized narration audio

        Returns:
            AudioMixPlan
        """
        if is_non_empty_file(self.music_path):
            self.logger.info(f"Background music found: {self.music_path}")
            return AudioMixPlan(
                narration_path=Path(narration_path),
                music_path=self.music_path,
                narration_level=self.settings.narration_level,
                music_level=self.settings.music_level,
            )

        self.logger.info("No background music, narration only")
        return AudioMixPlan(narration_path=Path(narration_path), narration_level=1.0, music_level=0.0)

    def reconcile(
        self,
        timeline_seconds: int,
        visual_seconds: float,
        narration_seconds: Optional[float],
    ) -> DurationReconciliation:
        """
        Apply the shortest policy to the visual stream and narration lengths.

        The rendered file stops at whichever of the concatenated visuals or the
        narration ends first. Divergence is an accepted approximation: it is
        logged, never raised.

        Args:
            timeline_seconds: Word-count based timeline total
            visual_seconds: Length of the concatenated visual stream
            narration_seconds: Narration length, None when unknown

        Returns:
            DurationReconciliation
        """
        if narration_seconds is None:
            self.logger.warning("Narration length unknown; expecting output to follow the visual stream")
            return DurationReconciliation(
                timeline_seconds=timeline_seconds,
                visual_seconds=visual_seconds,
                output_seconds=visual_seconds,
                policy=SHORTEST_POLICY,
            )

        output_seconds = min(visual_seconds, narration_seconds)
        diverged = abs(visual_seconds - narration_seconds) > DIVERGENCE_TOLERANCE_SECONDS
        if diverged:
            self.logger.warning(
                f"Narration ({narration_seconds:.2f}s) and visuals ({visual_seconds:.2f}s) diverge; "
                f"output truncated to {output_seconds:.2f}s ({SHORTEST_POLICY} policy)"
            )
        return DurationReconciliation(
            timeline_seconds=timeline_seconds,
            visual_seconds=visual_seconds,
            narration_seconds=narration_seconds,
            output_seconds=output_seconds,
            policy=SHORTEST_POLICY,
            diverged=diverged,
        )
