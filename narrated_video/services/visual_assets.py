"""Visual Asset Provisioner - one still image per timed segment, with a flat-frame fallback."""

import textwrap
from pathlib import Path
from typing import Any, Optional

from PIL import Image, ImageDraw
from pydantic import BaseModel

from narrated_video.core.config import Settings
from narrated_video.core.errors import AssetProvisioningError, FallbackExhaustedError
from narrated_video.models.schemas import SegmentKind, TimedSegment, Timeline, VisualAsset
from narrated_video.services.timeline_builder import require_non_empty
from narrated_video.utils.fallback import FallbackLadder, Strategy
from narrated_video.utils.image_utils import load_font
from narrated_video.utils.io_utils import remove_quietly
from narrated_video.utils.parallel_executor import ParallelExecutor
from narrated_video.utils.text_utils import collapse_whitespace, strip_punctuation, truncate
from narrated_video.utils.tool_runner import ToolRunner

SEGMENT_COLORS = {
    SegmentKind.HOOK: "darkblue",
    SegmentKind.CONTEXT: "darkgreen",
    SegmentKind.EXPLANATION: "darkred",
    SegmentKind.SUMMARY: "darkorange",
    SegmentKind.CTA: "darkviolet",
}
DEFAULT_SEGMENT_COLOR = "black"


def segment_color(kind: SegmentKind) -> str:
    """Background colour keyed by segment kind."""
    return SEGMENT_COLORS.get(kind, DEFAULT_SEGMENT_COLOR)


class PlaceholderJob(BaseModel):
    """Everything a strategy needs to draw one segment's image."""

    segment_index: int
    segment: TimedSegment
    output_path: Path
    width: int
    height: int

    @property
    def color(self) -> str:
        return segment_color(self.segment.kind)


class VisualAssetProvisioner:
    """Produces labelled placeholder images for every segment of a timeline."""

    STRATEGY_PLACEHOLDER = "placeholder"
    STRATEGY_FLAT_COLOR = "flat_color"

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        runner: Optional[ToolRunner] = None,
        executor: Optional[ParallelExecutor] = None,
    ):
        """
        Initialize the provisioner.

        Args:
            settings: Application settings
            logger: Logger instance
            runner: Tool runner for the renderer fallback (created when omitted)
            executor: Parallel executor for per-segment jobs (created when omitted)
        """
        self.settings = settings
        self.logger = logger
        self.runner = runner or ToolRunner(settings, logger)
        self.executor = executor or ParallelExecutor(settings, logger)
        self.width = settings.video_width
        self.height = settings.video_height

    def _ladder(self) -> FallbackLadder[PlaceholderJob]:
        return FallbackLadder(
            "Visual asset",
            [
                Strategy(self.STRATEGY_PLACEHOLDER, self._render_placeholder),
                Strategy(self.STRATEGY_FLAT_COLOR, self._render_flat_frame),
            ],
            self.logger,
            service="Rasterizer",
        )

    def provision(self, timeline: Timeline, work_dir: Path, run_id: str) -> list[VisualAsset]:
        """
        Provision one image per timed segment.

        Jobs may run in parallel (max_parallel_asset_jobs); the returned list
        is always in segment order.

        Args:
            timeline: Non-empty timeline
            work_dir: Scratch directory for this run
            run_id: Run identifier used in file names

        Returns:
            Visual assets in segment order

        Raises:
            EmptyTimelineError: If the timeline is empty
            AssetProvisioningError: If both strategies failed for a segment
        """
        require_non_empty(timeline, "Visual asset provisioning")
        work_dir = Path(work_dir)
        work_dir.mkdir(parents=True, exist_ok=True)

        ladder = self._ladder()
        jobs = [
            PlaceholderJob(
                segment_index=i,
                segment=segment,
                output_path=work_dir / f"{run_id}_segment_{i}.png",
                width=self.width,
                height=self.height,
            )
            for i, segment in enumerate(timeline.segments)
        ]

        def make_task(job: PlaceholderJob):
            return lambda: ladder.run(job, context={"run_id": run_id, "segment": job.segment_index})

        outcomes = self.executor.run_ordered(
            [make_task(job) for job in jobs],
            task_names=[f"segment_{job.segment_index}" for job in jobs],
            run_id=run_id,
        )

        assets = []
        for job, (outcome, error) in zip(jobs, outcomes):
            if error is not None:
                self.cleanup(assets)
                if isinstance(error, FallbackExhaustedError):
                    raise AssetProvisioningError(
                        f"no image for segment {job.segment_index} ({job.segment.kind.value}): {error}"
                    ) from error
                raise error
            assets.append(
                VisualAsset(
                    segment_index=job.segment_index,
                    kind=job.segment.kind,
                    path=outcome.path,
                    strategy=outcome.strategy,
                )
            )

        degraded = sum(1 for asset in assets if asset.strategy != self.STRATEGY_PLACEHOLDER)
        self.logger.info(f"Provisioned {len(assets)} visual assets ({degraded} via fallback)")
        return assets

    def _placeholder_text(self, job: PlaceholderJob) -> str:
        text = strip_punctuation(collapse_whitespace(job.segment.text))
        text = truncate(text, self.settings.placeholder_text_limit)
        wrapped = textwrap.fill(text, width=40)
        return f"Segment {job.segment_index + 1}\n{job.segment.kind.value}\n\n{wrapped}"

    def _render_placeholder(self, job: PlaceholderJob) -> Path:
        """Primary strategy: labelled placeholder drawn with Pillow."""
        img = Image.new("RGB", (job.width, job.height), job.color)
        draw = ImageDraw.Draw(img)
        font_size = max(12, job.height // 15)
        font = load_font(font_size, self.settings.font_path)
        draw.multiline_text(
            (job.width / 2, job.height / 2),
            self._placeholder_text(job),
            font=font,
            fill="white",
            anchor="mm",
            align="center",
            spacing=font_size // 6,
        )
        job.output_path.parent.mkdir(parents=True, exist_ok=True)
        img.save(job.output_path, "PNG")
        return job.output_path

    def _render_flat_frame(self, job: PlaceholderJob) -> Path:
        """Fallback strategy: single flat-coloured frame from the renderer."""
        self.runner.run(
            [
                self.settings.ffmpeg_binary,
                "-y",
                "-hide_banner",
                "-f",
                "lavfi",
                "-i",
                f"color=c={job.color}:s={job.width}x{job.height}:d=1",
                "-frames:v",
                "1",
                str(job.output_path),
            ],
            tool="renderer",
            timeout=self.settings.tool_timeout_seconds,
        )
        return job.output_path

    def cleanup(self, assets: list[VisualAsset]) -> None:
        """Delete provisioned images; failures are logged and ignored."""
        remove_quietly((asset.path for asset in assets), self.logger)
