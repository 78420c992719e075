"""Composition pipeline orchestrator - script segments + narration → video, captions, thumbnail."""

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from narrated_video.core.config import Settings, settings
from narrated_video.core.errors import CompositionError, MediaProbeError, ToolTimeoutError
from narrated_video.core.logging_config import bind_run, get_logger, setup_logging
from narrated_video.models.schemas import (
    CompositionRequest,
    CompositionResult,
    ScoredTopic,
    ScriptRecord,
    VisualAsset,
)
from narrated_video.services.audio_mix import AudioMixPlanner
from narrated_video.services.caption_track import CaptionTrackGenerator
from narrated_video.services.render_graph import RenderGraphCompiler
from narrated_video.services.thumbnail_composer import ThumbnailComposer
from narrated_video.services.timeline_builder import TimelineBuilder, require_non_empty
from narrated_video.services.visual_assets import VisualAssetProvisioner
from narrated_video.utils.io_utils import remove_quietly, run_output_paths, slugify
from narrated_video.utils.media_probe import probe_duration
from narrated_video.utils.parallel_executor import call_with_timeout
from narrated_video.utils.tool_runner import ToolRunner


class CompositionPipeline:
    """Runs one composition end to end; stages execute strictly in sequence."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        runner: Optional[ToolRunner] = None,
        timeline_builder: Optional[TimelineBuilder] = None,
        caption_generator: Optional[CaptionTrackGenerator] = None,
        asset_provisioner: Optional[VisualAssetProvisioner] = None,
        mix_planner: Optional[AudioMixPlanner] = None,
        compiler: Optional[RenderGraphCompiler] = None,
        thumbnail_composer: Optional[ThumbnailComposer] = None,
        narration_probe=probe_duration,
    ):
        """
        Initialize the pipeline.

        Args:
            settings: Application settings
            logger: Logger instance
            runner: Shared tool runner for services created here
            timeline_builder .. thumbnail_composer: Optional service overrides
            narration_probe: Measures narration length when the request omits it
        """
        self.settings = settings
        self.logger = logger
        runner = runner or ToolRunner(settings, logger)
        self.timeline_builder = timeline_builder or TimelineBuilder(settings, logger)
        self.caption_generator = caption_generator or CaptionTrackGenerator(settings, logger)
        self.asset_provisioner = asset_provisioner or VisualAssetProvisioner(settings, logger, runner=runner)
        self.mix_planner = mix_planner or AudioMixPlanner(settings, logger)
        self.compiler = compiler or RenderGraphCompiler(settings, logger, runner=runner)
        self.thumbnail_composer = thumbnail_composer or ThumbnailComposer(settings, logger, runner=runner)
        self.narration_probe = narration_probe

    def _narration_seconds(self, request: CompositionRequest) -> Optional[float]:
        if request.narration_duration_seconds is not None:
            return request.narration_duration_seconds
        if self.narration_probe is None:
            return None
        try:
            return call_with_timeout(
                self.narration_probe,
                self.settings.tool_timeout_seconds,
                request.narration_path,
                label="media probe",
            )
        except (MediaProbeError, ToolTimeoutError) as e:
            self.logger.warning(f"Could not measure narration length: {e}")
            return None

    def run(self, request: CompositionRequest) -> CompositionResult:
        """
        Compose a video, its caption track and its thumbnail.

        Either the complete triple is returned, or the terminal error is
        re-raised unchanged after the run's partial outputs are removed.
        Scratch images and frames are deleted on both paths.

        Args:
            request: Composition request

        Returns:
            CompositionResult

        Raises:
            EmptyTimelineError: If the script has no segments
            AssetProvisioningError: If no image could be produced for a segment
            RenderFailure: If rendering failed, timed out, or produced an unusable file
            ThumbnailFailure: If every thumbnail level failed
        """
        run_id = slugify(request.run_id or request.script.id) or "run"
        paths = run_output_paths(self.settings.output_dir, run_id)
        logger = bind_run(self.logger, run_id)

        logger.info("=" * 60)
        logger.info(f"Starting composition run: {run_id}")
        logger.info(f"Segments: {len(request.script.segments)}")
        logger.info("=" * 60)

        start_time = time.time()
        assets: list[VisualAsset] = []
        succeeded = False
        try:
            logger.info("Step 1: Building timeline...")
            timeline = require_non_empty(
                self.timeline_builder.build_from_script(request.script), "Composition"
            )

            logger.info("Step 2: Writing caption track...")
            captions_path = self.caption_generator.write(timeline, paths.captions)

            logger.info("Step 3: Provisioning visual assets...")
            assets = self.asset_provisioner.provision(timeline, paths.work_dir, run_id)

            logger.info("Step 4: Planning audio mix...")
            mix_plan = self.mix_planner.plan(request.narration_path)

            logger.info("Step 5: Compiling render graph...")
            spec = self.compiler.compile(timeline, assets, mix_plan, captions_path, paths.video)
            reconciliation = self.mix_planner.reconcile(
                timeline.total_duration_seconds, spec.visual_seconds, self._narration_seconds(request)
            )

            logger.info("Step 6: Rendering video...")
            video_path = self.compiler.render(spec)

            logger.info("Step 7: Composing thumbnail...")
            topic = request.topic or ScoredTopic(query=request.script.title or request.script.id)
            thumbnail = self.thumbnail_composer.compose(
                video_path,
                topic,
                paths.thumbnail,
                paths.work_dir,
                style=request.thumbnail_style,
            )
            succeeded = True
        except CompositionError as e:
            logger.error(f"Composition run {run_id} failed: {type(e).__name__}: {e}")
            raise
        finally:
            if not self.settings.keep_visual_assets:
                self.asset_provisioner.cleanup(assets)
                remove_quietly([paths.work_dir], logger)
            if not succeeded:
                remove_quietly([paths.video, paths.captions, paths.thumbnail], logger)

        elapsed = time.time() - start_time
        logger.info("=" * 60)
        logger.info(f"Composition complete in {elapsed:.2f}s")
        logger.info(f"Video: {video_path}")
        logger.info(f"Captions: {captions_path}")
        logger.info(f"Thumbnail: {thumbnail.path} ({thumbnail.strategy})")
        logger.info("=" * 60)

        return CompositionResult(
            run_id=run_id,
            video_path=video_path,
            captions_path=captions_path,
            thumbnail_path=thumbnail.path,
            thumbnail_strategy=thumbnail.strategy,
            reconciliation=reconciliation,
            visual_strategies=[asset.strategy for asset in assets],
        )


def load_script(path: Path) -> ScriptRecord:
    """Load a script record from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return ScriptRecord.model_validate(json.load(f))


def main() -> int:
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Narrated Video Composer - render a narrated video, captions and thumbnail from a script"
    )
    parser.add_argument("--script", type=str, required=True, help="Path to a JSON script record")
    parser.add_argument("--narration", type=str, required=True, help="Path to the narration audio file")
    parser.add_argument(
        "--narration-duration",
        type=float,
        default=None,
        help="Narration length in seconds (measured from the file when omitted)",
    )
    parser.add_argument("--topic", type=str, default=None, help="Topic query used for the thumbnail text")
    parser.add_argument("--category", type=str, default="general", help="Topic category (default: general)")
    parser.add_argument("--run-id", type=str, default=None, help="Run identifier (default: script id)")
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help=f"Output directory (default: {settings.output_dir})",
    )
    parser.add_argument(
        "--style",
        type=str,
        default=None,
        choices=["minimal", "bold", "contrast", "gradient"],
        help="Thumbnail colour scheme (default: bold)",
    )
    parser.add_argument("--width", type=int, default=None, help="Video width in pixels (default: 1920)")
    parser.add_argument("--height", type=int, default=None, help="Video height in pixels (default: 1080)")
    parser.add_argument("--fps", type=int, default=None, help="Frame rate (default: 30)")
    parser.add_argument(
        "--keep-assets",
        action="store_true",
        help="Keep per-segment placeholder images after rendering",
    )

    args = parser.parse_args()

    overrides = {
        "output_dir": args.output_dir,
        "video_width": args.width,
        "video_height": args.height,
        "frame_rate": args.fps,
        "keep_visual_assets": True if args.keep_assets else None,
    }
    run_settings = settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})

    setup_logging(
        log_level=run_settings.log_level,
        log_file=Path(run_settings.log_file) if run_settings.log_file else None,
        serialize=run_settings.log_json,
    )
    logger = get_logger(__name__)

    try:
        script = load_script(Path(args.script))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Could not load script {args.script}: {e}")
        return 1

    request = CompositionRequest(
        script=script,
        narration_path=Path(args.narration),
        narration_duration_seconds=args.narration_duration,
        topic=ScoredTopic(query=args.topic, category=args.category) if args.topic else None,
        run_id=args.run_id,
        thumbnail_style=args.style,
    )

    logger.info("=" * 60)
    logger.info(f"{run_settings.app_name} v{run_settings.app_version}")
    logger.info(f"Script: {script.id} ({len(script.segments)} segments)")
    logger.info(f"Target: {run_settings.video_width}x{run_settings.video_height} @ {run_settings.frame_rate}fps")
    logger.info("=" * 60)

    try:
        pipeline = CompositionPipeline(run_settings, logger)
        result = pipeline.run(request)
    except KeyboardInterrupt:
        logger.warning("Composition interrupted by user")
        return 1
    except CompositionError as e:
        logger.error(f"\n❌ Error: {type(e).__name__}: {e}")
        return 1

    print(result.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
