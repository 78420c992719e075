"""Render Graph Compiler - expresses a run as one renderer invocation and executes it."""

from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from narrated_video.core.config import Settings
from narrated_video.core.errors import (
    InvalidRenderGraphError,
    MediaProbeError,
    RenderFailure,
    RenderTimeout,
    ToolError,
    ToolTimeoutError,
)
from narrated_video.models.schemas import (
    AudioMixPlan,
    FilterStage,
    InputRole,
    InputSpec,
    OutputSpec,
    RenderGraphSpec,
    Timeline,
    VisualAsset,
)
from narrated_video.services.timeline_builder import require_non_empty
from narrated_video.utils.error_handler import format_error_message, get_fallback_suggestion
from narrated_video.utils.io_utils import is_non_empty_file
from narrated_video.utils.media_probe import probe_duration
from narrated_video.utils.parallel_executor import call_with_timeout
from narrated_video.utils.text_utils import escape_filter_value
from narrated_video.utils.tool_runner import ToolRunner

SLOT_POLICY_TIMELINE = "timeline"
SLOT_POLICY_UNIFORM = "uniform"

VIDEO_LABEL = "vout"
AUDIO_LABEL = "aout"


class RenderProfile(BaseModel):
    """The configuration the compiler reads, frozen so compilation stays pure."""

    model_config = ConfigDict(frozen=True)

    width: int = 1920
    height: int = 1080
    frame_rate: int = 30
    video_codec: str = "libx264"
    video_preset: str = "medium"
    video_crf: int = 23
    pixel_format: str = "yuv420p"
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"
    caption_font: str = "Arial"
    caption_font_size: int = 24
    caption_primary_colour: str = "&HFFFFFF&"
    slot_policy: str = SLOT_POLICY_TIMELINE
    uniform_slot_seconds: int = 2

    @classmethod
    def from_settings(cls, settings: Settings) -> "RenderProfile":
        return cls(
            width=settings.video_width,
            height=settings.video_height,
            frame_rate=settings.frame_rate,
            video_codec=settings.video_codec,
            video_preset=settings.video_preset,
            video_crf=settings.video_crf,
            pixel_format=settings.pixel_format,
            audio_codec=settings.audio_codec,
            audio_bitrate=settings.audio_bitrate,
            caption_font=settings.caption_font,
            caption_font_size=settings.caption_font_size,
            caption_primary_colour=settings.caption_primary_colour,
            slot_policy=settings.slot_policy,
            uniform_slot_seconds=settings.uniform_slot_seconds,
        )

    @property
    def caption_style(self) -> str:
        return (
            f"FontName={self.caption_font},FontSize={self.caption_font_size},"
            f"PrimaryColour={self.caption_primary_colour}"
        )


def display_durations(timeline: Timeline, profile: RenderProfile) -> list[int]:
    """
    Seconds each visual stays on screen.

    The timeline policy follows each segment's duration (at least one second,
    since a zero-length still cannot be concatenated); the uniform policy
    gives every visual the same slot.
    """
    if profile.slot_policy == SLOT_POLICY_UNIFORM:
        return [profile.uniform_slot_seconds] * len(timeline.segments)
    if profile.slot_policy != SLOT_POLICY_TIMELINE:
        raise ValueError(f"unknown slot policy: {profile.slot_policy}")
    return [max(1, segment.duration_seconds) for segment in timeline.segments]


def _visual_stage(index: int, profile: RenderProfile) -> FilterStage:
    w, h = profile.width, profile.height
    expression = (
        f"scale={w}:{h}:force_original_aspect_ratio=decrease,"
        f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2,setsar=1,"
        f"fps={profile.frame_rate},format={profile.pixel_format},setpts=PTS-STARTPTS"
    )
    return FilterStage(name=f"visual_{index}", inputs=(f"{index}:v",), expression=expression, outputs=(f"v{index}",))


def _audio_stages(mix_plan: AudioMixPlan, narration_index: int) -> list[FilterStage]:
    if not mix_plan.has_music:
        return [
            FilterStage(
                name="narration",
                inputs=(f"{narration_index}:a",),
                expression=f"volume={mix_plan.narration_level}",
                outputs=(AUDIO_LABEL,),
            )
        ]
    music_index = narration_index + 1
    return [
        FilterStage(
            name="narration",
            inputs=(f"{narration_index}:a",),
            expression=f"volume={mix_plan.narration_level}",
            outputs=("narration",),
        ),
        FilterStage(
            name="music",
            inputs=(f"{music_index}:a",),
            expression=f"volume={mix_plan.music_level}",
            outputs=("music",),
        ),
        FilterStage(
            name="mix",
            inputs=("narration", "music"),
            expression="amix=inputs=2:duration=longest",
            outputs=(AUDIO_LABEL,),
        ),
    ]


def compile_render_graph(
    timeline: Timeline,
    assets: Sequence[VisualAsset],
    mix_plan: AudioMixPlan,
    captions_path: Path,
    output_path: Path,
    profile: RenderProfile,
) -> RenderGraphSpec:
    """
    Compile a run into a single, validated RenderGraphSpec.

    A pure function: identical arguments always give an equal spec.

    Layout: one looped still input per asset (segment order), then the
    narration input, then the optional music input. Stills are normalised
    and concatenated, captions are burned in as the last video stage, and
    the audio plan becomes one mixed stream. Output duration follows the
    shortest of the video and audio streams.

    Args:
        timeline: Non-empty timeline
        assets: One visual asset per timed segment
        mix_plan: Audio mix plan
        captions_path: Caption track to burn in
        output_path: Encoded output file
        profile: Render profile

    Returns:
        RenderGraphSpec

    Raises:
        EmptyTimelineError: If the timeline is empty
        InvalidRenderGraphError: If assets do not line up with segments
    """
    require_non_empty(timeline, "Render graph compilation")
    ordered = sorted(assets, key=lambda asset: asset.segment_index)
    if [asset.segment_index for asset in ordered] != list(range(len(timeline.segments))):
        raise InvalidRenderGraphError(
            f"expected one asset per segment (0..{len(timeline.segments) - 1}), "
            f"got indexes {[asset.segment_index for asset in ordered]}"
        )

    durations = display_durations(timeline, profile)

    inputs = [
        InputSpec(role=InputRole.VISUAL, path=asset.path, options=("-loop", "1", "-t", str(seconds)))
        for asset, seconds in zip(ordered, durations)
    ]
    narration_index = len(inputs)
    inputs.append(InputSpec(role=InputRole.NARRATION, path=mix_plan.narration_path))
    if mix_plan.has_music:
        inputs.append(InputSpec(role=InputRole.MUSIC, path=mix_plan.music_path))

    stages = [_visual_stage(i, profile) for i in range(len(ordered))]
    stages.append(
        FilterStage(
            name="concat",
            inputs=tuple(f"v{i}" for i in range(len(ordered))),
            expression=f"concat=n={len(ordered)}:v=1:a=0",
            outputs=("vcat",),
        )
    )
    stages.append(
        FilterStage(
            name="captions",
            inputs=("vcat",),
            expression=(
                f"subtitles=filename={escape_filter_value(str(captions_path))}"
                f":force_style={escape_filter_value(profile.caption_style)}"
            ),
            outputs=(VIDEO_LABEL,),
        )
    )
    stages.extend(_audio_stages(mix_plan, narration_index))

    output = OutputSpec(
        path=output_path,
        video_label=VIDEO_LABEL,
        audio_label=AUDIO_LABEL,
        options=(
            "-c:v", profile.video_codec,
            "-preset", profile.video_preset,
            "-crf", str(profile.video_crf),
            "-c:a", profile.audio_codec,
            "-b:a", profile.audio_bitrate,
            "-r", str(profile.frame_rate),
            "-s", f"{profile.width}x{profile.height}",
            "-pix_fmt", profile.pixel_format,
            "-shortest",
        ),
    )

    spec = RenderGraphSpec(
        inputs=tuple(inputs),
        stages=tuple(stages),
        output=output,
        display_seconds=tuple(durations),
    )
    spec.validate_graph()
    return spec


class RenderGraphCompiler:
    """Compiles runs into RenderGraphSpecs and invokes the renderer exactly once per run."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        runner: Optional[ToolRunner] = None,
        probe: Optional[Callable[[Path], float]] = probe_duration,
    ):
        """
        Initialize the compiler.

        Args:
            settings: Application settings
            logger: Logger instance
            runner: Tool runner (created when omitted)
            probe: Duration probe used to check the rendered file is readable,
                bounded by tool_timeout_seconds; None skips the readability check
        """
        self.settings = settings
        self.logger = logger
        self.runner = runner or ToolRunner(settings, logger)
        self.probe = probe
        self.profile = RenderProfile.from_settings(settings)

    def compile(
        self,
        timeline: Timeline,
        assets: Sequence[VisualAsset],
        mix_plan: AudioMixPlan,
        captions_path: Path,
        output_path: Path,
    ) -> RenderGraphSpec:
        """Compile with this compiler's render profile."""
        spec = compile_render_graph(timeline, assets, mix_plan, captions_path, output_path, self.profile)
        self.logger.info(
            f"Render graph: {len(spec.inputs)} inputs, {len(spec.stages)} stages, "
            f"{spec.visual_seconds}s of visuals ({self.profile.slot_policy} slots)"
        )
        return spec

    def render(self, spec: RenderGraphSpec, timeout: Optional[float] = None) -> Path:
        """
        Invoke the renderer once and validate its output.

        Failures are terminal: nothing is retried or degraded here.

        Args:
            spec: Compiled render graph
            timeout: Seconds before the render is abandoned (defaults to render_timeout_seconds)

        Returns:
            Path to the encoded video

        Raises:
            RenderTimeout: If the renderer exceeds the timeout
            RenderFailure: If the renderer fails or its output is empty or unreadable
        """
        timeout = timeout if timeout is not None else self.settings.render_timeout_seconds
        output_path = Path(spec.output.path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        self.logger.info(f"Rendering {output_path.name} (timeout {timeout:.0f}s)")
        try:
            self.runner.run(spec.to_args(self.settings.ffmpeg_binary), tool="renderer", timeout=timeout)
        except ToolTimeoutError as e:
            self._log_failure(e, output_path)
            raise RenderTimeout(f"render exceeded {timeout:.0f}s: {e}") from e
        except ToolError as e:
            self._log_failure(e, output_path)
            raise RenderFailure(f"renderer failed: {e}") from e

        if not is_non_empty_file(output_path):
            raise RenderFailure(f"renderer reported success but {output_path} is empty or missing")

        if self.probe is not None:
            try:
                duration = call_with_timeout(
                    self.probe, self.settings.tool_timeout_seconds, output_path, label="media probe"
                )
            except (MediaProbeError, ToolTimeoutError) as e:
                raise RenderFailure(f"rendered file is unreadable: {e}") from e
            self.logger.info(f"✅ Rendered {output_path} ({duration:.2f}s, {output_path.stat().st_size} bytes)")
        else:
            self.logger.info(f"✅ Rendered {output_path} ({output_path.stat().st_size} bytes)")
        return output_path

    def _log_failure(self, error: Exception, output_path: Path) -> None:
        self.logger.error(
            format_error_message(
                "Rendering video",
                error,
                context={"output": output_path.name},
                suggestion=get_fallback_suggestion("Renderer", error),
            )
        )
