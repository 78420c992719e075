"""Pydantic models and schemas for the composition pipeline."""

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from narrated_video.core.errors import InvalidRenderGraphError


# ============================================================================
# Enums
# ============================================================================


class SegmentKind(str, Enum):
    """Semantic role of a narration beat."""

    HOOK = "hook"
    CONTEXT = "context"
    EXPLANATION = "explanation"
    SUMMARY = "summary"
    CTA = "cta"


class InputRole(str, Enum):
    """What a renderer input stream carries."""

    VISUAL = "visual"
    NARRATION = "narration"
    MUSIC = "music"


# ============================================================================
# Script & Timeline Models
# ============================================================================


class NarrationSegment(BaseModel):
    """One narration beat as delivered by the script source."""

    model_config = ConfigDict(frozen=True)

    kind: SegmentKind = Field(
        ..., validation_alias=AliasChoices("kind", "type"), description="Segment role (hook, context, ...)"
    )
    text: str = Field(..., description="Narration text")
    word_count: int = Field(..., ge=0, description="Number of whitespace-separated words")
    visual_hint: Optional[str] = Field(default=None, description="Optional hint for richer imagery (not rendered)")

    @model_validator(mode="before")
    @classmethod
    def _derive_word_count(cls, data: Any) -> Any:
        """Count words from the text when the source did not supply a count."""
        if isinstance(data, dict) and data.get("word_count") is None:
            data = {**data, "word_count": len(str(data.get("text", "")).split())}
        return data


class TimedSegment(NarrationSegment):
    """A narration segment placed on the timeline."""

    start_offset_seconds: int = Field(..., ge=0, description="Start offset from the beginning of the video")
    end_offset_seconds: int = Field(..., ge=0, description="End offset from the beginning of the video")

    @property
    def duration_seconds(self) -> int:
        return self.end_offset_seconds - self.start_offset_seconds


class Timeline(BaseModel):
    """Contiguous schedule of timed segments."""

    model_config = ConfigDict(frozen=True)

    segments: tuple[TimedSegment, ...] = Field(default=(), description="Segments in narration order")
    total_duration_seconds: int = Field(default=0, ge=0, description="Sum of all segment durations")

    @model_validator(mode="after")
    def _check_contiguity(self) -> "Timeline":
        cursor = 0
        for position, segment in enumerate(self.segments):
            if segment.start_offset_seconds != cursor:
                raise ValueError(
                    f"segment {position} starts at {segment.start_offset_seconds}s, expected {cursor}s"
                )
            if segment.end_offset_seconds < segment.start_offset_seconds:
                raise ValueError(f"segment {position} ends before it starts")
            cursor = segment.end_offset_seconds
        if cursor != self.total_duration_seconds:
            raise ValueError(
                f"timeline total {self.total_duration_seconds}s does not match last segment end {cursor}s"
            )
        return self

    @property
    def is_empty(self) -> bool:
        return not self.segments


class ScriptRecord(BaseModel):
    """Script produced upstream: ordered, already validated segments."""

    id: str = Field(..., description="Script identifier (also the default run id)")
    title: str = Field(default="", description="Working title")
    segments: list[NarrationSegment] = Field(default_factory=list, description="Ordered narration segments")


class ScoredTopic(BaseModel):
    """Topic record supplied by the topic-scoring collaborator."""

    query: str = Field(..., description="Topic query, used as thumbnail text")
    category: str = Field(default="general", description="Topic category")


# ============================================================================
# Captions, Assets & Audio
# ============================================================================


class CaptionCue(BaseModel):
    """A single numbered subtitle cue."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=1, description="1-based cue number")
    start_offset_seconds: float = Field(..., ge=0, description="Cue start")
    end_offset_seconds: float = Field(..., ge=0, description="Cue end")
    text: str = Field(..., description="Cue text")


class VisualAsset(BaseModel):
    """A still image provisioned for one timed segment."""

    model_config = ConfigDict(frozen=True)

    segment_index: int = Field(..., ge=0, description="Index of the segment on the timeline")
    kind: SegmentKind = Field(..., description="Kind of the segment it illustrates")
    path: Path = Field(..., description="Image file")
    strategy: str = Field(..., description="Fallback level that produced the image")


class AudioMixPlan(BaseModel):
    """How narration and optional background music are combined."""

    model_config = ConfigDict(frozen=True)

    narration_path: Path = Field(..., description="Synthesized narration audio")
    music_path: Optional[Path] = Field(default=None, description="Background music; None means narration-only")
    narration_level: float = Field(default=1.0, ge=0.0, description="Narration volume multiplier")
    music_level: float = Field(default=0.0, ge=0.0, description="Music volume multiplier")

    @property
    def has_music(self) -> bool:
        return self.music_path is not None


class DurationReconciliation(BaseModel):
    """Outcome of reconciling timeline, visual stream and narration lengths."""

    timeline_seconds: int = Field(..., description="Word-count based timeline total")
    visual_seconds: float = Field(..., description="Length of the concatenated visual stream")
    narration_seconds: Optional[float] = Field(default=None, description="Measured or declared narration length")
    output_seconds: float = Field(..., description="Expected length of the rendered file")
    policy: str = Field(default="shortest", description="Reconciliation policy applied")
    diverged: bool = Field(default=False, description="Whether narration and visuals disagree")


# ============================================================================
# Render Graph Models
# ============================================================================


class InputSpec(BaseModel):
    """One renderer input with its per-input options."""

    model_config = ConfigDict(frozen=True)

    role: InputRole = Field(..., description="Stream role")
    path: Path = Field(..., description="Input file")
    options: tuple[str, ...] = Field(default=(), description="Options placed before -i")

    def to_args(self) -> list[str]:
        return [*self.options, "-i", str(self.path)]


class FilterStage(BaseModel):
    """One filter chain with labelled inputs and outputs."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Stage name, for logs and tests")
    inputs: tuple[str, ...] = Field(..., description="Input pads, either 'N:v'/'N:a' or an earlier output label")
    expression: str = Field(..., description="Filter chain expression")
    outputs: tuple[str, ...] = Field(..., description="Output labels")

    def render(self) -> str:
        pads_in = "".join(f"[{label}]" for label in self.inputs)
        pads_out = "".join(f"[{label}]" for label in self.outputs)
        return f"{pads_in}{self.expression}{pads_out}"


class OutputSpec(BaseModel):
    """Mapping of the final streams into the encoded file."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Encoded output file")
    video_label: str = Field(..., description="Label of the final video stream")
    audio_label: str = Field(..., description="Label of the final audio stream")
    options: tuple[str, ...] = Field(default=(), description="Encoder and muxer options")

    def to_args(self) -> list[str]:
        return ["-map", f"[{self.video_label}]", "-map", f"[{self.audio_label}]", *self.options, str(self.path)]


class RenderGraphSpec(BaseModel):
    """Complete description of a single renderer invocation."""

    model_config = ConfigDict(frozen=True)

    inputs: tuple[InputSpec, ...] = Field(..., description="Inputs in index order")
    stages: tuple[FilterStage, ...] = Field(..., description="Filter stages in graph order")
    output: OutputSpec = Field(..., description="Output mapping")
    display_seconds: tuple[int, ...] = Field(..., description="Display duration of each visual input")

    @property
    def visual_seconds(self) -> int:
        return sum(self.display_seconds)

    def inputs_with_role(self, role: InputRole) -> list[InputSpec]:
        return [spec for spec in self.inputs if spec.role == role]

    def filter_complex(self) -> str:
        return ";".join(stage.render() for stage in self.stages)

    def to_args(self, binary: str = "ffmpeg") -> list[str]:
        args = [binary, "-y", "-hide_banner"]
        for spec in self.inputs:
            args.extend(spec.to_args())
        args.extend(["-filter_complex", self.filter_complex()])
        args.extend(self.output.to_args())
        return args

    def validate_graph(self) -> None:
        """
        Check that every pad reference resolves before invoking the renderer.

        Stream references ('N:v', 'N:a') must point at an existing input; every
        intermediate label must be produced once and consumed once, except the
        two labels mapped into the output.

        Raises:
            InvalidRenderGraphError: If the graph is malformed
        """
        produced: set[str] = set()
        consumed: set[str] = set()
        for stage in self.stages:
            for label in stage.inputs:
                index, sep, stream = label.partition(":")
                if sep:
                    if not index.isdigit() or int(index) >= len(self.inputs) or stream not in ("v", "a"):
                        raise InvalidRenderGraphError(f"stage '{stage.name}' references unknown stream [{label}]")
                    continue
                if label not in produced:
                    raise InvalidRenderGraphError(f"stage '{stage.name}' consumes undefined label [{label}]")
                if label in consumed:
                    raise InvalidRenderGraphError(f"label [{label}] is consumed twice")
                consumed.add(label)
            for label in stage.outputs:
                if label in produced:
                    raise InvalidRenderGraphError(f"label [{label}] is produced twice")
                produced.add(label)

        mapped = {self.output.video_label, self.output.audio_label}
        missing = mapped - (produced - consumed)
        if missing:
            raise InvalidRenderGraphError(f"output maps unavailable labels: {sorted(missing)}")
        dangling = produced - consumed - mapped
        if dangling:
            raise InvalidRenderGraphError(f"labels never consumed: {sorted(dangling)}")

        visual_count = len(self.inputs_with_role(InputRole.VISUAL))
        if visual_count != len(self.display_seconds):
            raise InvalidRenderGraphError(
                f"{visual_count} visual inputs but {len(self.display_seconds)} display durations"
            )


# ============================================================================
# Thumbnail Models
# ============================================================================


class ColorScheme(BaseModel):
    """Named thumbnail colour scheme."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Scheme name")
    primary: str = Field(..., description="Primary colour (hex)")
    accent: str = Field(..., description="Accent colour for topic text and rectangle (hex)")
    overlay: tuple[int, int, int, int] = Field(..., description="RGBA tint laid over the frame")


class ThumbnailSpec(BaseModel):
    """Everything needed to composite one thumbnail."""

    background_frame_path: Optional[Path] = Field(default=None, description="Extracted frame, None if extraction failed")
    title: str = Field(..., description="Short title drawn at the top")
    topic_text: str = Field(..., description="Topic text drawn in the centre")
    call_to_action: str = Field(..., description="Call-to-action line")
    color_scheme: ColorScheme = Field(..., description="Colour scheme")
    output_path: Path = Field(..., description="Thumbnail destination")


class ThumbnailResult(BaseModel):
    """Thumbnail file and the fallback level that produced it."""

    path: Path
    strategy: str


# ============================================================================
# Pipeline Models
# ============================================================================


class RunPaths(BaseModel):
    """Deterministic output locations for one run."""

    run_id: str
    video: Path
    captions: Path
    thumbnail: Path
    work_dir: Path


class CompositionRequest(BaseModel):
    """Inputs for one composition run."""

    script: ScriptRecord = Field(..., description="Ordered narration segments")
    narration_path: Path = Field(..., description="Synthesized narration audio")
    narration_duration_seconds: Optional[float] = Field(
        default=None, ge=0, description="Declared narration length; measured when omitted"
    )
    topic: Optional[ScoredTopic] = Field(default=None, description="Topic used for the thumbnail text")
    run_id: Optional[str] = Field(default=None, description="Run identifier; defaults to the script id")
    thumbnail_style: Optional[str] = Field(default=None, description="Thumbnail colour scheme name")


class CompositionResult(BaseModel):
    """The complete output triple of a successful run."""

    run_id: str
    video_path: Path
    captions_path: Path
    thumbnail_path: Path
    thumbnail_strategy: str
    reconciliation: DurationReconciliation
    visual_strategies: list[str] = Field(default_factory=list)
