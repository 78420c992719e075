"""Tests for Render Graph Compiler service."""

from pathlib import Path

import pytest

from narrated_video.core.errors import (
    EmptyTimelineError,
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
    NarrationSegment,
    OutputSpec,
    RenderGraphSpec,
    Timeline,
    VisualAsset,
)
from narrated_video.services.render_graph import (
    RenderGraphCompiler,
    RenderProfile,
    compile_render_graph,
    display_durations,
)
from narrated_video.services.timeline_builder import TimelineBuilder
from narrated_video.utils.text_utils import escape_filter_value


@pytest.fixture
def timeline(settings, logger, example_segments):
    """Timeline for the six example segments (59s)."""
    return TimelineBuilder(settings, logger).build(example_segments)


@pytest.fixture
def assets(timeline, tmp_path):
    """One placeholder asset per segment."""
    return [
        VisualAsset(
            segment_index=i,
            kind=segment.kind,
            path=tmp_path / "work" / f"run_segment_{i}.png",
            strategy="placeholder",
        )
        for i, segment in enumerate(timeline.segments)
    ]


@pytest.fixture
def profile(settings):
    """Render profile from test settings."""
    return RenderProfile.from_settings(settings)


@pytest.fixture
def narration_only(tmp_path):
    return AudioMixPlan(narration_path=tmp_path / "narration.mp3")


@pytest.fixture
def with_music(tmp_path):
    return AudioMixPlan(
        narration_path=tmp_path / "narration.mp3",
        music_path=tmp_path / "music.mp3",
        narration_level=0.3,
        music_level=0.1,
    )


def _compile(timeline, assets, mix_plan, profile, tmp_path):
    return compile_render_graph(
        timeline, assets, mix_plan, tmp_path / "run_captions.srt", tmp_path / "out" / "run_video.mp4", profile
    )


def test_input_layout_narration_only(timeline, assets, narration_only, profile, tmp_path):
    """Six visual inputs followed by a single audio input."""
    spec = _compile(timeline, assets, narration_only, profile, tmp_path)

    assert len(spec.inputs_with_role(InputRole.VISUAL)) == 6
    assert len(spec.inputs_with_role(InputRole.NARRATION)) == 1
    assert spec.inputs_with_role(InputRole.MUSIC) == []
    assert [i.role for i in spec.inputs][:6] == [InputRole.VISUAL] * 6
    assert spec.inputs[6].role == InputRole.NARRATION


def test_input_layout_with_music(timeline, assets, with_music, profile, tmp_path):
    """Music adds a second audio input and an amix stage."""
    spec = _compile(timeline, assets, with_music, profile, tmp_path)

    audio_inputs = spec.inputs_with_role(InputRole.NARRATION) + spec.inputs_with_role(InputRole.MUSIC)
    assert len(audio_inputs) == 2
    stages = {stage.name: stage for stage in spec.stages}
    assert stages["narration"].expression == "volume=0.3"
    assert stages["music"].expression == "volume=0.1"
    assert stages["music"].inputs == ("7:a",)
    assert stages["mix"].expression == "amix=inputs=2:duration=longest"


def test_single_caption_stage_on_final_video(timeline, assets, narration_only, profile, tmp_path):
    """Captions are burned in exactly once, as the last video stage."""
    spec = _compile(timeline, assets, narration_only, profile, tmp_path)

    caption_stages = [stage for stage in spec.stages if stage.expression.startswith("subtitles=")]
    assert len(caption_stages) == 1
    assert caption_stages[0].inputs == ("vcat",)
    assert caption_stages[0].outputs == (spec.output.video_label,)
    assert "FontName=Arial" in caption_stages[0].expression
    assert escape_filter_value(str(tmp_path / "run_captions.srt")) in caption_stages[0].expression


def test_timeline_slots(timeline, assets, narration_only, profile, tmp_path):
    """Each visual is shown for its segment duration."""
    spec = _compile(timeline, assets, narration_only, profile, tmp_path)

    assert spec.display_seconds == (4, 12, 16, 18, 5, 4)
    assert spec.visual_seconds == 59
    assert spec.inputs[0].options == ("-loop", "1", "-t", "4")


def test_uniform_slots(timeline, assets, narration_only, profile, tmp_path):
    """Uniform slots give every visual two seconds."""
    uniform = profile.model_copy(update={"slot_policy": "uniform"})
    spec = _compile(timeline, assets, narration_only, uniform, tmp_path)

    assert spec.display_seconds == (2,) * 6
    assert spec.visual_seconds == 12


def test_zero_length_segment_is_shown_for_one_second(settings, logger, profile):
    """A segment without words still gets a visible slot."""
    timeline = TimelineBuilder(settings, logger).build(
        [NarrationSegment(kind="hook", text=""), NarrationSegment(kind="cta", text="one two three")]
    )
    assert display_durations(timeline, profile) == [1, 2]


def test_unknown_slot_policy(timeline, profile):
    with pytest.raises(ValueError):
        display_durations(timeline, profile.model_copy(update={"slot_policy": "random"}))


def test_compilation_is_deterministic(timeline, assets, with_music, profile, tmp_path):
    """Identical inputs compile to identical invocations."""
    first = _compile(timeline, assets, with_music, profile, tmp_path)
    second = _compile(timeline, assets, with_music, profile, tmp_path)

    assert first == second
    assert first.to_args() == second.to_args()


def test_shortest_flag_and_codecs(timeline, assets, narration_only, profile, tmp_path):
    """Output stops at the shorter stream and uses the configured encoders."""
    args = _compile(timeline, assets, narration_only, profile, tmp_path).to_args("ffmpeg")

    assert args[0] == "ffmpeg"
    assert "-shortest" in args
    assert args[args.index("-c:v") + 1] == "libx264"
    assert args[args.index("-crf") + 1] == "23"
    assert args[args.index("-b:a") + 1] == "192k"
    assert args[args.index("-pix_fmt") + 1] == "yuv420p"
    assert args[-1] == str(tmp_path / "out" / "run_video.mp4")
    assert args.count("-filter_complex") == 1


def test_assets_are_ordered_by_segment(timeline, assets, narration_only, profile, tmp_path):
    """Asset order in the input list follows the segment index."""
    spec = _compile(timeline, list(reversed(assets)), narration_only, profile, tmp_path)

    visual_paths = [i.path for i in spec.inputs_with_role(InputRole.VISUAL)]
    assert visual_paths == [asset.path for asset in assets]


def test_missing_asset_rejected(timeline, assets, narration_only, profile, tmp_path):
    with pytest.raises(InvalidRenderGraphError):
        _compile(timeline, assets[:-1], narration_only, profile, tmp_path)


def test_empty_timeline_rejected(narration_only, profile, tmp_path):
    with pytest.raises(EmptyTimelineError):
        _compile(Timeline(), [], narration_only, profile, tmp_path)


def _single_input_graph(stages, video_label="vout", audio_label="aout"):
    return RenderGraphSpec(
        inputs=(
            InputSpec(role=InputRole.VISUAL, path=Path("a.png")),
            InputSpec(role=InputRole.NARRATION, path=Path("n.mp3")),
        ),
        stages=tuple(stages),
        output=OutputSpec(path=Path("out.mp4"), video_label=video_label, audio_label=audio_label),
        display_seconds=(1,),
    )


def test_validate_graph_accepts_wellformed_graph():
    _single_input_graph(
        [
            FilterStage(name="v", inputs=("0:v",), expression="null", outputs=("vout",)),
            FilterStage(name="a", inputs=("1:a",), expression="anull", outputs=("aout",)),
        ]
    ).validate_graph()


def test_validate_graph_rejects_unknown_stream():
    graph = _single_input_graph(
        [
            FilterStage(name="v", inputs=("5:v",), expression="null", outputs=("vout",)),
            FilterStage(name="a", inputs=("1:a",), expression="anull", outputs=("aout",)),
        ]
    )
    with pytest.raises(InvalidRenderGraphError, match="unknown stream"):
        graph.validate_graph()


def test_validate_graph_rejects_undefined_label():
    graph = _single_input_graph(
        [
            FilterStage(name="v", inputs=("missing",), expression="null", outputs=("vout",)),
            FilterStage(name="a", inputs=("1:a",), expression="anull", outputs=("aout",)),
        ]
    )
    with pytest.raises(InvalidRenderGraphError, match="undefined label"):
        graph.validate_graph()


def test_validate_graph_rejects_dangling_label():
    graph = _single_input_graph(
        [
            FilterStage(name="v", inputs=("0:v",), expression="split", outputs=("vout", "extra")),
            FilterStage(name="a", inputs=("1:a",), expression="anull", outputs=("aout",)),
        ]
    )
    with pytest.raises(InvalidRenderGraphError, match="never consumed"):
        graph.validate_graph()


def test_validate_graph_rejects_unmapped_output():
    graph = _single_input_graph(
        [FilterStage(name="v", inputs=("0:v",), expression="null", outputs=("vout",))]
    )
    with pytest.raises(InvalidRenderGraphError, match="unavailable labels"):
        graph.validate_graph()


@pytest.fixture
def compiled(settings, logger, timeline, assets, narration_only, tmp_path):
    compiler = RenderGraphCompiler(settings, logger, probe=None)
    return compiler.compile(
        timeline, assets, narration_only, tmp_path / "run_captions.srt", tmp_path / "out" / "run_video.mp4"
    )


def test_render_invokes_renderer_once(settings, logger, fake_runner, compiled):
    """A successful render returns the output path after one invocation."""
    compiler = RenderGraphCompiler(settings, logger, runner=fake_runner, probe=lambda path: 59.0)

    path = compiler.render(compiled)

    assert path == compiled.output.path
    assert path.stat().st_size > 0
    assert len(fake_runner.calls) == 1
    assert fake_runner.calls[0]["tool"] == "renderer"
    assert fake_runner.calls[0]["timeout"] == 300
    assert fake_runner.calls[0]["args"] == compiled.to_args(settings.ffmpeg_binary)


def test_render_timeout_override(settings, logger, fake_runner, compiled):
    compiler = RenderGraphCompiler(settings, logger, runner=fake_runner, probe=None)
    compiler.render(compiled, timeout=5)

    assert fake_runner.calls[0]["timeout"] == 5


def test_render_timeout_raises_render_timeout(settings, logger, runner_factory, compiled):
    """A renderer timeout surfaces as RenderTimeout."""
    runner = runner_factory(error=ToolTimeoutError("renderer", "timed out after 300s"))
    compiler = RenderGraphCompiler(settings, logger, runner=runner, probe=None)

    with pytest.raises(RenderTimeout):
        compiler.render(compiled)


def test_render_error_raises_render_failure(settings, logger, runner_factory, compiled):
    """A failing renderer surfaces as RenderFailure and is not retried."""
    runner = runner_factory(error=ToolError("renderer", "exited with status 1", returncode=1))
    compiler = RenderGraphCompiler(settings, logger, runner=runner, probe=None)

    with pytest.raises(RenderFailure) as exc_info:
        compiler.render(compiled)

    assert not isinstance(exc_info.value, RenderTimeout)
    assert len(runner.calls) == 1


def test_zero_byte_output_is_a_failure(settings, logger, runner_factory, compiled):
    """Exit status 0 with an empty file still fails the render."""
    compiler = RenderGraphCompiler(settings, logger, runner=runner_factory(payload=b""), probe=None)

    with pytest.raises(RenderFailure, match="empty or missing"):
        compiler.render(compiled)


def test_unreadable_output_is_a_failure(settings, logger, fake_runner, compiled):
    """A file the probe cannot read fails the render."""

    def broken_probe(path):
        raise MediaProbeError("moov atom not found")

    compiler = RenderGraphCompiler(settings, logger, runner=fake_runner, probe=broken_probe)

    with pytest.raises(RenderFailure, match="unreadable"):
        compiler.render(compiled)


def test_hanging_probe_is_a_failure(short_timeout_settings, logger, fake_runner, hanging_call, compiled):
    """A probe that never returns fails the render instead of blocking it."""
    compiler = RenderGraphCompiler(short_timeout_settings, logger, runner=fake_runner, probe=hanging_call)

    with pytest.raises(RenderFailure, match="timed out"):
        compiler.render(compiled)
