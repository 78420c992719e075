"""Thumbnail Composer - styled overlay on a video frame, with two degraded fallbacks."""

import zlib
from pathlib import Path
from typing import Any, Callable, Optional

import numpy as np
from moviepy import VideoFileClip
from PIL import Image, ImageDraw

from narrated_video.core.config import Settings
from narrated_video.core.errors import FallbackExhaustedError, MediaProbeError, ThumbnailFailure
from narrated_video.models.schemas import ColorScheme, ScoredTopic, ThumbnailResult, ThumbnailSpec
from narrated_video.utils.error_handler import format_error_message, get_fallback_suggestion
from narrated_video.utils.fallback import FallbackLadder, Strategy
from narrated_video.utils.image_utils import load_font, resize_to_fill
from narrated_video.utils.io_utils import remove_quietly
from narrated_video.utils.parallel_executor import call_with_timeout
from narrated_video.utils.text_utils import escape_filter_value, truncate
from narrated_video.utils.tool_runner import ToolRunner

COLOR_SCHEMES = {
    "minimal": ColorScheme(name="minimal", primary="#000000", accent="#333333", overlay=(0, 0, 0, 77)),
    "bold": ColorScheme(name="bold", primary="#FF0000", accent="#FF5722", overlay=(255, 0, 0, 51)),
    "contrast": ColorScheme(name="contrast", primary="#2196F3", accent="#FFC107", overlay=(33, 150, 243, 51)),
    "gradient": ColorScheme(name="gradient", primary="#9C27B0", accent="#673AB7", overlay=(156, 39, 176, 51)),
}
DEFAULT_SCHEME = "bold"

FALLBACK_PALETTE = ["red", "blue", "green", "purple", "orange", "teal"]

TITLE_LIMIT = 40
FLAT_TEXT_LIMIT = 50


def get_color_scheme(style: Optional[str]) -> ColorScheme:
    """Look up a named scheme, defaulting to 'bold'."""
    return COLOR_SCHEMES.get((style or DEFAULT_SCHEME).lower(), COLOR_SCHEMES[DEFAULT_SCHEME])


def create_thumbnail_title(query: str) -> str:
    """Topic query cut to 40 characters."""
    return truncate(query, TITLE_LIMIT, "...")


def pick_fallback_color(text: str) -> str:
    """Deterministic palette colour for a given text."""
    return FALLBACK_PALETTE[zlib.crc32(text.encode("utf-8")) % len(FALLBACK_PALETTE)]


def extract_frame(video_path: Path, offset_seconds: float, frame_path: Path) -> Path:
    """
    Save one frame of a video as a JPEG.

    Args:
        video_path: Rendered video
        offset_seconds: Frame time (clamped to the clip length)
        frame_path: Destination image

    Returns:
        Path to the saved frame

    Raises:
        MediaProbeError: If the video cannot be opened or decoded
    """
    video_path = Path(video_path)
    if not video_path.exists():
        raise MediaProbeError(f"video file not found: {video_path}")
    try:
        with VideoFileClip(str(video_path)) as clip:
            frame_time = min(offset_seconds, max(clip.duration - 0.05, 0))
            frame = clip.get_frame(frame_time)
    except Exception as e:
        raise MediaProbeError(f"could not extract frame from {video_path}: {e}") from e

    frame_path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(frame.astype(np.uint8)).save(frame_path, "JPEG", quality=95)
    return frame_path


class ThumbnailComposer:
    """Generates a 1280x720 thumbnail from the rendered video."""

    STRATEGY_STYLED = "styled_overlay"
    STRATEGY_DRAWTEXT = "drawtext_overlay"
    STRATEGY_FLAT = "flat_color"

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        runner: Optional[ToolRunner] = None,
        frame_extractor: Callable[[Path, float, Path], Path] = extract_frame,
    ):
        """
        Initialize thumbnail composer.

        Args:
            settings: Application settings
            logger: Logger instance
            runner: Tool runner for the renderer-based levels (created when omitted)
            frame_extractor: Function saving one video frame to an image file
        """
        self.settings = settings
        self.logger = logger
        self.runner = runner or ToolRunner(settings, logger)
        self.frame_extractor = frame_extractor
        self.width = settings.thumbnail_width
        self.height = settings.thumbnail_height

    def _ladder(self) -> FallbackLadder[ThumbnailSpec]:
        return FallbackLadder(
            "Thumbnail",
            [
                Strategy(self.STRATEGY_STYLED, self._compose_styled),
                Strategy(self.STRATEGY_DRAWTEXT, self._compose_drawtext),
                Strategy(self.STRATEGY_FLAT, self._compose_flat),
            ],
            self.logger,
            service="Thumbnail",
        )

    def compose(
        self,
        video_path: Path,
        topic: ScoredTopic,
        output_path: Path,
        work_dir: Path,
        style: Optional[str] = None,
    ) -> ThumbnailResult:
        """
        Compose a thumbnail for a rendered video.

        Frame extraction is bounded by tool_timeout_seconds. Its failures are
        not handled separately: the frame is simply missing and the ladder
        moves past the levels that need it.

        Args:
            video_path: Rendered video
            topic: Topic record supplying the thumbnail text
            output_path: Thumbnail destination
            work_dir: Scratch directory for the extracted frame
            style: Colour scheme name (defaults to thumbnail_style)

        Returns:
            ThumbnailResult with the path and the level that produced it

        Raises:
            ThumbnailFailure: If every level failed
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        frame_path = Path(work_dir) / f"{output_path.stem}_frame.jpg"

        background: Optional[Path] = None
        try:
            background = call_with_timeout(
                self.frame_extractor,
                self.settings.tool_timeout_seconds,
                Path(video_path),
                self.settings.thumbnail_frame_offset_seconds,
                frame_path,
                label="frame extraction",
            )
        except Exception as e:
            self.logger.warning(
                format_error_message(
                    "Extracting thumbnail frame",
                    e,
                    context={"video": Path(video_path).name},
                    suggestion=get_fallback_suggestion("Frame Extraction", e),
                )
            )

        spec = ThumbnailSpec(
            background_frame_path=background,
            title=create_thumbnail_title(topic.query),
            topic_text=topic.query,
            call_to_action=self.settings.thumbnail_call_to_action,
            color_scheme=get_color_scheme(style or self.settings.thumbnail_style),
            output_path=output_path,
        )

        try:
            outcome = self._ladder().run(spec, context={"thumbnail": output_path.name})
        except FallbackExhaustedError as e:
            remove_quietly([output_path], self.logger)
            raise ThumbnailFailure(f"no thumbnail level succeeded; is the renderer installed? {e}") from e
        finally:
            remove_quietly([frame_path], self.logger)

        self.logger.info(f"✅ Thumbnail saved: {outcome.path} (level: {outcome.strategy})")
        return ThumbnailResult(path=outcome.path, strategy=outcome.strategy)

    @staticmethod
    def _require_frame(spec: ThumbnailSpec) -> Path:
        if spec.background_frame_path is None or not Path(spec.background_frame_path).is_file():
            raise MediaProbeError("no background frame available")
        return Path(spec.background_frame_path)

    def _compose_styled(self, spec: ThumbnailSpec) -> Path:
        """Preferred level: Pillow overlay with title, topic, call-to-action and accent bar."""
        frame_path = self._require_frame(spec)
        scheme = spec.color_scheme
        w, h = self.width, self.height

        with Image.open(frame_path) as frame:
            base = resize_to_fill(frame.convert("RGB"), (w, h)).convert("RGBA")
        tint = Image.new("RGBA", (w, h), scheme.overlay)
        img = Image.alpha_composite(base, tint)

        draw = ImageDraw.Draw(img)
        title_font = load_font(60, self.settings.font_path)
        topic_font = load_font(90, self.settings.font_path)
        cta_font = load_font(36, self.settings.font_path)

        draw.text((w / 2, 100), spec.title, font=title_font, fill="white", anchor="mt",
                  stroke_width=3, stroke_fill="black")
        draw.text((w / 2, h / 2), truncate(spec.topic_text, TITLE_LIMIT, "..."), font=topic_font,
                  fill=scheme.accent, anchor="mm", stroke_width=4, stroke_fill="black")
        draw.text((w / 2, h - 100), spec.call_to_action, font=cta_font, fill="white", anchor="mb",
                  stroke_width=2, stroke_fill="black")
        draw.rectangle((100, h - 150, w - 100, h - 120), fill=scheme.accent)

        img.convert("RGB").save(spec.output_path, "PNG")
        return spec.output_path

    def _drawtext_filter(self, text: str, fontsize: int, boxborderw: int) -> str:
        options = [
            f"text={escape_filter_value(text)}",
            "expansion=none",
            "fontcolor=white",
            f"fontsize={fontsize}",
            "box=1",
            "boxcolor=black@0.5",
            f"boxborderw={boxborderw}",
            "x=(w-text_w)/2",
            "y=(h-text_h)/2",
        ]
        if self.settings.font_path:
            options.insert(1, f"fontfile={escape_filter_value(self.settings.font_path)}")
        return "drawtext=" + ":".join(options)

    def _compose_drawtext(self, spec: ThumbnailSpec) -> Path:
        """Second level: single centred text drawn by the renderer on the same frame."""
        frame_path = self._require_frame(spec)
        w, h = self.width, self.height
        video_filter = (
            f"scale={w}:{h}:force_original_aspect_ratio=increase,crop={w}:{h},"
            + self._drawtext_filter(spec.topic_text, fontsize=60, boxborderw=5)
        )
        self.runner.run(
            [
                self.settings.ffmpeg_binary, "-y", "-hide_banner",
                "-i", str(frame_path),
                "-vf", video_filter,
                "-frames:v", "1",
                str(spec.output_path),
            ],
            tool="renderer",
            timeout=self.settings.tool_timeout_seconds,
        )
        return spec.output_path

    def _compose_flat(self, spec: ThumbnailSpec) -> Path:
        """Last level: flat palette colour with centred text; needs no frame."""
        text = truncate(spec.topic_text, FLAT_TEXT_LIMIT)
        color = pick_fallback_color(spec.topic_text)
        self.runner.run(
            [
                self.settings.ffmpeg_binary, "-y", "-hide_banner",
                "-f", "lavfi",
                "-i", f"color=c={color}:s={self.width}x{self.height}:d=1",
                "-vf", self._drawtext_filter(text, fontsize=48, boxborderw=10),
                "-frames:v", "1",
                str(spec.output_path),
            ],
            tool="renderer",
            timeout=self.settings.tool_timeout_seconds,
        )
        return spec.output_path
