"""Caption Track Generator - one numbered subtitle cue per timed segment."""

from pathlib import Path
from typing import Any

from narrated_video.core.config import Settings
from narrated_video.models.schemas import CaptionCue, Timeline
from narrated_video.services.timeline_builder import require_non_empty
from narrated_video.utils.text_utils import collapse_whitespace

# Cue text for segments without words; an empty text line would end the block early.
EMPTY_CUE_TEXT = "..."


def format_timestamp(seconds: float) -> str:
    """Format seconds as HH:MM:SS,mmm."""
    total_ms = int(round(seconds * 1000))
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, ms = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{ms:03d}"


class CaptionTrackGenerator:
    """Emits a subtitle track aligned to a Timeline."""

    def __init__(self, settings: Settings, logger: Any):
        self.settings = settings
        self.logger = logger

    def build_cues(self, timeline: Timeline) -> list[CaptionCue]:
        """
        One cue per segment, 1-indexed, same order and time ranges.

        Segments without text still get a cue (keeping cue and segment counts
        equal) carrying EMPTY_CUE_TEXT.
        """
        require_non_empty(timeline, "Caption track")
        return [
            CaptionCue(
                index=position,
                start_offset_seconds=segment.start_offset_seconds,
                end_offset_seconds=segment.end_offset_seconds,
                text=collapse_whitespace(segment.text) or EMPTY_CUE_TEXT,
            )
            for position, segment in enumerate(timeline.segments, start=1)
        ]

    @staticmethod
    def render(cues: list[CaptionCue]) -> str:
        """Render cues as numbered cue / time range / text blocks."""
        blocks = []
        for cue in cues:
            time_range = f"{format_timestamp(cue.start_offset_seconds)} --> {format_timestamp(cue.end_offset_seconds)}"
            blocks.append(f"{cue.index}\n{time_range}\n{cue.text}\n")
        return "\n".join(blocks)

    def write(self, timeline: Timeline, path: Path) -> Path:
        """
        Write the caption track for a timeline.

        Args:
            timeline: Non-empty timeline
            path: Destination .srt file

        Returns:
            Path to the written caption file
        """
        cues = self.build_cues(timeline)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(cues), encoding="utf-8")
        self.logger.info(f"Caption track written: {path} ({len(cues)} cues)")
        return path
