"""Timeline Builder - lays narration segments out back-to-back on an integer-second schedule."""

from typing import Any, Iterable

from narrated_video.core.config import Settings
from narrated_video.core.errors import EmptyTimelineError
from narrated_video.models.schemas import NarrationSegment, ScriptRecord, TimedSegment, Timeline
from narrated_video.utils.text_utils import spoken_seconds


class TimelineBuilder:
    """Turns ordered narration segments into a contiguous Timeline."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the timeline builder.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.words_per_second = settings.words_per_second

    def segment_duration(self, segment: NarrationSegment) -> int:
        """Whole seconds for one segment: ceil(word_count / words_per_second)."""
        return spoken_seconds(segment.word_count, self.words_per_second)

    def build(self, segments: Iterable[NarrationSegment]) -> Timeline:
        """
        Build a timeline from segments in narration order.

        The total is the integer sum of per-segment durations and is never
        measured from the synthesized audio.

        Args:
            segments: Ordered narration segments

        Returns:
            Timeline (zero-length when ``segments`` is empty)
        """
        timed = []
        cursor = 0
        for segment in segments:
            duration = self.segment_duration(segment)
            timed.append(
                TimedSegment(
                    **segment.model_dump(include={"kind", "text", "word_count", "visual_hint"}),
                    start_offset_seconds=cursor,
                    end_offset_seconds=cursor + duration,
                )
            )
            cursor += duration

        timeline = Timeline(segments=tuple(timed), total_duration_seconds=cursor)
        if timeline.is_empty:
            self.logger.warning("Timeline built from an empty segment list")
        else:
            self.logger.info(f"Timeline: {len(timed)} segments, {cursor}s total")
        return timeline

    def build_from_script(self, script: ScriptRecord) -> Timeline:
        """Build a timeline from a script record's segments."""
        return self.build(script.segments)


def require_non_empty(timeline: Timeline, stage: str) -> Timeline:
    """
    Guard used by downstream stages.

    Raises:
        EmptyTimelineError: If the timeline has no segments
    """
    if timeline.is_empty:
        raise EmptyTimelineError(f"{stage} needs at least one timed segment")
    return timeline
