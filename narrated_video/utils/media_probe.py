"""Media probing backed by moviepy."""

from pathlib import Path

from moviepy import AudioFileClip, VideoFileClip

from narrated_video.core.errors import MediaProbeError

VIDEO_SUFFIXES = {".mp4", ".mov", ".mkv", ".webm", ".avi"}


def probe_duration(path: Path) -> float:
    """
    Measure the duration of an audio or video file.

    Args:
        path: Media file

    Returns:
        Duration in seconds

    Raises:
        MediaProbeError: If the file is missing or cannot be decoded
    """
    path = Path(path)
    if not path.is_file():
        raise MediaProbeError(f"media file not found: {path}")

    clip_class = VideoFileClip if path.suffix.lower() in VIDEO_SUFFIXES else AudioFileClip
    try:
        with clip_class(str(path)) as clip:
            duration = clip.duration
    except Exception as e:
        raise MediaProbeError(f"could not read {path}: {e}") from e

    if not duration or duration <= 0:
        raise MediaProbeError(f"{path} reports no duration")
    return float(duration)
