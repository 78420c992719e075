"""Application configuration using pydantic-settings."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via environment variables or a .env file.
    See .env.example for a template.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # Application Settings
    # ========================================================================
    app_name: str = Field(default="Narrated Video Composer", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_file: Optional[str] = Field(default=None, description="Optional log file path (rotated, zip-compressed)")
    log_json: bool = Field(default=False, description="Write the log file as JSON lines")

    # ========================================================================
    # Output & Assets
    # ========================================================================
    output_dir: str = Field(default="outputs", description="Directory for rendered videos, captions and thumbnails")
    background_music_path: str = Field(
        default="assets/music/background.mp3",
        description="Well-known background music location (mixed in when the file exists)",
    )
    keep_visual_assets: bool = Field(
        default=False,
        description="Leave per-segment placeholder images next to the outputs instead of deleting them",
    )

    # ========================================================================
    # Video Target
    # ========================================================================
    video_width: int = Field(default=1920, description="Video output width in pixels (default: 1920)")
    video_height: int = Field(default=1080, description="Video output height in pixels (default: 1080)")
    frame_rate: int = Field(default=30, description="Output frame rate (default: 30)")
    video_codec: str = Field(default="libx264", description="Video codec passed to the renderer")
    video_preset: str = Field(default="medium", description="Encoder preset")
    video_crf: int = Field(default=23, description="Constant rate factor for the video encoder")
    pixel_format: str = Field(default="yuv420p", description="Output pixel format")

    # ========================================================================
    # Audio Mix
    # ========================================================================
    audio_codec: str = Field(default="aac", description="Audio codec passed to the renderer")
    audio_bitrate: str = Field(default="192k", description="Audio bitrate")
    narration_level: float = Field(
        default=0.3, description="Narration volume when background music is mixed in (default: 0.3)"
    )
    music_level: float = Field(default=0.1, description="Background music volume (default: 0.1)")

    # ========================================================================
    # Timing
    # ========================================================================
    words_per_second: float = Field(default=2.5, description="Narration speed (2.5 words/second = 150 wpm)")
    slot_policy: str = Field(
        default="timeline",
        description="Visual display durations: 'timeline' (match segment durations) or 'uniform' (fixed slots)",
    )
    uniform_slot_seconds: int = Field(default=2, description="Per-visual display seconds under the uniform policy")

    # ========================================================================
    # Captions
    # ========================================================================
    caption_font: str = Field(default="Arial", description="Burned-in caption font name")
    caption_font_size: int = Field(default=24, description="Burned-in caption font size")
    caption_primary_colour: str = Field(default="&HFFFFFF&", description="Caption colour (ASS &HBBGGRR& format)")

    # ========================================================================
    # External Tools
    # ========================================================================
    ffmpeg_binary: str = Field(default="ffmpeg", description="Rendering engine executable")
    render_timeout_seconds: float = Field(default=300.0, description="Render invocation timeout (default: 300s)")
    tool_timeout_seconds: float = Field(
        default=60.0, description="Timeout for single-frame renderer calls, frame extraction and media probes (default: 60s)"
    )
    font_path: Optional[str] = Field(
        default=None, description="TrueType font used by the rasterizer (system fonts are tried when unset)"
    )
    placeholder_text_limit: int = Field(default=100, description="Max characters of segment text on a placeholder")

    # ========================================================================
    # Concurrency
    # ========================================================================
    max_concurrent_renders: int = Field(
        default=1, description="Maximum renders in flight across runs (callers must serialize; default: 1)"
    )
    max_parallel_asset_jobs: int = Field(
        default=1, description="Maximum placeholder images provisioned concurrently within one run (default: 1)"
    )

    # ========================================================================
    # Thumbnail Settings
    # ========================================================================
    thumbnail_width: int = Field(default=1280, description="Thumbnail width in pixels (default: 1280)")
    thumbnail_height: int = Field(default=720, description="Thumbnail height in pixels (default: 720)")
    thumbnail_style: str = Field(
        default="bold", description="Thumbnail colour scheme: 'minimal', 'bold', 'contrast' or 'gradient'"
    )
    thumbnail_frame_offset_seconds: float = Field(
        default=2.0, description="Offset of the frame extracted from the rendered video (default: 2s)"
    )
    thumbnail_call_to_action: str = Field(
        default="▶ WATCH NOW • COMPLETE GUIDE", description="Call-to-action line on styled thumbnails"
    )


# Global settings instance
settings = Settings()
