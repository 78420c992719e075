"""Pipeline orchestrators for the Narrated Video Composer."""

from narrated_video.pipelines.run_composition import CompositionPipeline, load_script, main

__all__ = ["CompositionPipeline", "load_script", "main"]
