"""Narrated Video Composer - narrated video, captions and thumbnail from timed script segments."""

__version__ = "1.0.0"
