"""Error Handler - provides user-friendly error messages for fallbacks and terminal failures."""

from typing import Optional


def format_error_message(
    operation: str,
    error: Exception,
    context: Optional[dict] = None,
    suggestion: Optional[str] = None,
) -> str:
    """
    Format a user-friendly error message.

    Args:
        operation: What operation was being performed (e.g., "Rendering placeholder image")
        error: The exception that occurred
        context: Additional context (e.g., {"segment": 3, "run_id": "run_456"})
        suggestion: Optional suggestion for how to fix the issue

    Returns:
        Formatted error message
    """
    error_type = type(error).__name__
    error_msg = str(error)

    context_str = ""
    if context:
        context_parts = [f"{k}={v}" for k, v in context.items()]
        context_str = f" ({', '.join(context_parts)})"

    message = f"❌ {operation} failed{context_str}\n"
    message += f"   Error: {error_type}: {error_msg}"

    if suggestion:
        message += f"\n   💡 Suggestion: {suggestion}"

    return message


def get_fallback_suggestion(service: str, error: Exception) -> Optional[str]:
    """
    Get a suggestion for how to handle a service failure.

    Args:
        service: Service name ("Rasterizer", "Renderer", "Frame Extraction", "Thumbnail")
        error: The exception

    Returns:
        Suggestion string or None
    """
    error_msg = str(error).lower()

    if service == "Rasterizer":
        if "font" in error_msg:
            return "No usable font found. Set FONT_PATH to a TrueType font. Falling back to a flat frame."
        return "Placeholder rendering failed. Falling back to a flat-coloured frame."

    elif service == "Renderer":
        if "not found" in error_msg or "no such file" in error_msg:
            return "The ffmpeg binary is missing. Install ffmpeg or set FFMPEG_BINARY."
        elif "timed out" in error_msg or "timeout" in error_msg:
            return "Render timed out. Raise RENDER_TIMEOUT_SECONDS or shorten the script."
        elif "empty" in error_msg or "unreadable" in error_msg:
            return "Renderer produced no usable file. Check the inputs and the ffmpeg log above."
        return "Render failed. The run can be retried as a whole."

    elif service == "Frame Extraction":
        return "Could not read a frame from the video. Thumbnail will use a flat-colour background."

    elif service == "Thumbnail":
        if "not found" in error_msg or "no such file" in error_msg:
            return "The ffmpeg binary is missing. Trying the next thumbnail level."
        return "Thumbnail level failed. Trying the next level."

    return None
