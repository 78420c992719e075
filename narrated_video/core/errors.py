"""Exception hierarchy for the composition pipeline.

Errors fall into four groups:

* input errors (``EmptyTimelineError``) surface immediately and are never retried;
* tool errors (``ToolError`` and subclasses) are raised by the tool runner and are
  absorbed by a fallback ladder wherever one exists;
* terminal render errors (``RenderFailure``, ``RenderTimeout``) end the run;
* terminal thumbnail/asset errors (``ThumbnailFailure``, ``AssetProvisioningError``)
  mean every fallback level failed, which points at the environment (missing
  renderer) rather than at the data.
"""

from typing import Optional, Sequence


class CompositionError(Exception):
    """Base class for every error raised by the composition pipeline."""


class EmptyTimelineError(CompositionError, ValueError):
    """Raised when a stage receives a timeline with no segments."""


class InvalidRenderGraphError(CompositionError, ValueError):
    """Raised when a render graph references missing inputs or labels."""


class ToolError(CompositionError):
    """An external tool exited with a non-zero status."""

    def __init__(self, tool: str, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(f"{tool}: {message}")
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr


class ToolUnavailableError(ToolError):
    """The external tool binary could not be found or started."""


class ToolTimeoutError(ToolError):
    """The external tool did not finish within its timeout."""


class MediaProbeError(CompositionError):
    """A media file could not be opened or measured."""


class EmptyArtifactError(CompositionError):
    """A strategy reported success but left a missing or zero-byte file."""


class FallbackExhaustedError(CompositionError):
    """Every level of a fallback ladder failed."""

    def __init__(self, ladder: str, attempts: Sequence):
        summary = "; ".join(f"{a.strategy}: {a.error}" for a in attempts)
        super().__init__(f"{ladder} exhausted after {len(attempts)} attempts ({summary})")
        self.ladder = ladder
        self.attempts = list(attempts)


class AssetProvisioningError(CompositionError):
    """No strategy could produce a visual asset for a segment."""


class RenderFailure(CompositionError):
    """The rendering engine failed or produced an empty/unreadable file."""


class RenderTimeout(RenderFailure):
    """The rendering engine exceeded its timeout."""


class ThumbnailFailure(CompositionError):
    """Every thumbnail level failed; the renderer is most likely missing."""
