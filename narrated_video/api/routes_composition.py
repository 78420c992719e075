"""FastAPI routes for composition runs."""

import threading

from fastapi import APIRouter, HTTPException

from narrated_video.core.config import settings
from narrated_video.core.errors import (
    AssetProvisioningError,
    CompositionError,
    EmptyTimelineError,
    RenderFailure,
    RenderTimeout,
    ThumbnailFailure,
)
from narrated_video.core.logging_config import get_logger
from narrated_video.models.schemas import CompositionRequest, CompositionResult
from narrated_video.pipelines.run_composition import CompositionPipeline

router = APIRouter(prefix="/compositions", tags=["compositions"])

# The renderer is CPU/IO heavy; at most max_concurrent_renders runs at once.
_render_slots = threading.BoundedSemaphore(max(1, settings.max_concurrent_renders))


@router.post("", response_model=CompositionResult)
def create_composition(request: CompositionRequest) -> CompositionResult:
    """
    Run one composition synchronously.

    Pipeline:
    TimelineBuilder → CaptionTrackGenerator → VisualAssetProvisioner → AudioMixPlanner
    → RenderGraphCompiler → ThumbnailComposer
    """
    logger = get_logger(__name__, run_id=request.run_id or request.script.id)

    if not _render_slots.acquire(blocking=False):
        raise HTTPException(status_code=429, detail="A render is already in progress")
    try:
        pipeline = CompositionPipeline(settings, logger)
        return pipeline.run(request)
    except EmptyTimelineError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except RenderTimeout as e:
        raise HTTPException(status_code=504, detail=f"Render timed out: {e}")
    except RenderFailure as e:
        raise HTTPException(status_code=502, detail=f"Render failed: {e}")
    except (AssetProvisioningError, ThumbnailFailure) as e:
        raise HTTPException(status_code=500, detail=f"Rendering environment fault: {e}")
    except CompositionError as e:
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        _render_slots.release()
