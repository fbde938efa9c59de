"""Segmentation endpoints and SSE stream."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response, StreamingResponse
from pydantic import BaseModel, Field

from scenescout.core.datamodels import THUMBNAIL_MIME, decode_data_url

from ..events import stream_events
from ..state import broadcaster, task_manager

router = APIRouter(prefix="/api", tags=["segmentation"])


class SegmentRequest(BaseModel):
    video_ids: List[str] = Field(default_factory=list)
    # None or 0 selects adaptive cut detection
    fixed_segment_seconds: Optional[float] = Field(None, ge=0)
    force: bool = False


def _stored_scenes(video_id: str) -> Dict[str, Any]:
    payload = task_manager.read_scenes(video_id)
    if payload is None:
        raise HTTPException(status_code=404, detail=f"no scenes for {video_id}")
    return payload


@router.post("/segment")
def segment_videos(request: SegmentRequest) -> Dict[str, Any]:
    """Queue segmentation tasks for the provided video ids."""

    return task_manager.enqueue(
        request.video_ids,
        fixed_segment_seconds=request.fixed_segment_seconds or None,
        force=request.force,
    )


@router.post("/segment/{video_id}/cancel")
def cancel_segmentation(video_id: str) -> Dict[str, Any]:
    """Cancel a queued or running task."""

    if not task_manager.cancel(video_id):
        raise HTTPException(status_code=404, detail=f"no pending task for {video_id}")
    return {"video_id": video_id, "cancelled": True}


@router.get("/segment/{video_id}")
def get_scenes(video_id: str) -> Dict[str, Any]:
    """Return the stored scene list of a finished task."""

    return _stored_scenes(video_id)


@router.get("/segment/{video_id}/scenes/{scene_id}/thumbnail")
def get_scene_thumbnail(video_id: str, scene_id: int) -> Response:
    for scene in _stored_scenes(video_id).get("scenes", []):
        if scene.get("id") == scene_id:
            return Response(content=decode_data_url(scene["thumbnail_data_url"]), media_type=THUMBNAIL_MIME)
    raise HTTPException(status_code=404, detail=f"scene {scene_id} not found in {video_id}")


@router.get("/events")
async def events(request: Request, video_id: Optional[str] = None) -> StreamingResponse:
    """SSE channel for task progress, optionally limited to one video."""

    snapshot = task_manager.snapshot()
    initial_messages = [{"type": "snapshot", "payload": snapshot}]
    generator = stream_events(request, broadcaster, initial_messages=initial_messages, video_id=video_id)
    return StreamingResponse(generator, media_type="text/event-stream")
