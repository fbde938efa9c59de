"""Video upload and listing endpoints."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List
import json
import shutil

import cv2
from fastapi import APIRouter, File, UploadFile

from ..state import task_manager

router = APIRouter(prefix="/api", tags=["assets"])


def _safe_filename(name: str | None) -> str:
    if not name:
        return ""
    return Path(name).name


def _probe_duration_seconds(video_path: Path) -> float:
    capture = cv2.VideoCapture(str(video_path))
    if not capture.isOpened():
        return 0.0
    try:
        fps = capture.get(cv2.CAP_PROP_FPS) or 0.0
        frame_count = capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0
        if fps <= 0:
            return 0.0
        return float(frame_count / fps)
    finally:
        capture.release()


def _asset_payload(video_path: Path) -> Dict[str, Any]:
    workspace = task_manager.workspace
    video_id = video_path.stem
    scenes_path = workspace.scenes_path(video_id)
    status_path = workspace.status_path(video_id)

    status_payload: Dict[str, Any] = {}
    if status_path.exists():
        try:
            status_payload = json.loads(status_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            status_payload = {}

    status = status_payload.get("status") or ("done" if scenes_path.exists() else "idle")
    return {
        "id": video_id,
        "name": video_path.name,
        "duration": _probe_duration_seconds(video_path),
        "segmented": scenes_path.exists(),
        "scenes_url": f"/api/segment/{video_id}" if scenes_path.exists() else None,
        "status": status,
        "progress": status_payload.get("progress"),
    }


@router.get("/videos")
def list_videos() -> List[Dict[str, Any]]:
    """Return workspace video list."""

    task_manager.workspace.ensure_layout()
    return [_asset_payload(path) for path in task_manager.workspace.video_files()]


@router.post("/videos")
async def upload_videos(files: List[UploadFile] = File(...)) -> List[Dict[str, Any]]:
    """Receive uploaded videos and write into workspace."""

    workspace = task_manager.workspace
    workspace.ensure_layout()
    for upload in files:
        filename = _safe_filename(upload.filename)
        if not filename:
            continue
        destination = workspace.videos_dir / filename
        with destination.open("wb") as handle:
            shutil.copyfileobj(upload.file, handle)
        upload.file.close()
    return list_videos()
