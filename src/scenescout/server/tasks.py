"""Segmentation task queue and persistence."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
import json
from pathlib import Path
import threading
import time
from typing import Any, Deque, Dict, Iterable, List, Optional

from scenescout.core import PipelineConfig, SegmentationCancelled, SegmentationError, get_logger, load_config
from scenescout.segment import SegmentResult, segment_video

from .events import EventBroadcaster
from .workspace import Workspace, default_workspace

logger = get_logger(__name__)


@dataclass(slots=True)
class TaskStatus:
    video_id: str
    status: str
    progress: float
    message: str
    updated_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "video_id": self.video_id,
            "status": self.status,
            "progress": self.progress,
            "message": self.message,
            "updated_at": self.updated_at,
        }


@dataclass(slots=True)
class SegmentJob:
    video_id: str
    fixed_segment_seconds: Optional[float] = None


class TaskManager:
    """Single-worker queue for segmentation tasks.

    One worker thread means one decode resource in use at a time; a running
    job can be cancelled and stops between two frame captures.
    """

    def __init__(
        self,
        broadcaster: EventBroadcaster,
        *,
        workspace: Workspace | None = None,
        config: PipelineConfig | None = None,
        start_worker: bool = True,
    ) -> None:
        self._lock = threading.Lock()
        self._queue: Deque[SegmentJob] = deque()
        self._active: Optional[str] = None
        self._active_job: Optional[SegmentJob] = None
        self._cancel_requested: set[str] = set()
        self._broadcaster = broadcaster
        self._workspace = workspace or default_workspace()
        self._config = config or load_config()
        self._workspace.ensure_layout()
        self._load_queue_state()
        if start_worker:
            threading.Thread(target=self._worker_loop, daemon=True).start()

    @property
    def workspace(self) -> Workspace:
        return self._workspace

    def enqueue(
        self,
        video_ids: Iterable[str],
        *,
        fixed_segment_seconds: Optional[float] = None,
        force: bool = False,
    ) -> Dict[str, Any]:
        self._workspace.ensure_layout()
        queued: List[str] = []
        cached: List[str] = []
        skipped: List[str] = []
        with self._lock:
            pending_ids = {job.video_id for job in self._queue}
            for video_id in video_ids:
                if not self._workspace.resolve_video(video_id):
                    skipped.append(video_id)
                    continue
                if video_id == self._active or video_id in pending_ids:
                    skipped.append(video_id)
                    continue
                if force or not self._cache_matches(video_id, fixed_segment_seconds):
                    self._clear_artifacts(video_id)
                else:
                    cached.append(video_id)
                    self._write_status(video_id, status="cached", progress=1.0, message="cached")
                    continue
                self._queue.append(SegmentJob(video_id=video_id, fixed_segment_seconds=fixed_segment_seconds))
                pending_ids.add(video_id)
                queued.append(video_id)
                self._write_status(video_id, status="queued", progress=0.0, message="")
            self._persist_queue()
        for video_id in queued + cached:
            self._publish_status(video_id)
        return {
            "queued": queued,
            "cached": cached,
            "skipped": skipped,
            "active": self._active,
            "pending": [job.video_id for job in self._queue],
        }

    def cancel(self, video_id: str) -> bool:
        """Drop a pending job or ask the active one to stop; False if unknown."""

        with self._lock:
            for job in list(self._queue):
                if job.video_id == video_id:
                    self._queue.remove(job)
                    self._persist_queue()
                    self._write_status(video_id, status="cancelled", progress=0.0, message="cancelled")
                    break
            else:
                if video_id != self._active:
                    return False
                self._cancel_requested.add(video_id)
                return True
        self._publish_status(video_id)
        return True

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            pending = [job.video_id for job in self._queue]
            active = self._active
        statuses: Dict[str, Any] = {}
        for path in self._workspace.segmentation_dir.glob("*/status.json"):
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
            except json.JSONDecodeError:
                continue
            video_id = payload.get("video_id")
            if video_id:
                statuses[video_id] = payload
        return {"queue": {"pending": pending, "active": active}, "statuses": statuses}

    def read_scenes(self, video_id: str) -> Optional[Dict[str, Any]]:
        path = self._workspace.scenes_path(video_id)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def _worker_loop(self) -> None:
        while True:
            job = None
            with self._lock:
                if not self._active and self._queue:
                    job = self._queue.popleft()
                    self._active = job.video_id
                    self._active_job = job
                    self._persist_queue()
            if not job:
                time.sleep(0.5)
                continue
            try:
                self._run_task(job)
            finally:
                with self._lock:
                    self._active = None
                    self._active_job = None
                    self._cancel_requested.discard(job.video_id)
                    self._persist_queue()

    def _run_task(self, job: SegmentJob) -> None:
        video_id = job.video_id
        video_path = self._workspace.resolve_video(video_id)
        if not video_path:
            self._write_status(video_id, status="error", progress=0.0, message="video not found")
            self._publish_status(video_id)
            return

        config = self._job_config(job)
        last_progress = -1

        def progress_callback(percent: int) -> None:
            nonlocal last_progress
            if percent == last_progress:
                return
            last_progress = percent
            self._write_status(video_id, status="running", progress=percent / 100, message="")
            self._publish_status(video_id)

        def should_stop() -> bool:
            with self._lock:
                return video_id in self._cancel_requested

        self._write_status(video_id, status="running", progress=0.0, message="")
        self._publish_status(video_id)
        try:
            result = segment_video(
                video_path,
                config,
                progress_callback=progress_callback,
                should_stop=should_stop,
            )
        except SegmentationCancelled:
            logger.info("Segmentation cancelled for %s", video_id)
            self._write_status(video_id, status="cancelled", progress=0.0, message="cancelled")
        except SegmentationError as exc:
            logger.warning("Segmentation failed for %s: %s", video_id, exc)
            self._write_status(video_id, status="error", progress=0.0, message=str(exc))
        else:
            self._write_scenes(video_id, result, config.segment.fixed_segment_seconds)
            self._write_status(video_id, status="done", progress=1.0, message="")
        self._publish_status(video_id)

    def _job_config(self, job: SegmentJob) -> PipelineConfig:
        if job.fixed_segment_seconds is None:
            return self._config
        segment = self._config.segment.model_copy(update={"fixed_segment_seconds": job.fixed_segment_seconds})
        return self._config.model_copy(update={"segment": segment})

    def _cache_matches(self, video_id: str, fixed_segment_seconds: Optional[float]) -> bool:
        """已有结果的切分方式与本次请求一致时才算命中缓存。"""

        try:
            stored = self.read_scenes(video_id)
        except json.JSONDecodeError:
            return False
        if stored is None:
            return False
        wanted = self._job_config(SegmentJob(video_id=video_id, fixed_segment_seconds=fixed_segment_seconds)).segment
        if stored.get("strategy") != wanted.strategy:
            return False
        return wanted.fixed_segment_seconds is None or stored.get("fixed_segment_seconds") == wanted.fixed_segment_seconds

    def _clear_artifacts(self, video_id: str) -> None:
        for target in (self._workspace.scenes_path(video_id), self._workspace.status_path(video_id)):
            if target.exists():
                target.unlink()

    def _write_status(self, video_id: str, *, status: str, progress: float, message: str) -> None:
        normalized = max(0.0, min(1.0, float(progress)))
        payload = TaskStatus(
            video_id=video_id,
            status=status,
            progress=normalized,
            message=message,
            updated_at=self._now(),
        ).to_dict()
        path = self._workspace.status_path(video_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._atomic_write_json(path, payload)

    def _write_scenes(self, video_id: str, result: SegmentResult, fixed_segment_seconds: Optional[float]) -> None:
        path = self._workspace.scenes_path(video_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "video_id": video_id,
            "duration": result.duration,
            "strategy": result.strategy,
            "fixed_segment_seconds": fixed_segment_seconds,
            "scenes": [scene.to_dict() for scene in result.scenes],
            "diffs": [diff.to_dict() for diff in result.diffs],
        }
        self._atomic_write_json(path, payload)

    def _persist_queue(self) -> None:
        payload = {
            "pending": [self._job_payload(job) for job in self._queue],
            "active": self._job_payload(self._active_job) if self._active_job else None,
            "updated_at": self._now(),
        }
        self._atomic_write_json(self._workspace.queue_path, payload)

    def _load_queue_state(self) -> None:
        path = self._workspace.queue_path
        if not path.exists():
            return
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return
        jobs = [job for job in map(self._job_from_payload, payload.get("pending") or []) if job]
        self._queue = deque(jobs)
        # 上次进程退出时正在跑的任务重新排到队首
        active = self._job_from_payload(payload.get("active"))
        if active:
            self._queue.appendleft(active)
        self._persist_queue()

    @staticmethod
    def _job_payload(job: SegmentJob) -> Dict[str, Any]:
        return {"video_id": job.video_id, "fixed_segment_seconds": job.fixed_segment_seconds}

    @staticmethod
    def _job_from_payload(item: Any) -> Optional[SegmentJob]:
        if isinstance(item, str):
            return SegmentJob(video_id=item)
        if isinstance(item, dict) and isinstance(item.get("video_id"), str):
            return SegmentJob(video_id=item["video_id"], fixed_segment_seconds=item.get("fixed_segment_seconds"))
        return None

    def _publish_status(self, video_id: str) -> None:
        status = self._read_status(video_id)
        if not status:
            return
        self._broadcaster.publish(self.format_event(status))

    def _read_status(self, video_id: str) -> Optional[Dict[str, Any]]:
        path = self._workspace.status_path(video_id)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return None

    @staticmethod
    def format_event(payload: Dict[str, Any]) -> Dict[str, Any]:
        video_id = payload.get("video_id")
        status = payload.get("status")
        result_path = None
        if status in {"done", "cached"} and video_id:
            result_path = f"/api/segment/{video_id}"
        return {
            "stage": "segment",
            "video_id": video_id,
            "status": status,
            "progress": payload.get("progress"),
            "message": payload.get("message"),
            "result_path": result_path,
        }

    @staticmethod
    def _atomic_write_json(path: Path, payload: Dict[str, Any] | List[Any]) -> None:
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(path)

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
