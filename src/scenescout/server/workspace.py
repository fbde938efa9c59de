"""Workspace paths and initialization helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

WORKSPACE_ENV_KEY = "SCENESCOUT_WORKSPACE_ROOT"


def _resolve_workspace_root() -> Path:
    env_value = os.getenv(WORKSPACE_ENV_KEY)
    if env_value:
        return Path(env_value).expanduser().resolve()
    return Path(__file__).resolve().parents[3] / "workspace"


@dataclass(frozen=True)
class Workspace:
    """Directory layout: uploaded videos plus one result folder per video id."""

    root: Path

    @property
    def videos_dir(self) -> Path:
        return self.root / "videos"

    @property
    def segmentation_dir(self) -> Path:
        return self.root / "segmentation"

    def ensure_layout(self) -> None:
        for path in (self.root, self.videos_dir, self.segmentation_dir):
            path.mkdir(parents=True, exist_ok=True)

    def video_files(self) -> list[Path]:
        if not self.videos_dir.exists():
            return []
        return sorted(
            path
            for path in self.videos_dir.iterdir()
            if path.is_file() and not path.name.startswith(".")
        )

    def resolve_video(self, video_id: str) -> Optional[Path]:
        for path in self.video_files():
            if path.stem == video_id:
                return path
        return None

    def result_dir(self, video_id: str) -> Path:
        return self.segmentation_dir / video_id

    def status_path(self, video_id: str) -> Path:
        return self.result_dir(video_id) / "status.json"

    def scenes_path(self, video_id: str) -> Path:
        return self.result_dir(video_id) / "scenes.json"

    @property
    def queue_path(self) -> Path:
        return self.segmentation_dir / "queue.json"


def default_workspace() -> Workspace:
    return Workspace(root=_resolve_workspace_root())
