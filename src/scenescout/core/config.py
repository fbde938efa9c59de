"""配置加载工具，集中管理仓内/环境参数。"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, MutableMapping, Optional, Sequence, Tuple

import yaml
from pydantic import BaseModel, Field

CONFIG_ENV_KEY = "SCENESCOUT_CONFIG_PATH"

# UI 中可选的固定切分时长（秒），0 表示自适应检测
FIXED_SEGMENT_PRESETS: Tuple[float, ...] = (5.0, 8.0, 10.0)


class SegmentConfig(BaseModel):
    """场景切分参数；fixed_segment_seconds 存在时走定长切分。"""

    sample_interval_seconds: float = Field(1.0, gt=0)
    diff_threshold: float = Field(18.0, ge=0)
    fixed_segment_seconds: Optional[float] = Field(None, gt=0)
    max_dimension: int = Field(320, gt=0)
    thumbnail_quality: int = Field(85, ge=1, le=100)
    seek_epsilon: float = Field(0.1, gt=0)

    @property
    def strategy(self) -> str:
        return "fixed" if self.fixed_segment_seconds is not None else "adaptive"


class AnnotateConfig(BaseModel):
    """远程标注服务参数，api_key 留空时回退到环境变量。"""

    model: str = "gemini-2.5-flash"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    api_key: str = ""
    timeout_s: float = 60.0
    delay_min_seconds: float = Field(5.0, ge=0)
    delay_max_seconds: float = Field(7.0, ge=0)
    poll_interval_seconds: float = Field(0.2, gt=0)
    timelapse_max_frames: int = Field(8, ge=2)


class PipelineConfig(BaseModel):
    """聚合各阶段配置。"""

    segment: SegmentConfig = Field(default_factory=SegmentConfig)
    annotate: AnnotateConfig = Field(default_factory=AnnotateConfig)
    raw: Dict[str, Any] = Field(default_factory=dict, description="原始配置字典，便于调试。")

    def model_post_init(self, __context: Any) -> None:  # type: ignore[override]
        # 保留原始配置便于后续 diff/日志输出
        if not self.raw:
            self.raw = self.to_raw_dict()

    def to_raw_dict(self) -> Dict[str, Any]:
        """导出基础 dict，供日志或远程存储使用；api_key 不落盘。"""

        return {
            "segment": self.segment.model_dump(),
            "annotate": self.annotate.model_dump(exclude={"api_key"}),
        }


def _default_config_path() -> Path:
    return Path(__file__).resolve().parents[3] / "configs" / "baseline.yaml"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ValueError(f"配置文件 {path} 内容需为字典")
        return data


ENV_OVERRIDE_MAP: Dict[str, Tuple[Sequence[str], Callable[[str], Any]]] = {
    "SCENESCOUT_SAMPLE_INTERVAL": (("segment", "sample_interval_seconds"), float),
    "SCENESCOUT_DIFF_THRESHOLD": (("segment", "diff_threshold"), float),
    "SCENESCOUT_FIXED_SEGMENT_SECONDS": (("segment", "fixed_segment_seconds"), lambda value: float(value) or None),
    "SCENESCOUT_MAX_DIMENSION": (("segment", "max_dimension"), int),
    "SCENESCOUT_ANNOTATE_MODEL": (("annotate", "model"), str),
}


def _apply_env_overrides(data: MutableMapping[str, Any], env: Mapping[str, str]) -> None:
    for env_key, (path, caster) in ENV_OVERRIDE_MAP.items():
        if env_key in env:
            _set_nested_value(data, path, caster(env[env_key]))


def _set_nested_value(target: MutableMapping[str, Any], path: Sequence[str], value: Any) -> None:
    cursor: MutableMapping[str, Any] = target
    *parents, last = path
    for key in parents:
        if key not in cursor or not isinstance(cursor[key], MutableMapping):
            cursor[key] = {}
        cursor = cursor[key]  # type: ignore[assignment]
    cursor[last] = value


def load_config(path: str | Path | None = None, *, env: Mapping[str, str] | None = None) -> PipelineConfig:
    """加载配置：优先显式路径，其次环境变量，最后回退默认 baseline。"""

    env_map = env if env is not None else os.environ
    config_path = path or env_map.get(CONFIG_ENV_KEY)
    target_path = Path(config_path).expanduser() if config_path else _default_config_path()
    data = _load_yaml(target_path)
    _apply_env_overrides(data, env_map)

    return PipelineConfig.model_validate({**data, "raw": data})
