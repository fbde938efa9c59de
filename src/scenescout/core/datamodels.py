"""核心数据结构定义：场景与帧差信号，保持 JSON 友好以便跨模块传递。"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Dict

THUMBNAIL_MIME = "image/jpeg"
_DATA_URL_PREFIX = f"data:{THUMBNAIL_MIME};base64,"


@dataclass(slots=True, frozen=True)
class DiffSample:
    """相邻两帧的差异得分，frame_index 指向后一帧。"""

    timestamp: float
    score: float
    frame_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "score": self.score, "frame_index": self.frame_index}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiffSample":
        return cls(
            timestamp=float(data["timestamp"]),
            score=float(data["score"]),
            frame_index=int(data["frame_index"]),
        )


@dataclass(slots=True, frozen=True)
class Scene:
    """切分产物：一段连续时间区间及其代表缩略图。

    创建后不再修改；下游标注以 ``id`` 关联结果，而不是回写本对象。
    """

    id: int
    start_time: float
    end_time: float
    thumbnail: bytes

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def thumbnail_data_url(self) -> str:
        return _DATA_URL_PREFIX + base64.b64encode(self.thumbnail).decode("ascii")

    def to_dict(self) -> Dict[str, Any]:
        """辅助序列化：缩略图以 data URL 形式内联。"""

        return {
            "id": self.id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "thumbnail_data_url": self.thumbnail_data_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scene":
        return cls(
            id=int(data["id"]),
            start_time=float(data["start_time"]),
            end_time=float(data["end_time"]),
            thumbnail=decode_data_url(data["thumbnail_data_url"]),
        )


def decode_data_url(value: str) -> bytes:
    """接受带或不带 ``data:image/...;base64,`` 前缀的字符串。"""

    _, sep, payload = value.partition(";base64,")
    return base64.b64decode(payload if sep else value)
