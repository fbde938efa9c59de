"""切分阶段内部使用的结构体。"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray


@dataclass(slots=True, frozen=True)
class SampledFrame:
    """抽帧结果：时间戳、降采样后的 RGBA 像素（H×W×4）以及编码后的缩略图。"""

    time: float
    pixels: NDArray[np.uint8]
    thumbnail: bytes

    def stamp(self) -> "FrameStamp":
        return FrameStamp(time=self.time, thumbnail=self.thumbnail)


@dataclass(slots=True, frozen=True)
class FrameStamp:
    """打分之后仅保留的部分，像素缓冲区已释放。"""

    time: float
    thumbnail: bytes


@dataclass(slots=True, frozen=True)
class SceneRegion:
    """切点检测输出：帧索引闭区间，trailing 表示延伸到视频结尾。"""

    start_index: int
    end_index: int
    trailing: bool = False

    @property
    def thumbnail_index(self) -> int:
        # 取区间中点，避开边界处常见的转场帧
        return (self.start_index + self.end_index) // 2
