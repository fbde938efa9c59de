"""帧差打分：平均绝对亮度差。"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from scenescout.core import DiffSample

from .types import FrameStamp, SampledFrame

LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def luminance(pixels: NDArray[np.uint8]) -> NDArray[np.float64]:
    """RGBA(或 RGB) 像素转亮度，忽略 alpha，返回展平后的 float64 向量。"""

    flat = np.asarray(pixels).reshape(-1, pixels.shape[-1]).astype(np.float64)
    r_w, g_w, b_w = LUMA_WEIGHTS
    return r_w * flat[:, 0] + g_w * flat[:, 1] + b_w * flat[:, 2]


def frame_difference(a: NDArray[np.uint8], b: NDArray[np.uint8]) -> float:
    """两帧逐像素亮度差的绝对值均值，越大表示画面变化越大。"""

    luma_a = luminance(a)
    luma_b = luminance(b)
    if luma_a.shape != luma_b.shape:
        raise ValueError(f"pixel count mismatch: {luma_a.size} vs {luma_b.size}")
    if luma_a.size == 0:
        return 0.0
    delta = np.abs(luma_a - luma_b)
    # cumsum 严格从左到右累加，结果不依赖 numpy 的分块求和顺序
    total = float(np.cumsum(delta, dtype=np.float64)[-1])
    return total / luma_a.size


def score_frames(frames: Iterable[SampledFrame]) -> Tuple[List[FrameStamp], List[DiffSample]]:
    """流式打分：只保留上一帧像素，其余帧打分后仅留时间戳与缩略图。"""

    stamps: List[FrameStamp] = []
    diffs: List[DiffSample] = []
    previous: Optional[NDArray[np.uint8]] = None
    for index, frame in enumerate(frames):
        if previous is not None:
            diffs.append(
                DiffSample(
                    timestamp=frame.time,
                    score=frame_difference(previous, frame.pixels),
                    frame_index=index,
                )
            )
        stamps.append(frame.stamp())
        previous = frame.pixels
    return stamps, diffs
