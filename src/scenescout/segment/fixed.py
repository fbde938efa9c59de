"""定长切分：不做帧差，按固定时长等分并在每段中点取缩略图。"""

from __future__ import annotations

import math
from typing import List, Tuple

from scenescout.core import Scene
from scenescout.core.errors import DecodeError, SegmentationCancelled

from .loader import FrameSource
from .sampler import ProgressCallback, StopCheck

DEFAULT_SEEK_EPSILON = 0.1


def segment_count(duration: float, segment_seconds: float) -> int:
    if segment_seconds <= 0:
        raise ValueError("segment_seconds must be positive")
    if duration <= 0:
        return 0
    return int(math.ceil(duration / segment_seconds))


def thumbnail_seek_time(start: float, end: float, duration: float, epsilon: float = DEFAULT_SEEK_EPSILON) -> float:
    """段中点，夹到 duration - epsilon 以免 seek 越过流末尾；夹完出界则保留中点。"""

    midpoint = start + (end - start) / 2
    clamped = min(midpoint, duration - epsilon)
    return clamped if clamped > start else midpoint


def split_fixed_segments(
    source: FrameSource,
    duration: float,
    segment_seconds: float,
    size: Tuple[int, int],
    *,
    epsilon: float = DEFAULT_SEEK_EPSILON,
    progress_callback: ProgressCallback | None = None,
    should_stop: StopCheck | None = None,
) -> List[Scene]:
    """生成 ceil(duration / segment_seconds) 个场景，最后一段截止于 duration。"""

    total = segment_count(duration, segment_seconds)
    scenes: List[Scene] = []
    for index in range(total):
        if should_stop is not None and should_stop():
            raise SegmentationCancelled(f"stopped after {index}/{total} segments")
        start = index * segment_seconds
        end = min((index + 1) * segment_seconds, duration)
        seek_time = thumbnail_seek_time(start, end, duration, epsilon)
        try:
            _, thumbnail = source.capture(seek_time, size)
        except DecodeError:
            raise
        except Exception as exc:
            raise DecodeError(f"capture failed at {seek_time:.3f}s: {exc}") from exc
        scenes.append(Scene(id=index + 1, start_time=start, end_time=end, thumbnail=thumbnail))
        if progress_callback is not None:
            progress_callback(round((index + 1) / total * 100))
    return scenes
