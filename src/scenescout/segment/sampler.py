"""按固定间隔生成时间戳并顺序抽帧。"""

from __future__ import annotations

from typing import Callable, Generator, List, Sequence, Tuple

from scenescout.core.errors import DecodeError, SegmentationCancelled

from .loader import FrameSource
from .types import SampledFrame

ProgressCallback = Callable[[int], None]
StopCheck = Callable[[], bool]


def sample_timestamps(duration: float, interval: float) -> List[float]:
    """生成 0, interval, 2*interval, ...，包含恰好等于 duration 的最后一个点。"""

    if interval <= 0:
        raise ValueError("interval must be positive")
    if duration < 0:
        return []
    timestamps: List[float] = []
    index = 0
    # 用乘法而不是累加，避免浮点误差随帧数漂移
    while index * interval <= duration:
        timestamps.append(index * interval)
        index += 1
    return timestamps


def iter_sampled_frames(
    source: FrameSource,
    timestamps: Sequence[float],
    size: Tuple[int, int],
    *,
    progress_callback: ProgressCallback | None = None,
    should_stop: StopCheck | None = None,
) -> Generator[SampledFrame, None, None]:
    """严格按时间顺序逐帧抓取；上一帧返回之前不会发起下一次 seek。"""

    expected = len(timestamps)
    for captured, timestamp in enumerate(timestamps, start=1):
        if should_stop is not None and should_stop():
            raise SegmentationCancelled(f"stopped after {captured - 1}/{expected} frames")
        try:
            pixels, thumbnail = source.capture(timestamp, size)
        except DecodeError:
            raise
        except Exception as exc:
            raise DecodeError(f"capture failed at {timestamp:.3f}s: {exc}") from exc
        if progress_callback is not None:
            progress_callback(round(captured / expected * 100))
        yield SampledFrame(time=timestamp, pixels=pixels, thumbnail=thumbnail)
