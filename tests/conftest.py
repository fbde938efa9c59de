"""测试共用的假 FrameSource：按时间戳生成纯色 RGBA 帧。"""

from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import pytest


class FakeFrameSource:
    def __init__(
        self,
        duration: float,
        color_at: Callable[[float], int] = lambda _t: 10,
        *,
        native_size: Tuple[int, int] = (64, 36),
        fail_at: Optional[float] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.duration = duration
        self.color_at = color_at
        self.native_size = native_size
        self.fail_at = fail_at
        self.error = error
        self.captures: List[Tuple[float, Tuple[int, int]]] = []
        self.closed = False

    def get_duration(self) -> float:
        return self.duration

    def frame_size(self) -> Tuple[int, int]:
        return self.native_size

    def capture(self, timestamp: float, size: Tuple[int, int]):
        self.captures.append((timestamp, size))
        if self.fail_at is not None and timestamp >= self.fail_at:
            raise self.error or RuntimeError("seek failed")
        width, height = size
        pixels = np.full((height, width, 4), self.color_at(timestamp), dtype=np.uint8)
        pixels[..., 3] = 255
        return pixels, f"thumb@{timestamp:.3f}".encode()

    def close(self) -> None:
        self.closed = True


def thumb(timestamp: float) -> bytes:
    return f"thumb@{timestamp:.3f}".encode()


@pytest.fixture
def make_source() -> Callable[..., FakeFrameSource]:
    return FakeFrameSource


@pytest.fixture
def step_colors() -> Callable[[Dict[float, int], int], Callable[[float], int]]:
    """构造分段常量的颜色函数：{起始时间: 颜色}。"""

    def factory(changes: Dict[float, int], initial: int = 10) -> Callable[[float], int]:
        points = sorted(changes.items())

        def color_at(timestamp: float) -> int:
            color = initial
            for start, value in points:
                if timestamp >= start:
                    color = value
            return color

        return color_at

    return factory
