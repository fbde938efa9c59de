"""视频抽帧能力：FrameSource 协议与基于 OpenCV 的默认实现。"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Protocol, Tuple

import cv2
import numpy as np
from numpy.typing import NDArray

from scenescout.core.errors import DecodeError, DurationUnknownError

DEFAULT_MAX_DIMENSION = 320
DEFAULT_THUMBNAIL_QUALITY = 85


class VideoOpenError(DecodeError):
    """视频无法打开时抛出的异常，便于上层捕获并降级。"""


class FrameSource(Protocol):
    """宿主提供的 seek-and-capture 能力。

    实现方持有有状态的解码资源，同一时刻只允许一次 capture；
    调用方必须等上一次 capture 返回后再发起下一次。
    """

    def get_duration(self) -> float:
        """返回视频时长（秒），无法确定时抛出 DurationUnknownError。"""

    def frame_size(self) -> Tuple[int, int]:
        """原始分辨率 (width, height)。"""

    def capture(self, timestamp: float, size: Tuple[int, int]) -> Tuple[NDArray[np.uint8], bytes]:
        """seek 到 timestamp，返回 size 尺寸的 RGBA 像素和 JPEG 缩略图，失败抛出 DecodeError。"""

    def close(self) -> None:
        """释放解码资源，可重复调用。"""


def compute_output_size(width: int, height: int, max_dimension: int = DEFAULT_MAX_DIMENSION) -> Tuple[int, int]:
    """等比缩放到最长边不超过 max_dimension，短边四舍五入（.5 向上）。"""

    if width <= 0 or height <= 0:
        raise DecodeError(f"invalid frame size {width}x{height}")
    if width <= max_dimension and height <= max_dimension:
        return width, height
    ratio = width / height
    if width > height:
        out_w = max_dimension
        out_h = int(math.floor(out_w / ratio + 0.5))
    else:
        out_h = max_dimension
        out_w = int(math.floor(out_h * ratio + 0.5))
    return max(out_w, 1), max(out_h, 1)


class OpenCVFrameSource:
    """cv2.VideoCapture 封装，按帧号 seek，输出 RGBA 像素与 JPEG 缩略图。"""

    def __init__(self, video_path: str | Path, *, thumbnail_quality: int = DEFAULT_THUMBNAIL_QUALITY) -> None:
        self.path = Path(video_path)
        self.thumbnail_quality = thumbnail_quality
        self._capture = cv2.VideoCapture(str(self.path))
        if not self._capture.isOpened():
            self._capture.release()
            raise VideoOpenError(f"无法打开视频: {self.path}")
        self._fps = float(self._capture.get(cv2.CAP_PROP_FPS) or 0.0)
        self._frame_count = int(self._capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        self._in_flight = False
        self._closed = False

    def __enter__(self) -> "OpenCVFrameSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def get_duration(self) -> float:
        if self._fps <= 0 or self._frame_count <= 0:
            raise DurationUnknownError(f"无法确定视频时长: {self.path}")
        duration = self._frame_count / self._fps
        if not math.isfinite(duration):
            raise DurationUnknownError(f"无法确定视频时长: {self.path}")
        return duration

    def frame_size(self) -> Tuple[int, int]:
        width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
        height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)
        return width, height

    def capture(self, timestamp: float, size: Tuple[int, int]) -> Tuple[NDArray[np.uint8], bytes]:
        if self._closed:
            raise DecodeError("frame source already released")
        if self._in_flight:
            raise DecodeError("another capture is still in flight")
        self._in_flight = True
        try:
            frame = self._read_at(timestamp)
            resized = cv2.resize(frame, size, interpolation=cv2.INTER_AREA)
            pixels = cv2.cvtColor(resized, cv2.COLOR_BGR2RGBA)
            ok, encoded = cv2.imencode(".jpg", resized, [cv2.IMWRITE_JPEG_QUALITY, self.thumbnail_quality])
            if not ok:
                raise DecodeError(f"缩略图编码失败: t={timestamp:.3f}s")
            return pixels, encoded.tobytes()
        finally:
            self._in_flight = False

    def _read_at(self, timestamp: float) -> NDArray[np.uint8]:
        # 结尾处的时间戳落到最后一帧，避免 seek 越界读空
        target = int(round(timestamp * self._fps)) if self._fps > 0 else 0
        if self._frame_count > 0:
            target = min(target, self._frame_count - 1)
        self._capture.set(cv2.CAP_PROP_POS_FRAMES, max(target, 0))
        success, frame = self._capture.read()
        if not success or frame is None:
            raise DecodeError(f"无法解码 {self.path} 在 {timestamp:.3f}s 处的帧")
        return frame

    def close(self) -> None:
        if not self._closed:
            self._capture.release()
            self._closed = True
