"""OpenCV 抽帧封装测试，用假的 VideoCapture 代替真实解码。"""

import cv2
import numpy as np
import pytest

from scenescout.core.errors import DecodeError, DurationUnknownError
from scenescout.segment.loader import OpenCVFrameSource, VideoOpenError, compute_output_size


class FakeCapture:
    instances = []

    def __init__(self, path, *, opened=True, fps=25.0, frame_count=250, size=(640, 360), readable=True):
        self.path = path
        self.opened = opened
        self.props = {
            cv2.CAP_PROP_FPS: fps,
            cv2.CAP_PROP_FRAME_COUNT: frame_count,
            cv2.CAP_PROP_FRAME_WIDTH: size[0],
            cv2.CAP_PROP_FRAME_HEIGHT: size[1],
        }
        self.size = size
        self.readable = readable
        self.positions = []
        self.released = False
        FakeCapture.instances.append(self)

    def isOpened(self):
        return self.opened

    def get(self, prop):
        return self.props.get(prop, 0.0)

    def set(self, prop, value):
        if prop == cv2.CAP_PROP_POS_FRAMES:
            self.positions.append(value)
        return True

    def read(self):
        if not self.readable:
            return False, None
        width, height = self.size
        frame = np.zeros((height, width, 3), dtype=np.uint8)
        frame[..., 2] = 200  # BGR 中的 R 通道
        return True, frame

    def release(self):
        self.released = True


@pytest.fixture
def fake_capture(monkeypatch):
    FakeCapture.instances = []

    def install(**kwargs):
        monkeypatch.setattr(
            "scenescout.segment.loader.cv2.VideoCapture",
            lambda path: FakeCapture(path, **kwargs),
        )
        return FakeCapture.instances

    return install


@pytest.mark.parametrize(
    "size,expected",
    [
        ((1920, 1080), (320, 180)),
        ((1080, 1920), (180, 320)),
        ((200, 100), (200, 100)),
        ((320, 320), (320, 320)),
        ((1000, 333), (320, 107)),
        ((640, 640), (320, 320)),
    ],
)
def test_compute_output_size(size, expected) -> None:
    assert compute_output_size(*size, max_dimension=320) == expected


def test_compute_output_size_rejects_empty_frames() -> None:
    with pytest.raises(DecodeError):
        compute_output_size(0, 100)


def test_unopened_video_raises(fake_capture) -> None:
    instances = fake_capture(opened=False)

    with pytest.raises(VideoOpenError):
        OpenCVFrameSource("missing.mp4")
    assert instances[0].released


def test_duration_from_frame_count(fake_capture) -> None:
    fake_capture(fps=25.0, frame_count=250)

    with OpenCVFrameSource("demo.mp4") as source:
        assert source.get_duration() == pytest.approx(10.0)
        assert source.frame_size() == (640, 360)


@pytest.mark.parametrize("fps,frame_count", [(0.0, 250), (25.0, 0)])
def test_unknown_duration(fake_capture, fps, frame_count) -> None:
    fake_capture(fps=fps, frame_count=frame_count)

    with OpenCVFrameSource("demo.mp4") as source:
        with pytest.raises(DurationUnknownError):
            source.get_duration()


def test_capture_returns_rgba_and_jpeg(fake_capture) -> None:
    fake_capture()

    with OpenCVFrameSource("demo.mp4") as source:
        pixels, thumbnail = source.capture(2.0, (320, 180))

    assert pixels.shape == (180, 320, 4)
    assert pixels.dtype == np.uint8
    assert int(pixels[0, 0, 0]) == 200  # R
    assert int(pixels[0, 0, 2]) == 0  # B
    assert int(pixels[0, 0, 3]) == 255
    assert thumbnail[:2] == b"\xff\xd8"


def test_seek_is_clamped_to_last_frame(fake_capture) -> None:
    instances = fake_capture(fps=25.0, frame_count=250)

    with OpenCVFrameSource("demo.mp4") as source:
        source.capture(1.0, (32, 18))
        source.capture(10.0, (32, 18))

    assert instances[0].positions == [25, 249]


def test_read_failure_is_decode_error(fake_capture) -> None:
    fake_capture(readable=False)

    with OpenCVFrameSource("demo.mp4") as source:
        with pytest.raises(DecodeError):
            source.capture(0.0, (32, 18))


def test_close_releases_and_blocks_capture(fake_capture) -> None:
    instances = fake_capture()
    source = OpenCVFrameSource("demo.mp4")

    source.close()
    source.close()

    assert instances[0].released
    with pytest.raises(DecodeError):
        source.capture(0.0, (32, 18))
