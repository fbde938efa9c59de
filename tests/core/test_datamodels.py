"""核心数据模型测试，确保序列化稳定。"""

import dataclasses

import pytest

from scenescout.core import DiffSample, Scene
from scenescout.core.datamodels import decode_data_url


def test_scene_roundtrip() -> None:
    scene = Scene(id=3, start_time=4.0, end_time=9.5, thumbnail=b"\xff\xd8jpeg")

    payload = scene.to_dict()

    assert payload["thumbnail_data_url"].startswith("data:image/jpeg;base64,")
    assert Scene.from_dict(payload) == scene
    assert scene.duration == pytest.approx(5.5)


def test_scene_is_immutable() -> None:
    scene = Scene(id=1, start_time=0.0, end_time=1.0, thumbnail=b"x")

    with pytest.raises(dataclasses.FrozenInstanceError):
        scene.end_time = 2.0  # type: ignore[misc]


def test_decode_data_url_accepts_bare_base64() -> None:
    assert decode_data_url("aGVsbG8=") == b"hello"
    assert decode_data_url("data:image/png;base64,aGVsbG8=") == b"hello"


def test_diff_sample_roundtrip() -> None:
    diff = DiffSample(timestamp=2.0, score=31.5, frame_index=2)

    assert DiffSample.from_dict(diff.to_dict()) == diff
