"""抽帧时间戳与顺序抓取测试。"""

import pytest

from scenescout.core.errors import DecodeError, SegmentationCancelled
from scenescout.segment.sampler import iter_sampled_frames, sample_timestamps


def test_timestamps_include_exact_end() -> None:
    assert sample_timestamps(4.0, 1.0) == [0.0, 1.0, 2.0, 3.0, 4.0]


def test_timestamps_stop_before_duration() -> None:
    assert sample_timestamps(2.5, 1.0) == [0.0, 1.0, 2.0]


def test_sub_interval_duration_yields_one_timestamp() -> None:
    assert sample_timestamps(0.05, 1.0) == [0.0]


def test_fractional_interval_does_not_drift() -> None:
    timestamps = sample_timestamps(1.0, 0.1)

    assert len(timestamps) == 11
    assert timestamps[3] == pytest.approx(0.3)
    assert timestamps == sorted(timestamps)


def test_invalid_interval() -> None:
    with pytest.raises(ValueError):
        sample_timestamps(3.0, 0.0)


def test_captures_in_order_with_progress(make_source) -> None:
    source = make_source(3.0)
    progress = []

    frames = list(
        iter_sampled_frames(source, [0.0, 1.0, 2.0, 3.0], (8, 4), progress_callback=progress.append)
    )

    assert [frame.time for frame in frames] == [0.0, 1.0, 2.0, 3.0]
    assert [call[0] for call in source.captures] == [0.0, 1.0, 2.0, 3.0]
    assert all(call[1] == (8, 4) for call in source.captures)
    assert frames[0].pixels.shape == (4, 8, 4)
    assert progress == [25, 50, 75, 100]


def test_decode_error_propagates(make_source) -> None:
    source = make_source(3.0, fail_at=2.0, error=DecodeError("boom"))

    with pytest.raises(DecodeError, match="boom"):
        list(iter_sampled_frames(source, [0.0, 1.0, 2.0, 3.0], (8, 4)))
    assert [call[0] for call in source.captures] == [0.0, 1.0, 2.0]


def test_host_errors_are_wrapped(make_source) -> None:
    source = make_source(3.0, fail_at=1.0)

    with pytest.raises(DecodeError) as excinfo:
        list(iter_sampled_frames(source, [0.0, 1.0], (8, 4)))
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_stop_request_takes_effect_between_frames(make_source) -> None:
    source = make_source(5.0)

    def should_stop() -> bool:
        return len(source.captures) >= 2

    with pytest.raises(SegmentationCancelled):
        list(iter_sampled_frames(source, [0.0, 1.0, 2.0, 3.0], (8, 4), should_stop=should_stop))
    assert len(source.captures) == 2
