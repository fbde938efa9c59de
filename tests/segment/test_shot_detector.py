"""切点检测测试。"""

from scenescout.core import DiffSample
from scenescout.segment.shot_detector import detect_cuts
from scenescout.segment.types import SceneRegion


def diffs_from(scores):
    return [DiffSample(timestamp=float(i + 1), score=s, frame_index=i + 1) for i, s in enumerate(scores)]


def test_no_cut_yields_single_trailing_region() -> None:
    regions = detect_cuts(diffs_from([0.0] * 10), threshold=18, frame_count=11)

    assert regions == [SceneRegion(0, 10, trailing=True)]


def test_cut_closes_scene_at_later_frame_of_pair() -> None:
    regions = detect_cuts(diffs_from([0, 50, 0, 0]), threshold=18, frame_count=5)

    assert regions == [SceneRegion(0, 2), SceneRegion(2, 4, trailing=True)]


def test_score_equal_to_threshold_is_not_a_cut() -> None:
    regions = detect_cuts(diffs_from([18.0, 18.0001]), threshold=18, frame_count=3)

    assert regions == [SceneRegion(0, 2), SceneRegion(2, 2, trailing=True)]


def test_consecutive_cuts() -> None:
    regions = detect_cuts(diffs_from([40, 40, 40]), threshold=18, frame_count=4)

    assert regions == [
        SceneRegion(0, 1),
        SceneRegion(1, 2),
        SceneRegion(2, 3),
        SceneRegion(3, 3, trailing=True),
    ]


def test_single_and_zero_frames() -> None:
    assert detect_cuts([], threshold=18, frame_count=1) == [SceneRegion(0, 0, trailing=True)]
    assert detect_cuts([], threshold=18, frame_count=0) == []


def test_thumbnail_index_is_floor_midpoint() -> None:
    assert SceneRegion(0, 2).thumbnail_index == 1
    assert SceneRegion(2, 7).thumbnail_index == 4
    assert SceneRegion(5, 5, trailing=True).thumbnail_index == 5
