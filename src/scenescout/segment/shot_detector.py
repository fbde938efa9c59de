"""镜头切分逻辑：按阈值扫描帧差序列，单趟 O(n)。"""

from __future__ import annotations

from typing import List, Sequence

from scenescout.core import DiffSample

from .types import SceneRegion


def detect_cuts(diffs: Sequence[DiffSample], threshold: float, frame_count: int) -> List[SceneRegion]:
    """返回场景区间列表（帧索引闭区间）。

    diffs[idx] 对应帧对 (frames[idx], frames[idx + 1])；得分严格大于阈值即切分，
    上一场景在 frames[idx + 1] 处结束，新场景从同一帧开始。扫描结束后剩余部分
    作为 trailing 区间，时间上延伸到视频结尾。
    """

    if frame_count <= 0:
        return []

    regions: List[SceneRegion] = []
    scene_start = 0
    for idx, diff in enumerate(diffs):
        if diff.score > threshold:
            regions.append(SceneRegion(start_index=scene_start, end_index=idx + 1))
            scene_start = idx + 1
    if scene_start < frame_count:
        regions.append(SceneRegion(start_index=scene_start, end_index=frame_count - 1, trailing=True))
    return regions
