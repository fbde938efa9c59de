"""封装从视频到 Scene 列表的流程：策略选择、抽帧、打分、切点与场景组装。"""

from __future__ import annotations

import math
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Sequence

from scenescout.core import DiffSample, PipelineConfig, Scene, SegmentConfig, get_logger
from scenescout.core.errors import DurationUnknownError, EmptyResultError

from .fixed import split_fixed_segments
from .loader import FrameSource, OpenCVFrameSource, compute_output_size
from .sampler import ProgressCallback, StopCheck, iter_sampled_frames, sample_timestamps
from .scorer import score_frames
from .shot_detector import detect_cuts
from .types import FrameStamp, SceneRegion

logger = get_logger(__name__)


@dataclass(slots=True)
class SegmentResult:
    """封装单个视频的切分结果；定长模式下 diffs 恒为空列表。"""

    scenes: List[Scene]
    diffs: List[DiffSample]
    strategy: str
    duration: float


def segment_video(
    video: str | Path | FrameSource,
    config: SegmentConfig | PipelineConfig,
    *,
    progress_callback: ProgressCallback | None = None,
    should_stop: StopCheck | None = None,
) -> SegmentResult:
    """主入口：读取时长 -> 计算输出尺寸 -> 自适应或定长切分 -> Scene 列表。

    无论成功失败都会释放解码资源；要么返回完整且首尾相接的场景列表，
    要么抛出一个 SegmentationError。
    """

    seg_cfg = config.segment if isinstance(config, PipelineConfig) else config
    with _acquire_source(video, seg_cfg) as source:
        duration = source.get_duration()
        if not math.isfinite(duration):
            raise DurationUnknownError(f"non-finite duration: {duration}")
        if duration <= 0:
            raise EmptyResultError(f"video duration is {duration}, nothing to sample")

        native_w, native_h = source.frame_size()
        size = compute_output_size(native_w, native_h, seg_cfg.max_dimension)
        logger.info(
            "Segmenting video: strategy=%s duration=%.2fs size=%dx%d -> %dx%d",
            seg_cfg.strategy,
            duration,
            native_w,
            native_h,
            size[0],
            size[1],
        )

        if seg_cfg.fixed_segment_seconds is not None:
            scenes = split_fixed_segments(
                source,
                duration,
                seg_cfg.fixed_segment_seconds,
                size,
                epsilon=seg_cfg.seek_epsilon,
                progress_callback=progress_callback,
                should_stop=should_stop,
            )
            diffs: List[DiffSample] = []
        else:
            timestamps = sample_timestamps(duration, seg_cfg.sample_interval_seconds)
            frames = iter_sampled_frames(
                source,
                timestamps,
                size,
                progress_callback=progress_callback,
                should_stop=should_stop,
            )
            stamps, diffs = score_frames(frames)
            if not stamps:
                raise EmptyResultError("no frames were sampled")
            regions = detect_cuts(diffs, seg_cfg.diff_threshold, len(stamps))
            scenes = build_scenes_from_regions(stamps, regions, duration)

    if not scenes:
        raise EmptyResultError("segmentation produced no scenes")
    logger.info("Segmentation finished: %d scenes, %d diffs", len(scenes), len(diffs))
    return SegmentResult(scenes=scenes, diffs=diffs, strategy=seg_cfg.strategy, duration=duration)


def build_scenes_from_regions(
    stamps: Sequence[FrameStamp],
    regions: Sequence[SceneRegion],
    duration: float,
) -> List[Scene]:
    """根据切点区间组装 Scene，trailing 区间的结束时间取 duration。"""

    scenes: List[Scene] = []
    for region in regions:
        start_time = stamps[region.start_index].time
        end_time = duration if region.trailing else stamps[region.end_index].time
        if end_time <= start_time:
            # 最后一帧恰好落在 duration 且在此处切分时，尾段长度为零，上一段已覆盖到结尾
            continue
        scenes.append(
            Scene(
                id=len(scenes) + 1,
                start_time=start_time,
                end_time=end_time,
                thumbnail=stamps[region.thumbnail_index].thumbnail,
            )
        )
    return scenes


@contextmanager
def _acquire_source(video: str | Path | FrameSource, seg_cfg: SegmentConfig) -> Iterator[FrameSource]:
    if isinstance(video, (str, Path)):
        source: FrameSource = OpenCVFrameSource(video, thumbnail_quality=seg_cfg.thumbnail_quality)
    else:
        source = video
    try:
        yield source
    finally:
        source.close()
