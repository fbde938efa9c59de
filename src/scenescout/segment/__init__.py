"""场景切分模块，聚合抽帧、帧差打分、切点检测与定长切分。"""

from .clipper import SegmentResult, build_scenes_from_regions, segment_video
from .fixed import split_fixed_segments
from .loader import FrameSource, OpenCVFrameSource, VideoOpenError, compute_output_size
from .sampler import iter_sampled_frames, sample_timestamps
from .scorer import frame_difference, score_frames
from .shot_detector import detect_cuts
from .types import FrameStamp, SampledFrame, SceneRegion

__all__ = [
    "segment_video",
    "SegmentResult",
    "build_scenes_from_regions",
    "split_fixed_segments",
    "FrameSource",
    "OpenCVFrameSource",
    "VideoOpenError",
    "compute_output_size",
    "iter_sampled_frames",
    "sample_timestamps",
    "frame_difference",
    "score_frames",
    "detect_cuts",
    "FrameStamp",
    "SampledFrame",
    "SceneRegion",
]
