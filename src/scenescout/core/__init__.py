"""核心模块入口，聚合数据模型、异常与配置加载工具供各步骤复用。"""

from .datamodels import DiffSample, Scene
from .config import AnnotateConfig, PipelineConfig, SegmentConfig, load_config
from .errors import (
    DecodeError,
    DurationUnknownError,
    EmptyResultError,
    SegmentationCancelled,
    SegmentationError,
)
from .logging_utils import get_logger, setup_logging

__all__ = [
    "DiffSample",
    "Scene",
    "AnnotateConfig",
    "PipelineConfig",
    "SegmentConfig",
    "load_config",
    "SegmentationError",
    "DurationUnknownError",
    "DecodeError",
    "EmptyResultError",
    "SegmentationCancelled",
    "get_logger",
    "setup_logging",
]
