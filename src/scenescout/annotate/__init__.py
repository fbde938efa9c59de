"""场景标注模块：把切分得到的缩略图交给外部大模型生成描述。"""

from .gemini import GeminiAnnotator
from .labeling import (
    AnnotationError,
    AnnotationResult,
    SceneAnalysis,
    SceneAnnotator,
    annotate_scenes,
    select_timelapse_frames,
)
from .parsing import parse_json_loosely

__all__ = [
    "GeminiAnnotator",
    "AnnotationError",
    "AnnotationResult",
    "SceneAnalysis",
    "SceneAnnotator",
    "annotate_scenes",
    "select_timelapse_frames",
    "parse_json_loosely",
]
