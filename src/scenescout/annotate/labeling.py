"""场景标注接口：协议、结果结构与顺序批处理。

切分核心只负责产出缩略图；标注结果以 scene id 关联，不回写 Scene。
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from scenescout.core import Scene, get_logger

logger = get_logger(__name__)

FAILED_ANALYSIS_MESSAGE = "Failed to analyze."


class AnnotationError(RuntimeError):
    """远程标注服务不可用或返回异常。"""


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else []


@dataclass(slots=True)
class DetailedObject:
    color: str
    label: str


@dataclass(slots=True)
class DetailedSubject:
    name: str
    description: str
    action: str


@dataclass(slots=True)
class OriginalCard:
    """影视术语描述的镜头卡片。"""

    title: str = ""
    shot_type: str = ""
    camera_angle: str = ""
    lighting: str = ""


@dataclass(slots=True)
class SceneAnalysis:
    """单帧结构化描述，字段缺失时使用宽松默认值。"""

    image_prompt: str = ""
    video_prompt: str = ""
    keywords: List[str] = field(default_factory=list)
    mood: str = "Unknown"
    visual_style: str = "Unknown"
    objects: List[DetailedObject] = field(default_factory=list)
    subjects: List[DetailedSubject] = field(default_factory=list)
    original_card: OriginalCard = field(default_factory=OriginalCard)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "SceneAnalysis":
        """从模型返回的 camelCase JSON 构建，容忍缺字段与类型不符。"""

        card = data.get("originalCard")
        card = card if isinstance(card, Mapping) else {}
        return cls(
            image_prompt=str(data.get("imagePrompt") or ""),
            video_prompt=str(data.get("videoPrompt") or ""),
            keywords=[str(item) for item in _as_list(data.get("keywords"))],
            mood=str(data.get("mood") or "Unknown"),
            visual_style=str(data.get("visualStyle") or "Unknown"),
            objects=[
                DetailedObject(color=str(item.get("color", "")), label=str(item.get("label", "")))
                for item in _as_list(data.get("objects"))
                if isinstance(item, Mapping)
            ],
            subjects=[
                DetailedSubject(
                    name=str(item.get("name", "")),
                    description=str(item.get("description", "")),
                    action=str(item.get("action", "")),
                )
                for item in _as_list(data.get("subjects"))
                if isinstance(item, Mapping)
            ],
            original_card=OriginalCard(
                title=str(card.get("title", "")),
                shot_type=str(card.get("shotType", "")),
                camera_angle=str(card.get("cameraAngle", "")),
                lighting=str(card.get("lighting", "")),
            ),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SceneAnalysis":
        """读取 to_dict 写出的 snake_case 结构。"""

        card = data.get("original_card")
        card = card if isinstance(card, Mapping) else {}
        return cls.from_payload(
            {
                "imagePrompt": data.get("image_prompt"),
                "videoPrompt": data.get("video_prompt"),
                "keywords": data.get("keywords"),
                "mood": data.get("mood"),
                "visualStyle": data.get("visual_style"),
                "objects": data.get("objects"),
                "subjects": data.get("subjects"),
                "originalCard": {
                    "title": card.get("title", ""),
                    "shotType": card.get("shot_type", ""),
                    "cameraAngle": card.get("camera_angle", ""),
                    "lighting": card.get("lighting", ""),
                },
            }
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "image_prompt": self.image_prompt,
            "video_prompt": self.video_prompt,
            "keywords": list(self.keywords),
            "mood": self.mood,
            "visual_style": self.visual_style,
            "objects": [{"color": obj.color, "label": obj.label} for obj in self.objects],
            "subjects": [
                {"name": sub.name, "description": sub.description, "action": sub.action}
                for sub in self.subjects
            ],
            "original_card": {
                "title": self.original_card.title,
                "shot_type": self.original_card.shot_type,
                "camera_angle": self.original_card.camera_angle,
                "lighting": self.original_card.lighting,
            },
        }


@dataclass(slots=True)
class AnnotationResult:
    """单个场景的标注产物；失败时 analysis 为空、error 带简短说明。"""

    scene_id: int
    analysis: Optional[SceneAnalysis] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.analysis is not None and self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scene_id": self.scene_id,
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AnnotationResult":
        analysis = data.get("analysis")
        return cls(
            scene_id=int(data["scene_id"]),
            analysis=SceneAnalysis.from_dict(analysis) if isinstance(analysis, Mapping) else None,
            error=data.get("error"),
        )


class SceneAnnotator(Protocol):
    """标注后端协议：可由本地模型或云端 API 实现。"""

    backend_name: str

    def analyze_frame(self, thumbnail: bytes) -> SceneAnalysis:
        """根据单张代表帧生成结构化描述。"""

        ...

    def timelapse_prompt(self, thumbnails: Sequence[bytes]) -> str:
        """根据按时间排序的多张缩略图生成一段延时/过渡提示词。"""

        ...


def annotate_scenes(
    scenes: Sequence[Scene],
    annotator: SceneAnnotator,
    *,
    existing: Mapping[int, SceneAnalysis] | None = None,
    should_stop: Callable[[], bool] | None = None,
    delay_range: tuple[float, float] = (5.0, 7.0),
    poll_interval: float = 0.2,
    on_result: Callable[[AnnotationResult], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    rng: random.Random | None = None,
) -> List[AnnotationResult]:
    """顺序标注尚未标注的场景，两次请求之间随机停顿以避开限流。

    单个场景失败只记录错误并继续；should_stop 在每次请求前后以及停顿期间
    按 poll_interval 轮询，已发出的请求总会等到返回。
    """

    done = existing or {}
    pending = [scene for scene in scenes if scene.id not in done]
    rng = rng or random.Random()
    results: List[AnnotationResult] = []

    for position, scene in enumerate(pending):
        if _stop_requested(should_stop):
            logger.info("Annotation batch stopped before scene %d", scene.id)
            break
        result = _annotate_one(scene, annotator)
        results.append(result)
        if on_result is not None:
            on_result(result)
        if _stop_requested(should_stop):
            logger.info("Annotation batch stopped after scene %d", scene.id)
            break
        if position < len(pending) - 1:
            delay = rng.uniform(*delay_range)
            if not _interruptible_sleep(delay, poll_interval, should_stop, sleep):
                logger.info("Annotation batch stopped while waiting after scene %d", scene.id)
                break
    return results


def select_timelapse_frames(
    scenes: Sequence[Scene],
    first_id: int,
    second_id: int,
    max_frames: int = 8,
) -> List[bytes]:
    """取 id 落在两个选中场景之间（含端点）的缩略图，超出 max_frames 时均匀抽取。"""

    if max_frames < 2:
        raise ValueError("max_frames must be at least 2")
    low, high = sorted((first_id, second_id))
    sequence = sorted((scene for scene in scenes if low <= scene.id <= high), key=lambda scene: scene.id)
    if len(sequence) <= max_frames:
        return [scene.thumbnail for scene in sequence]
    step = (len(sequence) - 1) / (max_frames - 1)
    return [sequence[int(i * step + 0.5)].thumbnail for i in range(max_frames)]


def _annotate_one(scene: Scene, annotator: SceneAnnotator) -> AnnotationResult:
    try:
        analysis = annotator.analyze_frame(scene.thumbnail)
    except Exception:
        logger.exception("Failed to analyze scene %d with %s", scene.id, annotator.backend_name)
        return AnnotationResult(scene_id=scene.id, error=FAILED_ANALYSIS_MESSAGE)
    return AnnotationResult(scene_id=scene.id, analysis=analysis)


def _stop_requested(should_stop: Callable[[], bool] | None) -> bool:
    return should_stop is not None and should_stop()


def _interruptible_sleep(
    delay: float,
    poll_interval: float,
    should_stop: Callable[[], bool] | None,
    sleep: Callable[[float], None],
) -> bool:
    """分片等待；返回 False 表示等待期间收到停止请求。"""

    elapsed = 0.0
    while elapsed < delay:
        if _stop_requested(should_stop):
            return False
        step = min(poll_interval, delay - elapsed)
        sleep(step)
        elapsed += step
    return not _stop_requested(should_stop)
