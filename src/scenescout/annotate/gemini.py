"""Gemini 标注后端：通过 generateContent REST 接口分析缩略图。"""

from __future__ import annotations

import base64
import os
from typing import Any, Dict, List, Sequence

import httpx

from scenescout.core import AnnotateConfig, get_logger
from scenescout.core.datamodels import THUMBNAIL_MIME

from .labeling import AnnotationError, SceneAnalysis
from .parsing import parse_json_loosely

logger = get_logger(__name__)

API_KEY_ENV_KEYS = ("GEMINI_API_KEY", "API_KEY")

SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_NONE"}
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]

ANALYSIS_SYSTEM_INSTRUCTION = (
    "You are an elite Computer Vision Specialist and Cinematographer. Your output must be a factual, "
    "dense, and technically accurate reconstruction of the input. Avoid flowery language; prefer "
    "technical descriptions."
)

ANALYSIS_PROMPT = """Analyze this video frame with ABSOLUTE PHOTOREALISTIC PRECISION.

Reverse-engineer the image into a prompt detailed enough that a generative model could recreate this exact frame.

Rules for 'imagePrompt':
1. Describe ONLY what is strictly visible.
2. Specify estimated focal length, aperture, lighting type and film grain.
3. Describe surface materials and textures.
4. Describe where the light hits, its falloff, shadow hardness and any atmospheric haze.
5. Describe the color grading with precise terms.

Rules for 'videoPrompt':
1. Describe the camera movement implied by motion blur or perspective.
2. Describe subject movement physics.

Match this JSON structure:
{
  "imagePrompt": "string",
  "videoPrompt": "string",
  "keywords": ["tag1", "tag2"],
  "mood": "string",
  "visualStyle": "string",
  "objects": [{"color": "string", "label": "string"}],
  "subjects": [{"name": "string", "description": "string", "action": "string"}],
  "originalCard": {"title": "string", "shotType": "string", "cameraAngle": "string", "lighting": "string"}
}

For 'originalCard', use standard film industry terminology."""

TIMELAPSE_SYSTEM_INSTRUCTION = (
    "You are a Timelapse Specialist. You analyze frame deltas and describe the physical "
    "transformation over time with high precision."
)

TIMELAPSE_INTRO = (
    "Analyze this sequence of video frames. They are provided in chronological order. "
    "Treat this as a strict timeline to generate a MORPHING/TIMELAPSE prompt."
)

TIMELAPSE_REQUEST = (
    "Generate a single, precise 'Timelapse Prompt'.\n\n"
    "REQUIREMENTS:\n"
    "1. Describe the EXACT evolution of the scene.\n"
    "2. Mention which objects move, how the light shifts, and how the atmosphere changes from start to end.\n"
    "3. Include technical instructions for the transition (e.g. 'smooth interpolation').\n"
    "4. The output must let a video model bridge the first and last frame while keeping the visual identity of the scene."
)

TIMELAPSE_FALLBACK = "Failed to generate timelapse prompt."

_STRING = {"type": "STRING"}
ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "imagePrompt": _STRING,
        "videoPrompt": _STRING,
        "keywords": {"type": "ARRAY", "items": _STRING},
        "mood": _STRING,
        "visualStyle": _STRING,
        "objects": {
            "type": "ARRAY",
            "items": {"type": "OBJECT", "properties": {"color": _STRING, "label": _STRING}},
        },
        "subjects": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {"name": _STRING, "description": _STRING, "action": _STRING},
            },
        },
        "originalCard": {
            "type": "OBJECT",
            "properties": {
                "title": _STRING,
                "shotType": _STRING,
                "cameraAngle": _STRING,
                "lighting": _STRING,
            },
        },
    },
    "required": [
        "imagePrompt",
        "videoPrompt",
        "keywords",
        "mood",
        "visualStyle",
        "objects",
        "subjects",
        "originalCard",
    ],
}


def resolve_api_key(config: AnnotateConfig) -> str:
    if config.api_key:
        return config.api_key
    for key in API_KEY_ENV_KEYS:
        value = os.getenv(key)
        if value:
            return value
    return ""


class GeminiAnnotator:
    """Gemini REST 封装，单张缩略图出结构化描述，多张出延时提示词。"""

    def __init__(self, config: AnnotateConfig | None = None) -> None:
        self.config = config or AnnotateConfig()
        self.api_key = resolve_api_key(self.config)
        if not self.api_key:
            logger.warning("No API key in config or %s", "/".join(API_KEY_ENV_KEYS))
            raise AnnotationError("未配置 GEMINI_API_KEY，无法调用标注服务")
        self.backend_name = f"gemini::{self.config.model}"

    def analyze_frame(self, thumbnail: bytes) -> SceneAnalysis:
        payload = {
            "systemInstruction": {"parts": [{"text": ANALYSIS_SYSTEM_INSTRUCTION}]},
            "contents": [{"role": "user", "parts": [_inline_image(thumbnail), {"text": ANALYSIS_PROMPT}]}],
            "safetySettings": SAFETY_SETTINGS,
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": ANALYSIS_SCHEMA,
                "maxOutputTokens": 8192,
            },
        }
        text = self._generate(payload)
        return SceneAnalysis.from_payload(parse_json_loosely(text or "{}"))

    def timelapse_prompt(self, thumbnails: Sequence[bytes]) -> str:
        if not thumbnails:
            raise ValueError("timelapse_prompt requires at least one thumbnail")
        parts: List[Dict[str, Any]] = [{"text": TIMELAPSE_INTRO}]
        total = len(thumbnails)
        for idx, thumbnail in enumerate(thumbnails):
            percentage = round(idx / (total - 1) * 100) if total > 1 else 0
            parts.append({"text": f"Frame {idx + 1} ({percentage}% timeline):"})
            parts.append(_inline_image(thumbnail))
        parts.append({"text": TIMELAPSE_REQUEST})
        payload = {
            "systemInstruction": {"parts": [{"text": TIMELAPSE_SYSTEM_INSTRUCTION}]},
            "contents": [{"role": "user", "parts": parts}],
            "safetySettings": SAFETY_SETTINGS,
            "generationConfig": {"maxOutputTokens": 2048, "temperature": 0.4},
        }
        return self._generate(payload) or TIMELAPSE_FALLBACK

    def _generate(self, payload: Dict[str, Any]) -> str:
        url = f"{self.config.base_url.rstrip('/')}/models/{self.config.model}:generateContent"
        try:
            with httpx.Client(timeout=self.config.timeout_s) as client:
                resp = client.post(
                    url,
                    headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
                    json=payload,
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            raise AnnotationError(f"Gemini 请求失败: {exc}") from exc
        return _extract_text(data)


def _inline_image(thumbnail: bytes) -> Dict[str, Any]:
    return {"inlineData": {"mimeType": THUMBNAIL_MIME, "data": base64.b64encode(thumbnail).decode("ascii")}}


def _extract_text(data: Dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        logger.warning("Gemini response has no candidates: %s", data.get("promptFeedback"))
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(str(part.get("text", "")) for part in parts).strip()
