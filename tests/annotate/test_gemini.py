"""Gemini 后端测试，httpx 客户端以桩替换。"""

import base64
import json

import pytest

from scenescout.annotate.gemini import GeminiAnnotator, TIMELAPSE_FALLBACK
from scenescout.annotate.labeling import AnnotationError
from scenescout.core import AnnotateConfig


class DummyResponse:
    def __init__(self, data):
        self._data = data

    def raise_for_status(self):
        return None

    def json(self):
        return self._data


def install_client(monkeypatch, data):
    calls = []

    class DummyClient:
        def __init__(self, *_, **kwargs):
            self.kwargs = kwargs

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def post(self, url, **kwargs):
            calls.append((url, kwargs))
            return DummyResponse(data)

    monkeypatch.setattr("scenescout.annotate.gemini.httpx.Client", DummyClient)
    return calls


def text_response(text: str):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_missing_api_key(monkeypatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)

    with pytest.raises(AnnotationError):
        GeminiAnnotator(AnnotateConfig())


def test_api_key_from_env(monkeypatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("API_KEY", "k-env")

    assert GeminiAnnotator(AnnotateConfig()).api_key == "k-env"


def test_analyze_frame(monkeypatch) -> None:
    body = json.dumps({"imagePrompt": "a beach", "keywords": ["sand"], "mood": "calm"})
    calls = install_client(monkeypatch, text_response(f"```json\n{body}\n```"))

    annotator = GeminiAnnotator(AnnotateConfig(api_key="k-test"))
    analysis = annotator.analyze_frame(b"\xff\xd8jpeg")

    assert analysis.image_prompt == "a beach"
    assert analysis.keywords == ["sand"]
    assert analysis.visual_style == "Unknown"
    url, kwargs = calls[0]
    assert url.endswith("/models/gemini-2.5-flash:generateContent")
    assert kwargs["headers"]["x-goog-api-key"] == "k-test"
    image_part = kwargs["json"]["contents"][0]["parts"][0]["inlineData"]
    assert image_part["mimeType"] == "image/jpeg"
    assert base64.b64decode(image_part["data"]) == b"\xff\xd8jpeg"
    assert kwargs["json"]["generationConfig"]["responseMimeType"] == "application/json"


def test_analyze_frame_with_empty_response_uses_defaults(monkeypatch) -> None:
    install_client(monkeypatch, {"candidates": []})

    analysis = GeminiAnnotator(AnnotateConfig(api_key="k")).analyze_frame(b"x")

    assert analysis.mood == "Unknown"
    assert analysis.keywords == []


def test_timelapse_prompt_labels_frames(monkeypatch) -> None:
    calls = install_client(monkeypatch, text_response("Smooth interpolation from dawn to dusk."))

    prompt = GeminiAnnotator(AnnotateConfig(api_key="k")).timelapse_prompt([b"a", b"b", b"c"])

    assert prompt == "Smooth interpolation from dawn to dusk."
    parts = calls[0][1]["json"]["contents"][0]["parts"]
    labels = [part["text"] for part in parts if "text" in part and part["text"].startswith("Frame")]
    assert labels == ["Frame 1 (0% timeline):", "Frame 2 (50% timeline):", "Frame 3 (100% timeline):"]
    assert calls[0][1]["json"]["generationConfig"]["temperature"] == 0.4


def test_timelapse_prompt_fallback_text(monkeypatch) -> None:
    install_client(monkeypatch, text_response(""))

    assert GeminiAnnotator(AnnotateConfig(api_key="k")).timelapse_prompt([b"a"]) == TIMELAPSE_FALLBACK
