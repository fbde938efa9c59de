"""宽松 JSON 解析：清洗大模型输出中常见的格式问题。"""

from __future__ import annotations

import json
import re
from typing import Any, Dict

from scenescout.core import get_logger

logger = get_logger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)
_LINE_COMMENT_PATTERN = re.compile(r"//.*$", re.MULTILINE)
_BLOCK_COMMENT_PATTERN = re.compile(r"/\*[\s\S]*?\*/")

# 依次补齐缺失的逗号，最后去掉尾随逗号
_REPAIRS = (
    (re.compile(r'"\s+(?=")'), '", '),
    (re.compile(r"}\s+(?={)"), "}, "),
    (re.compile(r'(\d)\s+(?=")'), r"\1, "),
    (re.compile(r'(true|false|null)\s+(?=")'), r"\1, "),
    (re.compile(r",\s*([\]}])"), r"\1"),
)


def parse_json_loosely(text: str) -> Dict[str, Any]:
    """尽力解析出最外层 JSON 对象，失败时返回空 dict 交由调用方走默认值。"""

    cleaned = _FENCE_PATTERN.sub("", text.strip())
    cleaned = _LINE_COMMENT_PATTERN.sub("", cleaned)
    cleaned = _BLOCK_COMMENT_PATTERN.sub("", cleaned)

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end != -1:
        cleaned = cleaned[start : end + 1]

    for pattern, replacement in _REPAIRS:
        cleaned = pattern.sub(replacement, cleaned)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("JSON parse failed, snippet start: %s", cleaned[:500])
        return {}
    if not isinstance(parsed, dict):
        return {}
    return parsed
