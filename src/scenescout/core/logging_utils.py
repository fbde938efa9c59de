"""轻量日志工具：CLI 与服务端共用同一格式。"""

from __future__ import annotations

import logging
import os
from typing import Iterable, Optional

LOG_LEVEL_ENV_KEY = "SCENESCOUT_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# 第三方库的逐请求日志过于嘈杂，默认压到 WARNING
NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "multipart")


def setup_logging(level: Optional[str] = None, *, quiet: Iterable[str] = NOISY_LOGGERS) -> None:
    """设置全局日志级别；未显式传入时读取 SCENESCOUT_LOG_LEVEL，默认 INFO。"""

    name = (level or os.getenv(LOG_LEVEL_ENV_KEY) or "INFO").upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=LOG_FORMAT)
    for logger_name in quiet:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """获取模块专属 logger。"""

    return logging.getLogger(name or "scenescout")
