"""Server-Sent Events helpers for segmentation progress."""

from __future__ import annotations

import asyncio
import json
import threading
from typing import Any, AsyncGenerator, Iterable, Optional

from fastapi import Request

KEEPALIVE_SECONDS = 15.0


class EventBroadcaster:
    """Fan-out of worker-thread messages to the asyncio SSE subscribers."""

    def __init__(self) -> None:
        self._subscribers: set[asyncio.Queue[dict[str, Any]]] = set()
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

    def set_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    async def subscribe(self) -> asyncio.Queue[dict[str, Any]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        with self._lock:
            self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[dict[str, Any]]) -> None:
        with self._lock:
            self._subscribers.discard(queue)

    def publish(self, message: dict[str, Any]) -> None:
        # called from the worker thread; no loop means no client has connected yet
        if self._loop is None or self._loop.is_closed():
            return
        with self._lock:
            queues = list(self._subscribers)
        for queue in queues:
            self._loop.call_soon_threadsafe(queue.put_nowait, message)


def format_sse(message: dict[str, Any], *, event: Optional[str] = None) -> str:
    lines = [f"event: {event}"] if event else []
    lines.append(f"data: {json.dumps(message, ensure_ascii=False)}")
    return "\n".join(lines) + "\n\n"


def matches_video(message: dict[str, Any], video_id: Optional[str]) -> bool:
    """无过滤条件或消息属于该视频时放行；快照等无 video_id 的消息总是放行。"""

    if video_id is None:
        return True
    owner = message.get("video_id")
    return owner is None or owner == video_id


async def stream_events(
    request: Request,
    broadcaster: EventBroadcaster,
    *,
    initial_messages: Iterable[dict[str, Any]] = (),
    video_id: Optional[str] = None,
) -> AsyncGenerator[str, None]:
    queue = await broadcaster.subscribe()
    try:
        for message in initial_messages:
            yield format_sse(message)
        while not await request.is_disconnected():
            try:
                message = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            if matches_video(message, video_id):
                yield format_sse(message, event=message.get("stage"))
    finally:
        broadcaster.unsubscribe(queue)
