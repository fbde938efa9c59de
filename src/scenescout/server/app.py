"""FastAPI application factory and mounts."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scenescout import __version__
from scenescout.core import setup_logging

from .routers.assets import router as assets_router
from .routers.segment import router as segment_router
from .state import broadcaster, task_manager


@asynccontextmanager
async def _lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # worker 线程通过该 loop 把进度推给 SSE 订阅者
    broadcaster.set_loop(asyncio.get_running_loop())
    yield


def create_app() -> FastAPI:
    """Create the FastAPI app instance."""

    setup_logging()
    task_manager.workspace.ensure_layout()
    app = FastAPI(title="SceneScout Server", version=__version__, lifespan=_lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=False,
    )

    app.include_router(assets_router)
    app.include_router(segment_router)

    @app.get("/api/health")
    def health() -> Dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app


app = create_app()
