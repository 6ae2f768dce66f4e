from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.engine import build_default_engine
from services.poller import build_default_cache, build_default_poller


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    poller = build_default_poller()
    if poller.url:
        poller.start()
    try:
        yield
    finally:
        poller.stop()
        build_default_poller.cache_clear()
        build_default_cache.cache_clear()
        build_default_engine.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Air Quality LOD Service",
        description="Daily aggregation and zoom-driven level-of-detail series for sensor snapshots.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
