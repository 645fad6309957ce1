from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import router
from app.stream import router as stream_router
from logging_config import configure_logging
from models.errors import UnknownChannel
from services.engine import build_default_engine


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    engine = build_default_engine()
    await engine.start()
    try:
        yield
    finally:
        await engine.stop()
        build_default_engine.cache_clear()


async def unknown_channel_handler(_request: Request, _exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "Sensor not found"},
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Broadcast",
        description="Simulated environmental sensors streamed to live dashboards.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_exception_handler(UnknownChannel, unknown_channel_handler)
    app.include_router(router)
    app.include_router(stream_router)
    return app

app = create_app()
