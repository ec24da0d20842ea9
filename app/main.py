from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from messaging.mock_broker import build_default_broker
from services.pipeline import build_default_pipeline


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    pipeline = build_default_pipeline()
    pipeline.start()
    try:
        yield
    finally:
        pipeline.shutdown()
        build_default_pipeline.cache_clear()
        # A stopped broker cannot be resubscribed.
        build_default_broker.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Telemetry Pipeline",
        description=(
            "Generates, validates, and stores sensor readings and serves "
            "latest, summary, and error views over them."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
