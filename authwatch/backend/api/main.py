"""
api/main.py

FastAPI application factory. The transport only calls into
IngestionPipeline; core errors are mapped to HTTP status codes here:

  ValidationError → 400   DetectionError → 500 (retryable)   StorageError → 503
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import settings
from ..errors import DetectionError, StorageError, ValidationError
from ..metrics import METRICS
from ..pipeline import IngestionPipeline
from .routes import alerts as alerts_router
from .routes import auth as auth_router
from .routes import logs as logs_router

logger = logging.getLogger(__name__)

_pipeline: IngestionPipeline | None = None


def set_pipeline(pipeline: IngestionPipeline) -> None:
    global _pipeline
    _pipeline = pipeline


def get_pipeline() -> IngestionPipeline:
    if _pipeline is None:
        raise RuntimeError("Pipeline not initialised - call set_pipeline() first")
    return _pipeline


def create_app(cors_origins: list[str] | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("FastAPI startup")
        yield
        logger.info("FastAPI shutdown")

    app = FastAPI(
        title="AuthWatch - Brute-Force Login Monitor",
        version="1.0.0",
        description="Authentication event ingestion with per-source brute-force alerting",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins if cors_origins is not None else settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------------------------------------------------------------
    # Core error → HTTP mapping
    # ------------------------------------------------------------------

    @app.exception_handler(ValidationError)
    async def on_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid log data", "detail": str(exc), "field": exc.field},
        )

    @app.exception_handler(DetectionError)
    async def on_detection_error(request: Request, exc: DetectionError) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content={
                "message": "Event recorded but detection failed",
                "detail": str(exc),
                "source_ip": exc.source_ip,
                "retryable": True,
            },
        )

    @app.exception_handler(StorageError)
    async def on_storage_error(request: Request, exc: StorageError) -> JSONResponse:
        return JSONResponse(
            status_code=503,
            content={"message": "Storage unavailable", "detail": str(exc)},
        )

    # REST routers
    app.include_router(auth_router.router)
    app.include_router(logs_router.router)
    app.include_router(alerts_router.router)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "pipeline": METRICS.as_dict()}

    return app
