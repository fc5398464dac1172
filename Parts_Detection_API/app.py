"""
FastAPI application for the parts detector.

Routes:
- POST /api/detect -> multipart `image_file`, returns detections
- GET  /api/health -> model session status
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from partscan_kit import (
    CLASS_NAMES,
    DecodeError,
    DetectionPipeline,
    InferenceError,
    PostConfig,
    ShapeMismatchError,
    load_class_names,
    load_pipeline,
    resolve_path,
)

from .api_models import DetectionRecord, HealthResponse
from .config import ServiceConfig, get_config


LOGGER = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/gif")
RESPONSE_FORMATS = ("rows", "records")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_pipeline(cfg: ServiceConfig) -> DetectionPipeline:
    names = load_class_names(str(resolve_path(cfg.metadata_path))) if cfg.metadata_path else CLASS_NAMES
    return load_pipeline(
        cfg.model_path,
        post_cfg=PostConfig(
            conf_threshold=cfg.conf_threshold,
            iou_threshold=cfg.iou_threshold,
            clamp_boxes=cfg.clamp_boxes,
        ),
        class_names=names,
        onnx_providers=cfg.onnx_providers,
        use_coreml=cfg.use_coreml,
    )


def create_app(cfg: Optional[ServiceConfig] = None, pipeline: Optional[DetectionPipeline] = None) -> FastAPI:
    """
    Create the app. The pipeline (and its model session) is owned by the app and
    shared by all requests; pass one in to swap the inference backend.
    """

    cfg = cfg or get_config()
    pipeline = pipeline or build_pipeline(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if cfg.eager_load and pipeline.session is not None:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, pipeline.session.ensure_loaded)
        try:
            yield
        finally:
            if pipeline.session is not None:
                pipeline.session.close()

    app = FastAPI(title="Partscan Detection API", version="0.1.0", lifespan=lifespan)
    app.state.config = cfg
    app.state.pipeline = pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cfg.allowed_origins),
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.post("/api/detect", response_model=None)
    async def detect(
        image_file: Optional[UploadFile] = File(None),
        response_format: str = Query("rows", alias="format"),
    ):
        start = time.perf_counter()
        try:
            if response_format not in RESPONSE_FORMATS:
                raise HTTPException(status_code=400, detail=f"format must be one of {RESPONSE_FORMATS}")
            if image_file is None:
                raise HTTPException(status_code=400, detail="Error retrieving file")

            content_type = (image_file.content_type or "").split(";")[0].strip().lower()
            if content_type not in ALLOWED_CONTENT_TYPES:
                raise HTTPException(
                    status_code=400,
                    detail="Invalid file type. Only JPEG, PNG, and GIF are supported",
                )

            data = await image_file.read(cfg.max_upload_bytes + 1)
            if len(data) > cfg.max_upload_bytes:
                raise HTTPException(status_code=400, detail="File too large")

            loop = asyncio.get_running_loop()
            try:
                detections = await loop.run_in_executor(None, pipeline.detect_bytes, data)
            except DecodeError as exc:
                LOGGER.info("rejected upload %s: %s", image_file.filename, exc)
                raise HTTPException(status_code=400, detail="Unable to decode image") from exc
            except ShapeMismatchError as exc:
                LOGGER.error("model does not match configuration: %s", exc)
                raise HTTPException(status_code=500, detail="Error processing image") from exc
            except InferenceError as exc:
                LOGGER.error("inference failed: %s", exc)
                raise HTTPException(status_code=500, detail="Error processing image") from exc

            LOGGER.info("detected %d objects in %s", len(detections), image_file.filename)
            if response_format == "records":
                return [DetectionRecord.from_detection(d) for d in detections]
            return [d.as_row() for d in detections]
        finally:
            LOGGER.info("request processed in %.1f ms", (time.perf_counter() - start) * 1000.0)

    @app.get("/api/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        session = pipeline.session
        loaded = session is None or session.loaded
        providers = list(session.providers) if session is not None else []
        return HealthResponse(status="ok" if loaded else "not_loaded", model_loaded=loaded, providers=providers)

    return app
