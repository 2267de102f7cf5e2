"""FastAPI server exposing the consensus engine over HTTP.

This module provides HTTP endpoints for:
- Question extraction from page images (/extract)
- Answer evaluation (/evaluate)
- Provider availability (/health, /providers)
- Prometheus metrics (/metrics)

Usage:
    # Run with Uvicorn
    uvicorn multiai.api.server:app --host 0.0.0.0 --port 8000

Example Extraction Request:
    POST /extract
    {"imageBase64": "iVBORw0KGgo...", "pageNumber": 3}

Example Health Check Response:
    {
        "status": "degraded",
        "timestamp": "2025-11-20T12:00:00Z",
        "uptime_seconds": 3600.0,
        "providers": [
            {"name": "claude", "available": true, "capabilities": ["text-evaluation", "vision-extraction"]},
            {"name": "openai", "available": false, "capabilities": ["text-evaluation", "vision-extraction"]}
        ]
    }
"""

import base64
import binascii
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from multiai import __version__
from multiai.config import load_config
from multiai.observability.logging import configure_logging, get_logger
from multiai.observability.metrics import (
    get_metrics_content_type,
    get_metrics_output,
)
from multiai.providers.interfaces import ConfigurationError, EvaluationTask
from multiai.service.consensus_service import MultiAIConsensusService

logger = get_logger(__name__)

# FastAPI app instance
app = FastAPI(
    title="Multi-AI Consensus API",
    description="Question extraction and answer evaluation by multi-provider consensus",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Startup time for uptime calculation
_startup_time = datetime.now(timezone.utc)

_service: Optional[MultiAIConsensusService] = None


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractRequest(_ApiModel):
    image_base64: str = Field(..., description="Base64-encoded page image", min_length=1)
    page_number: int = Field(1, description="1-based page number", ge=1)
    mime_type: str = Field("image/png", description="Image MIME type")


class EvaluateRequest(_ApiModel):
    question_text: str = Field(..., min_length=1)
    student_answer_text: str = Field(..., min_length=1)
    model_answer: Optional[str] = None
    subject: str = Field(..., min_length=1)
    max_marks: float = Field(..., gt=0)


def get_service() -> MultiAIConsensusService:
    """Return the process-wide service, building it on first use."""
    global _service
    if _service is None:
        load_dotenv()
        _service = MultiAIConsensusService.from_config(load_config())
    return _service


@app.on_event("startup")
async def startup_event():
    """Configure logging and log startup event."""
    load_dotenv()
    try:
        config = load_config()
    except ConfigurationError as exc:
        logger.error("configuration_invalid", error=str(exc))
        return
    configure_logging(level=config.logging.level, format=config.logging.format)
    logger.info(
        "multiai_api_server_started",
        port=os.getenv("MULTIAI_API_PORT", "8000"),
        host=os.getenv("MULTIAI_API_HOST", "0.0.0.0"),
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Log shutdown event."""
    logger.info("multiai_api_server_shutdown")


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("configuration_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        content={"error": "service_unavailable", "detail": str(exc)},
        status_code=503,
    )


@app.get("/", response_class=JSONResponse)
async def root() -> Dict[str, Any]:
    """Root endpoint with API information.

    Returns:
        API metadata and available endpoints
    """
    return {
        "service": "Multi-AI Consensus API",
        "version": __version__,
        "status": "running",
        "endpoints": {
            "extract": "/extract",
            "evaluate": "/evaluate",
            "health": "/health",
            "providers": "/providers",
            "metrics": "/metrics",
            "docs": "/docs",
        },
    }


@app.get("/health", response_class=JSONResponse)
async def health(service: MultiAIConsensusService = Depends(get_service)) -> JSONResponse:
    """Provider availability check.

    Response Codes:
        200: At least one provider available (healthy or degraded)
        503: No provider available
    """
    descriptors = service.available_providers()
    available = [descriptor for descriptor in descriptors if descriptor.available]

    if descriptors and len(available) == len(descriptors):
        status = "healthy"
    elif available:
        status = "degraded"
    else:
        status = "unhealthy"

    uptime = (datetime.now(timezone.utc) - _startup_time).total_seconds()
    return JSONResponse(
        content={
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": uptime,
            "providers": [_describe(descriptor) for descriptor in descriptors],
        },
        status_code=200 if available else 503,
    )


@app.get("/providers", response_class=JSONResponse)
async def providers(service: MultiAIConsensusService = Depends(get_service)) -> Dict[str, Any]:
    """List every configured provider and its models."""
    return {
        "providers": [
            dict(
                _describe(descriptor),
                visionModel=descriptor.vision_model,
                textModel=descriptor.text_model,
            )
            for descriptor in service.available_providers()
        ]
    }


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    try:
        return Response(
            content=get_metrics_output(),
            media_type=get_metrics_content_type(),
        )
    except Exception as e:
        logger.error("metrics_export_error", error=str(e), exc_info=True)
        return Response(
            content="# Error exporting metrics\n",
            media_type="text/plain",
            status_code=500,
        )


@app.post("/extract", response_class=JSONResponse)
async def extract(
    request: ExtractRequest,
    service: MultiAIConsensusService = Depends(get_service),
) -> Dict[str, Any]:
    """Extract the questions of one page image by consensus."""
    try:
        image_bytes = base64.b64decode(request.image_base64, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=422, detail="imageBase64 is not valid base64")
    if not image_bytes:
        raise HTTPException(status_code=422, detail="imageBase64 decodes to an empty image")

    result = await service.extract_consensus_async(
        image_bytes, request.page_number, request.mime_type
    )
    return result.model_dump(mode="json", by_alias=True)


@app.post("/evaluate", response_class=JSONResponse)
async def evaluate(
    request: EvaluateRequest,
    service: MultiAIConsensusService = Depends(get_service),
) -> Dict[str, Any]:
    """Grade one student answer by consensus."""
    task = EvaluationTask(**request.model_dump())
    result = await service.evaluate_consensus_async(task)
    return result.model_dump(mode="json", by_alias=True)


def _describe(descriptor) -> Dict[str, Any]:
    return {
        "name": descriptor.name,
        "available": descriptor.available,
        "capabilities": sorted(capability.value for capability in descriptor.capabilities),
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("MULTIAI_API_PORT", "8000"))
    host = os.getenv("MULTIAI_API_HOST", "0.0.0.0")

    uvicorn.run(
        "multiai.api.server:app",
        host=host,
        port=port,
        log_level="info",
        access_log=True,
    )
