"""
Health check endpoints.

Reports the storage backend status without authentication.
"""
from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from api.config import settings
from api.dependencies import BlobStoreDep

logger = structlog.get_logger()

router = APIRouter()


@router.get(
    "/health",
    response_model=Dict[str, Any],
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Health check for load balancers, including the storage backend status.",
    responses={
        200: {
            "description": "Service is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "timestamp": "2025-01-15T10:30:00Z",
                        "version": "1.0.0",
                        "components": {"storage": {"type": "azure", "available": True}},
                    }
                }
            },
        },
        503: {"description": "Storage backend is unavailable"},
    },
)
async def health_check(store: BlobStoreDep) -> JSONResponse:
    """Check the service and its storage backend."""
    try:
        storage_status = await store.backend.get_status()
    except Exception as e:
        logger.error("Storage health check failed", error=str(e))
        storage_status = {"available": False, "error": str(e)}

    healthy = bool(storage_status.get("available"))
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.VERSION,
        "components": {"storage": storage_status},
    }
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body,
    )
