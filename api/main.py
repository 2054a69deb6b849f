"""
Blob store API.

Thin HTTP layer over one storage container: list, upload (multipart/form-data)
and download files.
"""
from contextlib import asynccontextmanager
from typing import Any, Dict

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app
from starlette.exceptions import HTTPException

from api.config import settings
from api.routers import files, health
from api.utils.error_handlers import (
    blobstore_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from api.utils.logger import setup_logging
from blobstore import BlobStore, BlobStoreError

# Setup structured logging
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the blob store on startup and release it on shutdown."""
    logger.info("Starting blob store API", version=settings.VERSION)

    store = await BlobStore.connect(
        settings.storage_config,
        public_access=settings.STORAGE_PUBLIC_ACCESS,
        buffered=settings.STORAGE_BUFFERED,
        max_upload_size=settings.MAX_UPLOAD_SIZE,
    )
    app.state.blob_store = store

    logger.info(
        "Configuration loaded",
        api_host=settings.API_HOST,
        api_port=settings.API_PORT,
        storage_type=settings.STORAGE_TYPE,
        container=store.backend.container,
        base_address=store.base_address,
    )

    yield

    logger.info("Shutting down blob store API")
    await store.close()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="Blob Store API",
        description="Upload, list and download files in a blob storage container",
        version=settings.VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    _configure_middleware(application)
    _configure_exception_handlers(application)
    _configure_routes(application)

    if settings.ENABLE_METRICS:
        application.mount("/metrics", make_asgi_app())

    return application


def _configure_middleware(application: FastAPI) -> None:
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=600,  # Cache preflight requests
    )


def _configure_exception_handlers(application: FastAPI) -> None:
    """Configure centralized exception handling."""
    application.add_exception_handler(BlobStoreError, blobstore_exception_handler)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)
    application.add_exception_handler(HTTPException, http_exception_handler)
    application.add_exception_handler(Exception, general_exception_handler)


def _configure_routes(application: FastAPI) -> None:
    application.include_router(health.router, prefix="/api/v1", tags=["health"])
    application.include_router(files.router, prefix="/api/v1", tags=["files"])


# Create application instance
app = create_application()


@app.get("/", tags=["root"], summary="API Information")
async def root() -> Dict[str, Any]:
    """Get API information and available endpoints."""
    return {
        "name": "Blob Store API",
        "version": settings.VERSION,
        "status": "operational",
        "endpoints": {
            "health": "/api/v1/health",
            "files": "/api/v1/files",
            "content": "/api/v1/files/content",
            "download": "/api/v1/files/download",
            "archive": "/api/v1/files/archive",
        },
    }


def main() -> None:
    """Main entry point for production server."""
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        workers=1 if settings.DEBUG else settings.API_WORKERS,
        reload=settings.API_RELOAD,
        log_config=None,  # Use structured logging
        server_header=False,
    )


if __name__ == "__main__":
    main()
