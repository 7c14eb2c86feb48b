"""Entry point for the upload gateway service."""

import time
import uuid
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from gateway.config import Settings, load_settings
from gateway.exceptions import (
    ApiError,
    AuthError,
    ChunkTooLargeError,
    FinalizeError,
    GatewayError,
    IngestError,
    InvalidUploadRequestError,
    SessionError,
    UnknownResourceError,
    UploadTooLargeError
)
from gateway.routes import cache_router, upload_router
from gateway.service_locator import GatewayServices, build_services

logger = setup_logging('gateway')


def _error_response(request: Request, exc: Exception, status_code: int, code: str, level: str = "warning", **extra):
    request_id = getattr(request.state, 'request_id', 'unknown')
    message = f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}"
    if level == "error":
        logger.error(message, exc_info=True)
    else:
        logger.warning(message)

    content = {"detail": str(exc), "code": code}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        return _error_response(request, exc, status.HTTP_502_BAD_GATEWAY, "AUTH_FAILED", level="error")

    @app.exception_handler(SessionError)
    async def session_error_handler(request: Request, exc: SessionError):
        return _error_response(request, exc, status.HTTP_502_BAD_GATEWAY, "SESSION_CREATE_FAILED", level="error")

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return _error_response(request, exc, status.HTTP_502_BAD_GATEWAY, "REMOTE_API_ERROR", level="error")

    @app.exception_handler(ChunkTooLargeError)
    async def chunk_too_large_handler(request: Request, exc: ChunkTooLargeError):
        return _error_response(
            request, exc, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "CHUNK_TOO_LARGE",
            maxChunkSize=exc.limit,
        )

    @app.exception_handler(UploadTooLargeError)
    async def upload_too_large_handler(request: Request, exc: UploadTooLargeError):
        return _error_response(
            request, exc, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "USE_CHUNKED_UPLOAD",
            useChunkedUpload=True,
            suggestedChunkSize=exc.suggested_chunk_size,
        )

    @app.exception_handler(InvalidUploadRequestError)
    async def invalid_upload_request_handler(request: Request, exc: InvalidUploadRequestError):
        return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "INVALID_UPLOAD_REQUEST")

    @app.exception_handler(IngestError)
    async def ingest_error_handler(request: Request, exc: IngestError):
        return _error_response(request, exc, status.HTTP_503_SERVICE_UNAVAILABLE, "INGEST_FAILED", level="error")

    @app.exception_handler(FinalizeError)
    async def finalize_error_handler(request: Request, exc: FinalizeError):
        return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "FINALIZE_FAILED", level="error")

    @app.exception_handler(UnknownResourceError)
    async def unknown_resource_handler(request: Request, exc: UnknownResourceError):
        return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "UNKNOWN_RESOURCE")

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", level="error")


def create_app(settings: Optional[Settings] = None, services: Optional[GatewayServices] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Runtime settings (read from the environment when omitted)
        services: Pre-built service container (built from settings when omitted)

    Returns:
        FastAPI app with its services on ``app.state.services``
    """
    if services is None:
        services = build_services(settings or load_settings())

    app = FastAPI(
        title="ITR Upload Gateway",
        description="Resumable upload gateway with cache-fronted reads",
        version="1.0.0"
    )
    app.state.services = services

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Middleware to log all HTTP requests and responses.
        """
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()

        logger.info(
            f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
        )

        response = await call_next(request)

        duration = time.time() - start_time

        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
        )

        response.headers["X-Request-ID"] = request_id

        return response

    @app.on_event("shutdown")
    async def shutdown_event():
        """
        Close outbound HTTP clients on application shutdown.
        """
        logger.info("Gateway shutting down...")
        await app.state.services.close()

    register_exception_handlers(app)

    app.include_router(upload_router)
    app.include_router(cache_router)

    @app.get("/")
    async def root():
        """
        Root endpoint for health check.
        """
        return {"message": "ITR Upload Gateway API", "status": "running"}

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.
        Returns 200 if service is alive.
        """
        return {"status": "healthy", "service": "gateway"}

    return app


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    settings = load_settings()
    uvicorn.run(
        "gateway.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
