"""API routes package."""

from gateway.routes.upload_routes import router as upload_router
from gateway.routes.cache_routes import router as cache_router

__all__ = ["upload_router", "cache_router"]
