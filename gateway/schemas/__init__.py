"""Pydantic schemas for API requests and responses."""

from gateway.schemas.uploads import (
    FileMetadataModel,
    PlanUploadRequest,
    PlanUploadResponse,
    ChunkUploadRequest,
    ChunkUploadResponse,
    DirectUploadRequest,
    FileRecordResponse,
    UploadProgressResponse
)
from gateway.schemas.cache import CachedReadResponse
from gateway.schemas.common import CamelModel, ErrorResponse

__all__ = [
    "FileMetadataModel",
    "PlanUploadRequest",
    "PlanUploadResponse",
    "ChunkUploadRequest",
    "ChunkUploadResponse",
    "DirectUploadRequest",
    "FileRecordResponse",
    "UploadProgressResponse",
    "CachedReadResponse",
    "CamelModel",
    "ErrorResponse"
]
