"""Service layer for business logic."""

from gateway.services.upload_finalizer import UploadFinalizer
from gateway.services.chunk_ingestor import ChunkIngestor
from gateway.services.direct_upload import DirectUploadService
from gateway.services.fallbacks import FallbackProvider
from gateway.services.cached_reads import CachedResource, CachedReadService, ReadResult

__all__ = [
    "UploadFinalizer",
    "ChunkIngestor",
    "DirectUploadService",
    "FallbackProvider",
    "CachedResource",
    "CachedReadService",
    "ReadResult",
]
