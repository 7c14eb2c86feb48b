"""Service container for gateway components, held on ``app.state``."""

from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request

from common.logging_config import get_logger
from gateway.blob_storage import LocalBlobStore
from gateway.config import Settings
from gateway.database import DocumentStore
from gateway.remote_client import RemoteApiClient
from gateway.repositories import ChunkRepository, FileRepository, ProgressRepository
from gateway.services import (
    CachedReadService,
    ChunkIngestor,
    DirectUploadService,
    FallbackProvider,
    UploadFinalizer,
)
from gateway.services.cached_reads import build_cached_read_service
from gateway.token_cache import TokenCache
from gateway.upload_sessions import UploadSessionManager

logger = get_logger(__name__)


@dataclass
class GatewayServices:
    settings: Settings
    store: DocumentStore
    blob_store: LocalBlobStore
    token_cache: TokenCache
    remote_client: RemoteApiClient
    session_manager: UploadSessionManager
    progress_repo: ProgressRepository
    chunk_repo: ChunkRepository
    file_repo: FileRepository
    finalizer: UploadFinalizer
    ingestor: ChunkIngestor
    direct_uploads: DirectUploadService
    cached_reads: CachedReadService

    async def close(self):
        await self.remote_client.close()
        await self.token_cache.close()


def build_services(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
    fallback_provider: Optional[FallbackProvider] = None,
) -> GatewayServices:
    """
    Wire every gateway component for one process.

    Args:
        settings: Runtime settings
        http_client: Shared client for token and remote API calls (tests pass
            one backed by httpx.MockTransport)
        fallback_provider: Fallback data for the read path

    Returns:
        GatewayServices
    """
    store = DocumentStore(settings.database_path)
    store.init_database()

    blob_store = LocalBlobStore(settings.blob_storage_path)
    blob_store.ensure_directory()

    token_cache = TokenCache(settings, http_client=http_client)
    remote_client = RemoteApiClient(settings, token_cache, http_client=http_client)

    progress_repo = ProgressRepository(store)
    chunk_repo = ChunkRepository(store)
    file_repo = FileRepository(store)

    finalizer = UploadFinalizer(progress_repo, chunk_repo, file_repo, blob_store)
    ingestor = ChunkIngestor(settings, progress_repo, chunk_repo, finalizer)

    if fallback_provider is None:
        fallback_provider = FallbackProvider.from_file(settings.fallback_data_path)

    logger.info(
        f"Gateway services ready [completion_policy={settings.completion_policy}] "
        f"[max_chunk_size={settings.max_chunk_size_bytes}]"
    )

    return GatewayServices(
        settings=settings,
        store=store,
        blob_store=blob_store,
        token_cache=token_cache,
        remote_client=remote_client,
        session_manager=UploadSessionManager(settings, remote_client),
        progress_repo=progress_repo,
        chunk_repo=chunk_repo,
        file_repo=file_repo,
        finalizer=finalizer,
        ingestor=ingestor,
        direct_uploads=DirectUploadService(settings, file_repo, blob_store),
        cached_reads=build_cached_read_service(settings, store, fallback_provider),
    )


def get_services(request: Request) -> GatewayServices:
    """FastAPI dependency returning the app's service container."""
    return request.app.state.services
