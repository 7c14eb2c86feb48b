"""Receives individual chunks and advances upload progress."""

import hashlib
import logging
from typing import Any, Dict, Optional

from common.types import ChunkAck, ChunkRecord, UploadProgress, utc_timestamp
from gateway.config import COMPLETION_POLICY_LAST_INDEX, Settings
from gateway.exceptions import (
    ChunkTooLargeError,
    DocumentConflictError,
    IngestError,
    InvalidUploadRequestError,
    StoreError
)
from gateway.repositories import ChunkRepository, ProgressRepository
from gateway.services.upload_finalizer import UploadFinalizer
from gateway.utils import decode_payload

logger = logging.getLogger(__name__)


class ChunkIngestor:
    def __init__(
        self,
        settings: Settings,
        progress_repo: ProgressRepository,
        chunk_repo: ChunkRepository,
        finalizer: UploadFinalizer,
    ):
        self.settings = settings
        self.progress_repo = progress_repo
        self.chunk_repo = chunk_repo
        self.finalizer = finalizer

    def ingest(
        self,
        user_id: str,
        file_name: str,
        chunk_index: int,
        total_chunks: int,
        payload: str,
        file_metadata: Optional[Dict[str, Any]] = None,
    ) -> ChunkAck:
        """
        Persist one chunk and record it in the upload's progress.

        Chunks may arrive in any order and may be retransmitted. The index is
        recorded before the bytes are stored; a failed store is repaired by
        retransmitting the chunk. When the completion policy is satisfied the
        upload is finalized inline.

        Args:
            user_id: Owner of the upload
            file_name: Name identifying the upload for this user
            chunk_index: Zero-based chunk index
            total_chunks: Number of chunks in the upload
            payload: Base64 encoded chunk bytes
            file_metadata: Client supplied file description

        Returns:
            ChunkAck

        Raises:
            InvalidUploadRequestError: If indices or payload are invalid
            ChunkTooLargeError: If the chunk exceeds the configured size
            IngestError: If the chunk or progress cannot be persisted
            FinalizeError: If completion was reached but finalize failed
        """
        data = self._validate(user_id, file_name, chunk_index, total_chunks, payload)
        metadata = dict(file_metadata or {})
        metadata.setdefault("name", file_name)

        record = ChunkRecord(
            user_id=user_id,
            file_name=file_name,
            chunk_index=chunk_index,
            total_chunks=total_chunks,
            payload=payload,
            size=len(data),
            checksum=hashlib.sha256(data).hexdigest(),
            received_at=utc_timestamp(),
        )

        try:
            progress, _ = self.progress_repo.record_chunk(
                user_id, file_name, chunk_index, total_chunks, metadata
            )
        except DocumentConflictError as e:
            raise InvalidUploadRequestError(
                f"Chunk declares {total_chunks} total chunks but upload of {file_name} "
                f"has {e.actual}; plan the upload again to restart it"
            ) from e
        except StoreError as e:
            logger.error(f"Chunk ingest failed [user_id={user_id}] [file={file_name}] [chunk={chunk_index}]: {e}")
            raise IngestError(f"Failed to store chunk {chunk_index} of {file_name}") from e

        if progress.deleted:
            # Late retransmission after finalize; the upload is already complete.
            self._release_chunk(user_id, file_name)
            return ChunkAck(
                chunk_index=chunk_index,
                total_chunks=total_chunks,
                completed=True,
                file_id=progress.upload_id,
            )

        try:
            self.chunk_repo.save(record)
        except StoreError as e:
            logger.error(f"Chunk ingest failed [user_id={user_id}] [file={file_name}] [chunk={chunk_index}]: {e}")
            raise IngestError(f"Failed to store chunk {chunk_index} of {file_name}") from e

        logger.info(
            f"Chunk received [user_id={user_id}] [file={file_name}] "
            f"[chunk={chunk_index + 1}/{total_chunks}] [have={len(progress.completed_chunks)}]"
        )

        if not self._is_complete(progress, chunk_index):
            return ChunkAck(chunk_index=chunk_index, total_chunks=total_chunks)

        file_record = self.finalizer.finalize(user_id, file_name)
        return ChunkAck(
            chunk_index=chunk_index,
            total_chunks=total_chunks,
            completed=True,
            file_id=file_record.file_id if file_record else progress.upload_id,
        )

    def _is_complete(self, progress: UploadProgress, chunk_index: int) -> bool:
        if self.settings.completion_policy == COMPLETION_POLICY_LAST_INDEX:
            return chunk_index == progress.total_chunks - 1
        return progress.is_complete

    def _validate(
        self,
        user_id: str,
        file_name: str,
        chunk_index: int,
        total_chunks: int,
        payload: str,
    ) -> bytes:
        if not user_id:
            raise InvalidUploadRequestError("User id is required")
        if not file_name or not file_name.strip():
            raise InvalidUploadRequestError("File name must not be empty")
        if total_chunks < 1:
            raise InvalidUploadRequestError(f"totalChunks must be at least 1, got {total_chunks}")
        if chunk_index < 0 or chunk_index >= total_chunks:
            raise InvalidUploadRequestError(
                f"chunkIndex {chunk_index} out of range for {total_chunks} chunk(s)"
            )
        if payload is None:
            raise InvalidUploadRequestError("Chunk payload is required")

        try:
            data = decode_payload(payload)
        except ValueError as e:
            raise InvalidUploadRequestError(str(e)) from e

        limit = self.settings.max_chunk_size_bytes
        if len(data) > limit:
            raise ChunkTooLargeError(
                f"Chunk {chunk_index} is {len(data)} bytes, limit is {limit}",
                size=len(data),
                limit=limit,
            )
        return data

    def _release_chunk(self, user_id: str, file_name: str) -> None:
        try:
            self.chunk_repo.delete_chunks(user_id, file_name)
        except StoreError as e:
            logger.warning(f"Could not release late chunk [file={file_name}]: {e}")

    def reset_upload(self, user_id: str, file_name: str) -> bool:
        """
        Forget any earlier upload of this file, finished or abandoned.

        Called when a new chunked upload is planned so that leftover chunks
        and chunk counts never leak into the new upload.

        Returns:
            True if a progress record was discarded

        Raises:
            IngestError: If the earlier state cannot be removed
        """
        try:
            discarded = self.progress_repo.discard(user_id, file_name)
            released = self.chunk_repo.delete_chunks(user_id, file_name)
        except StoreError as e:
            logger.error(f"Upload reset failed [user_id={user_id}] [file={file_name}]: {e}")
            raise IngestError(f"Failed to reset upload of {file_name}") from e

        if discarded or released:
            logger.info(
                f"Cleared earlier upload state [user_id={user_id}] [file={file_name}] "
                f"[chunks={released}]"
            )
        return discarded
