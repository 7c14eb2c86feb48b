"""Reassembles completed chunked uploads into a single file record."""

import logging
from typing import Dict, Iterator, Optional

from common.constants import DEFAULT_MIME_TYPE
from common.types import ChunkRecord, FileMetadata, FileRecord, UploadProgress, UploadStrategy, utc_timestamp
from gateway.blob_storage import LocalBlobStore
from gateway.exceptions import FinalizeError, StoreError
from gateway.repositories import ChunkRepository, FileRepository, ProgressRepository
from gateway.utils import decode_payload

logger = logging.getLogger(__name__)


class UploadFinalizer:
    """
    Turns a complete set of chunks into a FileRecord exactly once.

    The FileRecord is keyed by the upload id and written with put-if-absent,
    so concurrent or repeated finalize calls converge on one record. Progress
    is tombstoned and chunks released only after the record exists.
    """

    def __init__(
        self,
        progress_repo: ProgressRepository,
        chunk_repo: ChunkRepository,
        file_repo: FileRepository,
        blob_store: LocalBlobStore,
    ):
        self.progress_repo = progress_repo
        self.chunk_repo = chunk_repo
        self.file_repo = file_repo
        self.blob_store = blob_store

    def finalize(self, user_id: str, file_name: str) -> Optional[FileRecord]:
        """
        Finalize the upload of ``file_name`` for ``user_id``.

        Returns:
            The FileRecord, or None if the upload was already finalized

        Raises:
            FinalizeError: If chunks are missing or any write fails
        """
        try:
            progress = self.progress_repo.get(user_id, file_name)
        except StoreError as e:
            raise FinalizeError(f"Cannot read progress for {file_name}: {e}") from e

        if progress is None:
            raise FinalizeError(f"No upload in progress for {file_name}")

        if progress.deleted:
            logger.info(f"Upload already finalized [user_id={user_id}] [file={file_name}]")
            return None

        try:
            chunks = self.chunk_repo.get_chunks(user_id, file_name)
        except StoreError as e:
            raise FinalizeError(f"Cannot read chunks for {file_name}: {e}") from e

        missing = [index for index in range(progress.total_chunks) if index not in chunks]
        if missing:
            raise FinalizeError(
                f"Cannot finalize {file_name}: missing chunk(s) {', '.join(str(i) for i in missing)}"
            )

        record = self._materialize(progress, chunks)

        try:
            record, created = self.file_repo.create_if_absent(record)
        except StoreError as e:
            raise FinalizeError(f"Cannot create file record for {file_name}: {e}") from e

        try:
            self.progress_repo.tombstone(user_id, file_name)
            self.chunk_repo.delete_chunks(user_id, file_name)
        except StoreError as e:
            # The file record exists; leftovers are cleared by the next plan for this file.
            logger.error(f"Failed to release upload state [file={file_name}]: {e}")

        if created:
            logger.info(
                f"Upload finalized [user_id={user_id}] [file={file_name}] "
                f"[file_id={record.file_id}] [size={record.size_bytes}]"
            )
        return record

    def _materialize(self, progress: UploadProgress, chunks: Dict[int, ChunkRecord]) -> FileRecord:
        def pieces() -> Iterator[bytes]:
            for index in range(progress.total_chunks):
                yield decode_payload(chunks[index].payload)

        try:
            blob = self.blob_store.write_blob(progress.upload_id, pieces())
        except (OSError, ValueError) as e:
            raise FinalizeError(f"Cannot reassemble {progress.file_name}: {e}") from e

        metadata = self._metadata(progress)
        return FileRecord(
            file_id=progress.upload_id,
            name=metadata.name,
            path=metadata.path,
            owner_id=progress.user_id,
            size_bytes=metadata.size_bytes or blob.size,
            mime_type=metadata.mime_type or DEFAULT_MIME_TYPE,
            uploaded_at=utc_timestamp(),
            upload_method=UploadStrategy.CHUNKED,
            checksum=blob.checksum,
            storage_path=blob.path,
        )

    @staticmethod
    def _metadata(progress: UploadProgress) -> FileMetadata:
        data = dict(progress.file_metadata or {})
        data.setdefault("name", progress.file_name)
        if not data["name"]:
            data["name"] = progress.file_name
        return FileMetadata.from_document(data)
