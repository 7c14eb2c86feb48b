"""Single-request uploads for files at or below the direct-upload threshold."""

import logging
from typing import Optional

from common.constants import DEFAULT_MIME_TYPE
from common.types import FileMetadata, FileRecord, UploadStrategy, utc_timestamp
from gateway.blob_storage import LocalBlobStore
from gateway.config import Settings
from gateway.exceptions import IngestError, InvalidUploadRequestError, StoreError, UploadTooLargeError
from gateway.repositories import FileRepository
from gateway.utils import decode_payload, generate_uuid

logger = logging.getLogger(__name__)


class DirectUploadService:
    def __init__(self, settings: Settings, file_repo: FileRepository, blob_store: LocalBlobStore):
        self.settings = settings
        self.file_repo = file_repo
        self.blob_store = blob_store

    def upload(
        self,
        user_id: str,
        metadata: FileMetadata,
        payload: Optional[str] = None,
    ) -> FileRecord:
        """
        Create a FileRecord in one write.

        Without a payload only the record is created (the bytes live
        elsewhere, e.g. already on the remote drive).

        Raises:
            InvalidUploadRequestError: If the name or payload is invalid
            UploadTooLargeError: If the file is above the direct threshold
            IngestError: If the record cannot be stored
        """
        if not metadata.name or not metadata.name.strip():
            raise InvalidUploadRequestError("File name must not be empty")

        data = None
        if payload is not None:
            try:
                data = decode_payload(payload)
            except ValueError as e:
                raise InvalidUploadRequestError(str(e)) from e

        size = len(data) if data is not None else metadata.size_bytes
        threshold = self.settings.direct_upload_threshold_bytes
        if size > threshold:
            logger.info(f"Direct upload refused, too large [file={metadata.name}] [size={size}]")
            raise UploadTooLargeError(
                f"File too large for direct upload ({size} > {threshold} bytes)",
                size=size,
                limit=threshold,
                suggested_chunk_size=self.settings.max_chunk_size_bytes,
            )

        file_id = generate_uuid()
        checksum = None
        storage_path = None
        if data is not None:
            try:
                blob = self.blob_store.write_blob(file_id, [data])
            except OSError as e:
                raise IngestError(f"Cannot store {metadata.name}: {e}") from e
            checksum = blob.checksum
            storage_path = blob.path

        record = FileRecord(
            file_id=file_id,
            name=metadata.name,
            path=metadata.path,
            owner_id=user_id,
            size_bytes=size,
            mime_type=metadata.mime_type or DEFAULT_MIME_TYPE,
            uploaded_at=utc_timestamp(),
            upload_method=UploadStrategy.DIRECT,
            checksum=checksum,
            storage_path=storage_path,
        )

        try:
            record, _ = self.file_repo.create_if_absent(record)
        except StoreError as e:
            self.blob_store.delete_blob(file_id)
            raise IngestError(f"Cannot create file record for {metadata.name}: {e}") from e

        return record
