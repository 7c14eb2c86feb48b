"""Upload progress repository."""

from typing import Any, Dict, Optional, Tuple

from common.constants import PROGRESS_COLLECTION
from common.logging_config import get_logger
from common.types import UploadProgress, utc_timestamp
from gateway.database import DocumentStore
from gateway.utils import generate_uuid, progress_key

logger = get_logger(__name__)


class ProgressRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, user_id: str, file_name: str) -> Optional[UploadProgress]:
        document = self.store.get(PROGRESS_COLLECTION, progress_key(user_id, file_name))
        if document is None:
            return None
        return UploadProgress.from_document(document)

    def record_chunk(
        self,
        user_id: str,
        file_name: str,
        chunk_index: int,
        total_chunks: int,
        file_metadata: Dict[str, Any],
    ) -> Tuple[UploadProgress, bool]:
        """
        Add a chunk index to the progress set, creating the record on first use.

        A tombstoned record keeps ``deleted`` set; the union is still applied.
        An existing record with a different ``total_chunks`` is left untouched.

        Returns:
            Tuple of (updated progress, created flag)

        Raises:
            DocumentConflictError: If the record declares another chunk count
        """
        now = utc_timestamp()
        initial = UploadProgress(
            upload_id=generate_uuid(),
            user_id=user_id,
            file_name=file_name,
            total_chunks=total_chunks,
            completed_chunks=[],
            file_metadata=file_metadata,
            started_at=now,
            last_updated=now,
        )

        document, created = self.store.add_to_set(
            PROGRESS_COLLECTION,
            progress_key(user_id, file_name),
            "completed_chunks",
            chunk_index,
            on_create=initial.to_document(),
            touch={"last_updated": now},
            expect={"total_chunks": total_chunks},
        )

        if created:
            logger.info(
                f"Upload progress created [user_id={user_id}] [file={file_name}] "
                f"[upload_id={document['upload_id']}] [total_chunks={total_chunks}]"
            )
        return UploadProgress.from_document(document), created

    def tombstone(self, user_id: str, file_name: str) -> bool:
        document = self.store.merge(
            PROGRESS_COLLECTION,
            progress_key(user_id, file_name),
            {"deleted": True, "last_updated": utc_timestamp()},
        )
        return document is not None

    def discard(self, user_id: str, file_name: str) -> bool:
        return self.store.delete(PROGRESS_COLLECTION, progress_key(user_id, file_name))
