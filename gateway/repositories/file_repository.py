"""File record repository."""

from typing import List, Optional, Tuple

from common.constants import FILES_COLLECTION
from common.logging_config import get_logger
from common.types import FileRecord
from gateway.database import DocumentStore

logger = get_logger(__name__)


class FileRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    def create_if_absent(self, record: FileRecord) -> Tuple[FileRecord, bool]:
        """
        Create a file record unless one already exists under its file id.

        Returns:
            Tuple of (stored record, created flag)
        """
        created = self.store.put_if_absent(FILES_COLLECTION, record.file_id, record.to_document())
        if created:
            logger.info(
                f"File record created [file_id={record.file_id}] [name={record.name}] "
                f"[method={record.upload_method.value}] [size={record.size_bytes}]"
            )
            return record, True

        existing = self.get(record.file_id)
        logger.info(f"File record already exists [file_id={record.file_id}]")
        return (existing or record), False

    def get(self, file_id: str) -> Optional[FileRecord]:
        document = self.store.get(FILES_COLLECTION, file_id)
        if document is None:
            return None
        return FileRecord.from_document(document)

    def list_by_owner(self, owner_id: str) -> List[FileRecord]:
        documents = self.store.query(
            FILES_COLLECTION,
            where={"owner_id": owner_id},
            order_by="uploaded_at",
            descending=True,
        )
        return [FileRecord.from_document(document) for document in documents]
