"""Chunk repository for received chunk payloads."""

from typing import Dict, Optional

from common.constants import CHUNKS_COLLECTION
from common.logging_config import get_logger
from common.types import ChunkRecord
from gateway.database import DocumentStore
from gateway.utils import chunk_key

logger = get_logger(__name__)


class ChunkRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    def save(self, record: ChunkRecord) -> None:
        """Store a chunk, overwriting any earlier copy of the same index."""
        self.store.put(
            CHUNKS_COLLECTION,
            chunk_key(record.user_id, record.file_name, record.chunk_index),
            record.to_document(),
        )

    def get(self, user_id: str, file_name: str, chunk_index: int) -> Optional[ChunkRecord]:
        document = self.store.get(CHUNKS_COLLECTION, chunk_key(user_id, file_name, chunk_index))
        if document is None:
            return None
        return ChunkRecord.from_document(document)

    def get_chunks(self, user_id: str, file_name: str) -> Dict[int, ChunkRecord]:
        documents = self.store.query(
            CHUNKS_COLLECTION,
            where={"user_id": user_id, "file_name": file_name},
            order_by="chunk_index",
        )
        return {
            int(document["chunk_index"]): ChunkRecord.from_document(document)
            for document in documents
        }

    def delete_chunks(self, user_id: str, file_name: str) -> int:
        deleted = self.store.delete_where(
            CHUNKS_COLLECTION,
            {"user_id": user_id, "file_name": file_name},
        )
        logger.debug(f"Deleted {deleted} chunk records [user_id={user_id}] [file={file_name}]")
        return deleted
