"""Repository layer for data access."""

from gateway.repositories.progress_repository import ProgressRepository
from gateway.repositories.chunk_repository import ChunkRepository
from gateway.repositories.file_repository import FileRepository

__all__ = [
    "ProgressRepository",
    "ChunkRepository",
    "FileRepository",
]
