"""Stores reassembled file contents on local disk."""

import hashlib
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    path: str
    size: int
    checksum: str


class LocalBlobStore:
    """
    Blob files named ``<file_id>.bin`` under a root directory.
    """

    def __init__(self, root: str):
        self.root = Path(root)

    def ensure_directory(self) -> None:
        """Ensure blob directory exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def get_blob_path(self, file_id: str) -> Path:
        return self.root / f"{file_id}.bin"

    def write_blob(self, file_id: str, pieces: Iterable[bytes]) -> StoredBlob:
        """
        Stream pieces to disk while computing size and SHA-256.

        The blob is written to a temporary name unique to this call and
        renamed into place, so a failed write never leaves a partial blob
        under the final name and concurrent writers never share a file.

        Args:
            file_id: Identifier of the file
            pieces: Byte pieces in order

        Returns:
            StoredBlob with path, size and hex checksum

        Raises:
            OSError: If the write fails
        """
        self.ensure_directory()
        final_path = self.get_blob_path(file_id)
        temp_path = final_path.with_name(f"{file_id}.{uuid.uuid4().hex}.partial")

        digest = hashlib.sha256()
        size = 0
        try:
            with open(temp_path, "wb") as f:
                for piece in pieces:
                    f.write(piece)
                    digest.update(piece)
                    size += len(piece)
            os.replace(temp_path, final_path)
        except BaseException:
            if temp_path.exists():
                temp_path.unlink()
            raise

        logger.debug(f"Blob written [file_id={file_id}] [size={size}]")
        return StoredBlob(path=str(final_path), size=size, checksum=digest.hexdigest())

    def read_blob(self, file_id: str) -> bytes:
        return self.get_blob_path(file_id).read_bytes()

    def delete_blob(self, file_id: str) -> bool:
        """
        Delete a blob file.

        Returns:
            True if file was deleted, False if it didn't exist
        """
        filepath = self.get_blob_path(file_id)
        if filepath.exists():
            filepath.unlink()
            return True
        return False
