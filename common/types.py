"""Shared data type definitions (AccessToken, UploadProgress, ChunkRecord, FileRecord, etc.)."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class UploadStrategy(str, Enum):
    DIRECT = "direct"
    CHUNKED = "chunked"


class FileStatus(str, Enum):
    COMPLETED = "completed"


@dataclass(frozen=True)
class AccessToken:
    """
    Bearer credential for the remote file-hosting API.

    ``expires_at`` is on the token cache's clock and already has the safety
    margin subtracted.
    """
    value: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class UploadSession:
    """
    Provider-issued handle for a resumable upload.
    """
    session_url: str
    expires_at: Optional[str]
    accepted_ranges: List[str]


@dataclass(frozen=True)
class FileMetadata:
    """
    Client supplied description of the file being uploaded.
    """
    name: str
    size_bytes: int
    mime_type: Optional[str] = None
    path: Optional[str] = None
    drive_id: Optional[str] = None
    folder_path: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> 'FileMetadata':
        return cls(
            name=data["name"],
            size_bytes=int(data.get("size_bytes") or 0),
            mime_type=data.get("mime_type"),
            path=data.get("path"),
            drive_id=data.get("drive_id"),
            folder_path=data.get("folder_path"),
        )


@dataclass
class UploadProgress:
    """
    Durable progress of a chunked upload, keyed by (user_id, file_name).

    ``completed_chunks`` only ever grows; a tombstoned record keeps its
    contents with ``deleted`` set.
    """
    upload_id: str
    user_id: str
    file_name: str
    total_chunks: int
    completed_chunks: List[int]
    file_metadata: Dict[str, Any]
    started_at: str
    last_updated: str
    deleted: bool = False

    @property
    def is_complete(self) -> bool:
        return len(set(self.completed_chunks)) >= self.total_chunks

    @property
    def missing_chunks(self) -> List[int]:
        present = set(self.completed_chunks)
        return [index for index in range(self.total_chunks) if index not in present]

    def to_document(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> 'UploadProgress':
        return cls(
            upload_id=data["upload_id"],
            user_id=data["user_id"],
            file_name=data["file_name"],
            total_chunks=int(data["total_chunks"]),
            completed_chunks=sorted(set(int(i) for i in data.get("completed_chunks", []))),
            file_metadata=data.get("file_metadata") or {},
            started_at=data["started_at"],
            last_updated=data.get("last_updated") or data["started_at"],
            deleted=bool(data.get("deleted", False)),
        )


@dataclass(frozen=True)
class ChunkRecord:
    """
    One received chunk, keyed by (user_id, file_name, chunk_index).
    """
    user_id: str
    file_name: str
    chunk_index: int
    total_chunks: int
    payload: str
    size: int
    checksum: str
    received_at: str

    def to_document(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> 'ChunkRecord':
        return cls(**{k: data[k] for k in cls.__dataclass_fields__})


@dataclass(frozen=True)
class FileRecord:
    """
    Final artifact of a logical upload.
    """
    file_id: str
    name: str
    path: Optional[str]
    owner_id: str
    size_bytes: int
    mime_type: str
    uploaded_at: str
    upload_method: UploadStrategy
    checksum: Optional[str]
    status: FileStatus = FileStatus.COMPLETED
    storage_path: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        data = asdict(self)
        data["upload_method"] = self.upload_method.value
        data["status"] = self.status.value
        return data

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> 'FileRecord':
        return cls(
            file_id=data["file_id"],
            name=data["name"],
            path=data.get("path"),
            owner_id=data["owner_id"],
            size_bytes=int(data["size_bytes"]),
            mime_type=data["mime_type"],
            uploaded_at=data["uploaded_at"],
            upload_method=UploadStrategy(data["upload_method"]),
            checksum=data.get("checksum"),
            status=FileStatus(data.get("status", FileStatus.COMPLETED.value)),
            storage_path=data.get("storage_path"),
        )


@dataclass(frozen=True)
class ChunkAck:
    """
    Acknowledgement returned for every accepted chunk.
    """
    chunk_index: int
    total_chunks: int
    accepted: bool = True
    completed: bool = False
    file_id: Optional[str] = None


@dataclass
class CacheEntry:
    key: str
    value: Any
    stored_at: float
    ttl_seconds: float = field(default=0.0)

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl_seconds


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """
    Get a timestamp in ISO format.

    Args:
        moment: Datetime to format (defaults to now, UTC)

    Returns:
        ISO 8601 string
    """
    return (moment or datetime.now(timezone.utc)).isoformat()
