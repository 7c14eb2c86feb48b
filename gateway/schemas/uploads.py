"""Pydantic schemas for upload endpoints."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from common.types import FileMetadata, FileRecord, UploadProgress
from gateway.schemas.common import CamelModel


class FileMetadataModel(CamelModel):
    """Client supplied description of a file."""
    name: Optional[str] = None
    size_bytes: int = Field(default=0, ge=0)
    mime_type: Optional[str] = None
    path: Optional[str] = None
    drive_id: Optional[str] = None
    folder_path: Optional[str] = None

    def to_document(self, file_name: str) -> Dict[str, Any]:
        data = self.model_dump()
        data["name"] = self.name or file_name
        return data

    def to_metadata(self, file_name: str) -> FileMetadata:
        return FileMetadata.from_document(self.to_document(file_name))


class PlanUploadRequest(CamelModel):
    """Request model for planning an upload."""
    file_name: str
    size_bytes: int
    mime_type: Optional[str] = None
    drive_id: Optional[str] = None
    folder_path: Optional[str] = None

    def to_metadata(self) -> FileMetadata:
        return FileMetadata(
            name=self.file_name,
            size_bytes=self.size_bytes,
            mime_type=self.mime_type,
            drive_id=self.drive_id,
            folder_path=self.folder_path,
        )


class PlanUploadResponse(CamelModel):
    """Response model for an upload plan."""
    strategy: str
    max_chunk_size: int
    direct_upload_threshold: int
    total_chunks: int = 1
    upload_url: Optional[str] = None
    expiration_date_time: Optional[str] = None
    next_expected_ranges: Optional[List[str]] = None


class ChunkUploadRequest(CamelModel):
    """Request model for one chunk of a chunked upload."""
    file_name: str
    chunk_index: int
    total_chunks: int
    payload: str
    file_metadata: Optional[FileMetadataModel] = None


class ChunkUploadResponse(CamelModel):
    """Response model for an accepted chunk."""
    chunk_index: int
    total_chunks: int
    accepted: bool = True
    completed: bool = False
    file_id: Optional[str] = None


class DirectUploadRequest(CamelModel):
    """Request model for a single-request upload."""
    file_name: str
    payload: Optional[str] = None
    file_metadata: Optional[FileMetadataModel] = None


class FileRecordResponse(CamelModel):
    """Response model for a stored file."""
    file_id: str
    name: str
    path: Optional[str] = None
    owner_id: str
    size_bytes: int
    mime_type: str
    uploaded_at: str
    status: str
    upload_method: str
    checksum: Optional[str] = None

    @classmethod
    def from_record(cls, record: FileRecord) -> 'FileRecordResponse':
        return cls(
            file_id=record.file_id,
            name=record.name,
            path=record.path,
            owner_id=record.owner_id,
            size_bytes=record.size_bytes,
            mime_type=record.mime_type,
            uploaded_at=record.uploaded_at,
            status=record.status.value,
            upload_method=record.upload_method.value,
            checksum=record.checksum,
        )


class UploadProgressResponse(CamelModel):
    """Response model for the progress of a chunked upload."""
    upload_id: str
    file_name: str
    total_chunks: int
    completed_chunks: List[int]
    missing_chunks: List[int]
    started_at: str
    last_updated: str
    deleted: bool

    @classmethod
    def from_progress(cls, progress: UploadProgress) -> 'UploadProgressResponse':
        return cls(
            upload_id=progress.upload_id,
            file_name=progress.file_name,
            total_chunks=progress.total_chunks,
            completed_chunks=progress.completed_chunks,
            missing_chunks=progress.missing_chunks,
            started_at=progress.started_at,
            last_updated=progress.last_updated,
            deleted=progress.deleted,
        )
