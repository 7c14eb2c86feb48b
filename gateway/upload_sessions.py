"""Upload strategy decision and resumable upload session creation."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import quote

from common.constants import CONFLICT_BEHAVIOR, DEFAULT_NEXT_EXPECTED_RANGES
from common.types import FileMetadata, UploadSession, UploadStrategy
from gateway.config import Settings
from gateway.exceptions import ApiError, InvalidUploadRequestError, SessionError
from gateway.remote_client import RemoteApiClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadPlan:
    strategy: UploadStrategy
    max_chunk_size: int
    direct_upload_threshold: int
    session: Optional[UploadSession] = None
    total_chunks: int = 1
    accepted_ranges: List[str] = field(default_factory=list)

    @property
    def upload_url(self) -> Optional[str]:
        return self.session.session_url if self.session else None

    @property
    def expires_at(self) -> Optional[str]:
        return self.session.expires_at if self.session else None


def _quote_path(path: str) -> str:
    segments = [segment for segment in path.strip("/").split("/") if segment]
    return "/".join(quote(segment, safe="") for segment in segments)


class UploadSessionManager:
    """
    Decides between direct and chunked transfer and opens remote sessions.
    """

    def __init__(self, settings: Settings, remote_client: RemoteApiClient):
        self.settings = settings
        self.remote_client = remote_client

    def choose_strategy(self, size_bytes: int) -> UploadStrategy:
        if size_bytes <= self.settings.direct_upload_threshold_bytes:
            return UploadStrategy.DIRECT
        return UploadStrategy.CHUNKED

    def count_chunks(self, size_bytes: int) -> int:
        chunk_size = self.settings.max_chunk_size_bytes
        return max(1, -(-size_bytes // chunk_size))

    async def plan_upload(self, metadata: FileMetadata) -> UploadPlan:
        """
        Plan an upload for the given file.

        Args:
            metadata: Name, size and destination of the file

        Returns:
            UploadPlan; chunked plans carry the remote session

        Raises:
            InvalidUploadRequestError: If the metadata is unusable
            SessionError: If the remote API refuses the session
        """
        if not metadata.name or not metadata.name.strip():
            raise InvalidUploadRequestError("File name must not be empty")
        if metadata.size_bytes < 0:
            raise InvalidUploadRequestError(f"Invalid file size: {metadata.size_bytes}")

        strategy = self.choose_strategy(metadata.size_bytes)
        if strategy == UploadStrategy.DIRECT:
            logger.info(f"Planned direct upload [file={metadata.name}] [size={metadata.size_bytes}]")
            return UploadPlan(
                strategy=strategy,
                max_chunk_size=self.settings.max_chunk_size_bytes,
                direct_upload_threshold=self.settings.direct_upload_threshold_bytes,
            )

        session = await self.create_session(metadata)
        total_chunks = self.count_chunks(metadata.size_bytes)

        logger.info(
            f"Planned chunked upload [file={metadata.name}] [size={metadata.size_bytes}] "
            f"[chunks={total_chunks}]"
        )
        return UploadPlan(
            strategy=strategy,
            max_chunk_size=self.settings.max_chunk_size_bytes,
            direct_upload_threshold=self.settings.direct_upload_threshold_bytes,
            session=session,
            total_chunks=total_chunks,
            accepted_ranges=list(session.accepted_ranges),
        )

    async def create_session(self, metadata: FileMetadata) -> UploadSession:
        drive_id = metadata.drive_id or self.settings.default_drive_id
        if not drive_id:
            raise InvalidUploadRequestError("A drive id is required for chunked uploads")

        item_path = _quote_path(metadata.name)
        if metadata.folder_path and _quote_path(metadata.folder_path):
            item_path = f"{_quote_path(metadata.folder_path)}/{item_path}"

        endpoint = f"/drives/{quote(drive_id, safe='')}/root:/{item_path}:/createUploadSession"
        body = {"item": {"@microsoft.graph.conflictBehavior": CONFLICT_BEHAVIOR}}

        try:
            result = await self.remote_client.call(endpoint, method="POST", body=body)
        except ApiError as e:
            logger.error(f"Upload session rejected [file={metadata.name}]: {e}")
            raise SessionError(
                f"Failed to create upload session for {metadata.name}",
                status=e.status,
                body=e.body,
            ) from e

        session_url = result.get("uploadUrl")
        if not session_url:
            raise SessionError(
                f"Upload session response for {metadata.name} has no uploadUrl",
                status=200,
                body=str(result),
            )

        accepted_ranges = result.get("nextExpectedRanges") or list(DEFAULT_NEXT_EXPECTED_RANGES)
        return UploadSession(
            session_url=session_url,
            expires_at=result.get("expirationDateTime"),
            accepted_ranges=list(accepted_ranges),
        )
