"""Custom exception classes for the upload gateway."""

from typing import Optional


class GatewayError(Exception):
    """
    Base exception class for all gateway errors.
    """
    pass


class RemoteCallError(GatewayError):
    """
    Base for failures reported by a remote HTTP endpoint.

    Carries the HTTP status (0 when no response was received) and the raw
    response body for diagnosis.
    """

    def __init__(self, message: str, status: int = 0, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status:
            return f"{base} (status={self.status})"
        return base


class AuthError(RemoteCallError):
    """
    Raised when the client-credentials token exchange fails.
    """
    pass


class ApiError(RemoteCallError):
    """
    Raised when the remote file-hosting API answers with a non-success status.
    """
    pass


class SessionError(RemoteCallError):
    """
    Raised when the remote API refuses to open an upload session.
    """
    pass


class InvalidUploadRequestError(GatewayError):
    """
    Raised when an upload request is malformed (bad indices, bad payload, missing drive).
    """
    pass


class ChunkTooLargeError(GatewayError):
    """
    Raised when a chunk payload exceeds the configured chunk size.
    """

    def __init__(self, message: str, size: int, limit: int):
        super().__init__(message)
        self.size = size
        self.limit = limit


class UploadTooLargeError(GatewayError):
    """
    Raised when a direct upload exceeds the direct-upload threshold.
    The client should switch to a chunked upload.
    """

    def __init__(self, message: str, size: int, limit: int, suggested_chunk_size: int):
        super().__init__(message)
        self.size = size
        self.limit = limit
        self.suggested_chunk_size = suggested_chunk_size


class IngestError(GatewayError):
    """
    Raised when a chunk or its progress record cannot be persisted.
    The client may safely retransmit the chunk.
    """
    pass


class FinalizeError(GatewayError):
    """
    Raised when a completed upload cannot be materialized.
    Progress is left intact so a retransmitted last chunk retries finalize.
    """
    pass


class StoreError(GatewayError):
    """
    Raised when the document store fails.
    """
    pass


class UnknownResourceError(GatewayError):
    """
    Raised when a cache-fronted resource name is not registered.
    """
    pass


class DocumentConflictError(StoreError):
    """
    Raised when an atomic update finds a field that differs from the expected value.
    """

    def __init__(self, message: str, field: str, expected, actual):
        super().__init__(message)
        self.field = field
        self.expected = expected
        self.actual = actual
