"""Configuration settings for the upload gateway."""

import os
from dataclasses import dataclass, replace
from typing import Optional

from common.constants import (
    COMPANY_INFO_TTL_SECONDS,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_GRAPH_BASE_URL,
    DEFAULT_GRAPH_SCOPE,
    DEFAULT_MAX_CHUNK_SIZE_BYTES,
    DEFAULT_TOKEN_AUTHORITY,
    DEFAULT_USER_ID,
    DIRECT_UPLOAD_THRESHOLD_BYTES,
    FALLBACK_CACHE_TTL_SECONDS,
    REMOTE_TIMEOUT_SECONDS,
    STORE_READ_TIMEOUT_SECONDS,
    TEAM_ROSTER_TTL_SECONDS,
    TOKEN_SAFETY_MARGIN_SECONDS,
)


DATABASE_PATH = os.environ.get("ITR_DATABASE_PATH", "./data/documents.db")

BLOB_STORAGE_PATH = os.environ.get("ITR_BLOB_STORAGE_PATH", "./data/blobs")

GATEWAY_HOST = os.environ.get("ITR_GATEWAY_HOST", "0.0.0.0")

GATEWAY_PORT = int(os.environ.get("ITR_GATEWAY_PORT", "8000"))

COMPLETION_POLICY_ALL_CHUNKS = "all_chunks"
COMPLETION_POLICY_LAST_INDEX = "last_index"
COMPLETION_POLICIES = (COMPLETION_POLICY_ALL_CHUNKS, COMPLETION_POLICY_LAST_INDEX)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings for one gateway process.
    """
    database_path: str = DATABASE_PATH
    blob_storage_path: str = BLOB_STORAGE_PATH
    host: str = GATEWAY_HOST
    port: int = GATEWAY_PORT

    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    token_authority: str = DEFAULT_TOKEN_AUTHORITY
    token_scope: str = DEFAULT_GRAPH_SCOPE
    token_safety_margin_seconds: float = TOKEN_SAFETY_MARGIN_SECONDS
    graph_base_url: str = DEFAULT_GRAPH_BASE_URL
    remote_timeout_seconds: float = REMOTE_TIMEOUT_SECONDS
    default_drive_id: Optional[str] = None

    direct_upload_threshold_bytes: int = DIRECT_UPLOAD_THRESHOLD_BYTES
    max_chunk_size_bytes: int = DEFAULT_MAX_CHUNK_SIZE_BYTES
    completion_policy: str = COMPLETION_POLICY_ALL_CHUNKS

    store_read_timeout_seconds: float = STORE_READ_TIMEOUT_SECONDS
    company_info_ttl_seconds: float = COMPANY_INFO_TTL_SECONDS
    team_roster_ttl_seconds: float = TEAM_ROSTER_TTL_SECONDS
    fallback_ttl_seconds: float = FALLBACK_CACHE_TTL_SECONDS
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    fallback_data_path: Optional[str] = None

    default_user_id: str = DEFAULT_USER_ID

    def __post_init__(self):
        if self.completion_policy not in COMPLETION_POLICIES:
            raise ValueError(
                f"Unknown completion policy '{self.completion_policy}', "
                f"expected one of {', '.join(COMPLETION_POLICIES)}"
            )
        if self.max_chunk_size_bytes <= 0:
            raise ValueError("max_chunk_size_bytes must be positive")
        if self.direct_upload_threshold_bytes < 0:
            raise ValueError("direct_upload_threshold_bytes must not be negative")

    @property
    def token_url(self) -> str:
        return f"{self.token_authority.rstrip('/')}/{self.tenant_id}/oauth2/v2.0/token"

    def with_overrides(self, **changes) -> 'Settings':
        return replace(self, **changes)


def load_settings() -> Settings:
    """
    Build settings from ITR_* environment variables.

    Returns:
        Settings instance
    """
    return Settings(
        database_path=os.environ.get("ITR_DATABASE_PATH", DATABASE_PATH),
        blob_storage_path=os.environ.get("ITR_BLOB_STORAGE_PATH", BLOB_STORAGE_PATH),
        host=os.environ.get("ITR_GATEWAY_HOST", GATEWAY_HOST),
        port=_env_int("ITR_GATEWAY_PORT", GATEWAY_PORT),
        tenant_id=os.environ.get("ITR_TENANT_ID"),
        client_id=os.environ.get("ITR_CLIENT_ID"),
        client_secret=os.environ.get("ITR_CLIENT_SECRET"),
        token_authority=os.environ.get("ITR_TOKEN_AUTHORITY", DEFAULT_TOKEN_AUTHORITY),
        token_scope=os.environ.get("ITR_TOKEN_SCOPE", DEFAULT_GRAPH_SCOPE),
        token_safety_margin_seconds=_env_float("ITR_TOKEN_SAFETY_MARGIN_SECONDS", TOKEN_SAFETY_MARGIN_SECONDS),
        graph_base_url=os.environ.get("ITR_GRAPH_BASE_URL", DEFAULT_GRAPH_BASE_URL),
        remote_timeout_seconds=_env_float("ITR_REMOTE_TIMEOUT_SECONDS", REMOTE_TIMEOUT_SECONDS),
        default_drive_id=os.environ.get("ITR_DEFAULT_DRIVE_ID"),
        direct_upload_threshold_bytes=_env_int("ITR_DIRECT_UPLOAD_THRESHOLD_BYTES", DIRECT_UPLOAD_THRESHOLD_BYTES),
        max_chunk_size_bytes=_env_int("ITR_MAX_CHUNK_SIZE_BYTES", DEFAULT_MAX_CHUNK_SIZE_BYTES),
        completion_policy=os.environ.get("ITR_COMPLETION_POLICY", COMPLETION_POLICY_ALL_CHUNKS),
        store_read_timeout_seconds=_env_float("ITR_STORE_READ_TIMEOUT_SECONDS", STORE_READ_TIMEOUT_SECONDS),
        company_info_ttl_seconds=_env_float("ITR_COMPANY_INFO_TTL_SECONDS", COMPANY_INFO_TTL_SECONDS),
        team_roster_ttl_seconds=_env_float("ITR_TEAM_ROSTER_TTL_SECONDS", TEAM_ROSTER_TTL_SECONDS),
        fallback_ttl_seconds=_env_float("ITR_FALLBACK_TTL_SECONDS", FALLBACK_CACHE_TTL_SECONDS),
        cache_max_entries=_env_int("ITR_CACHE_MAX_ENTRIES", DEFAULT_CACHE_MAX_ENTRIES),
        fallback_data_path=os.environ.get("ITR_FALLBACK_DATA_PATH"),
        default_user_id=os.environ.get("ITR_DEFAULT_USER_ID", DEFAULT_USER_ID),
    )
