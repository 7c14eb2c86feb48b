"""Project-wide constants (upload thresholds, cache windows, remote endpoints)."""

MIB: int = 1024 * 1024

DIRECT_UPLOAD_THRESHOLD_BYTES: int = 1 * MIB  # files at or below this size skip the upload session
DEFAULT_MAX_CHUNK_SIZE_BYTES: int = 1 * MIB

TOKEN_FIXED_WINDOW_SECONDS: int = 50 * 60  # used when the provider omits expires_in
TOKEN_SAFETY_MARGIN_SECONDS: int = 5 * 60
DEFAULT_TOKEN_AUTHORITY: str = "https://login.microsoftonline.com"
DEFAULT_GRAPH_SCOPE: str = "https://graph.microsoft.com/.default"
DEFAULT_GRAPH_BASE_URL: str = "https://graph.microsoft.com/v1.0"
REMOTE_TIMEOUT_SECONDS: float = 30.0

CONFLICT_BEHAVIOR: str = "rename"
DEFAULT_NEXT_EXPECTED_RANGES: tuple = ("0-",)

COMPANY_INFO_TTL_SECONDS: float = 600.0
TEAM_ROSTER_TTL_SECONDS: float = 30.0
FALLBACK_CACHE_TTL_SECONDS: float = 5.0
STORE_READ_TIMEOUT_SECONDS: float = 3.0
DEFAULT_CACHE_MAX_ENTRIES: int = 100
TEAM_ROSTER_QUERY_LIMIT: int = 200

PROGRESS_COLLECTION: str = "upload_progress"
CHUNKS_COLLECTION: str = "file_chunks"
FILES_COLLECTION: str = "files"
COMPANIES_COLLECTION: str = "companies"
TEAM_MEMBERS_COLLECTION: str = "team_members"

DEFAULT_USER_ID: str = "default-user"
DEFAULT_MIME_TYPE: str = "application/octet-stream"
