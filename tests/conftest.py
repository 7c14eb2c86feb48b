"""Shared pytest fixtures for all tests."""

import pytest

from gateway.blob_storage import LocalBlobStore
from gateway.config import Settings
from gateway.database import DocumentStore
from gateway.repositories import ChunkRepository, FileRepository, ProgressRepository
from gateway.services import ChunkIngestor, UploadFinalizer
from uploader.config import Config

GRAPH_BASE_URL = "https://graph.test/v1.0"
TOKEN_AUTHORITY = "https://login.test"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    """
    Settings pointing at a temporary database and blob directory.
    """
    return Settings(
        database_path=str(tmp_path / "data" / "documents.db"),
        blob_storage_path=str(tmp_path / "data" / "blobs"),
        tenant_id="tenant-1",
        client_id="client-1",
        client_secret="s3cret",
        token_authority=TOKEN_AUTHORITY,
        graph_base_url=GRAPH_BASE_URL,
    )


@pytest.fixture
def store(settings):
    document_store = DocumentStore(settings.database_path)
    document_store.init_database()
    return document_store


@pytest.fixture
def blob_store(settings):
    return LocalBlobStore(settings.blob_storage_path)


@pytest.fixture
def upload_components(settings, store, blob_store):
    """
    Build the ingest/finalize stack for a given Settings instance.

    Returns:
        Factory taking optional Settings overrides
    """
    def build(**overrides):
        effective = settings.with_overrides(**overrides) if overrides else settings
        progress_repo = ProgressRepository(store)
        chunk_repo = ChunkRepository(store)
        file_repo = FileRepository(store)
        finalizer = UploadFinalizer(progress_repo, chunk_repo, file_repo, blob_store)
        ingestor = ChunkIngestor(effective, progress_repo, chunk_repo, finalizer)
        return ingestor, finalizer, progress_repo, chunk_repo, file_repo

    return build


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Returns:
        Path to temporary .itr-uploader directory
    """
    config_dir = tmp_path / '.itr-uploader'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a small sample file.
    """
    file_path = tmp_path / 'report.txt'
    file_path.write_bytes(b'Hello, gateway!')
    return file_path


@pytest.fixture
def large_file(tmp_path):
    """
    Create a file that needs several chunks at test chunk sizes.
    """
    file_path = tmp_path / 'drawing.pdf'
    file_path.write_bytes(bytes(range(256)) * 4)
    return file_path
