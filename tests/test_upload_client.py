"""Unit tests for UploadClient."""

import base64
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from gateway.main import create_app
from gateway.service_locator import build_services
from uploader.upload_client import UploadClient


class GatewayStub:
    """Minimal gateway emulation recording every request."""

    def __init__(self, strategy='direct', max_chunk_size=4):
        self.strategy = strategy
        self.max_chunk_size = max_chunk_size
        self.requests = []
        self.chunks = {}

    def __call__(self, request):
        self.requests.append(request)
        body = json.loads(request.content) if request.content else {}

        if request.url.path == '/uploads/plan':
            return httpx.Response(200, json={
                'strategy': self.strategy,
                'maxChunkSize': self.max_chunk_size,
                'directUploadThreshold': 1048576,
                'totalChunks': 1,
            })
        if request.url.path == '/uploads/direct':
            return httpx.Response(201, json={
                'fileId': 'file123abcdef',
                'name': body['fileName'],
                'ownerId': request.headers['X-User-Id'],
                'sizeBytes': len(base64.b64decode(body['payload'])),
                'mimeType': 'text/plain',
                'uploadedAt': '2026-01-01T00:00:00+00:00',
                'status': 'completed',
                'uploadMethod': 'direct',
            })
        if request.url.path == '/uploads/chunk':
            self.chunks[body['chunkIndex']] = base64.b64decode(body['payload'])
            completed = len(self.chunks) == body['totalChunks']
            return httpx.Response(200, json={
                'chunkIndex': body['chunkIndex'],
                'totalChunks': body['totalChunks'],
                'accepted': True,
                'completed': completed,
                'fileId': 'chunked456xyz' if completed else None,
            })
        if request.url.path == '/cache/company-info':
            return httpx.Response(200, json={
                'resource': 'company-info',
                'source': 'cached',
                'fallback': True,
                'cached': True,
                'stale': False,
                'queryTimeMs': 3,
                'data': {'name': 'Fallback Co'},
            })

        return httpx.Response(404, json={'detail': 'Unknown resource: payroll', 'code': 'UNKNOWN_RESOURCE'})


def make_client(config, handler):
    client = UploadClient(config, show_progress=False)
    client.session = httpx.Client(transport=httpx.MockTransport(handler), base_url='http://test')
    return client


def test_direct_upload(temp_config, sample_file):
    """Test small file goes through /uploads/direct."""
    gateway = GatewayStub(strategy='direct')
    client = make_client(temp_config, gateway)

    result = client.upload_file(str(sample_file))

    assert result == 'Uploaded: report.txt (ID: file123a, 15 B, direct)'
    assert [r.url.path for r in gateway.requests] == ['/uploads/plan', '/uploads/direct']
    plan_body = json.loads(gateway.requests[0].content)
    assert plan_body['sizeBytes'] == 15
    assert plan_body['mimeType'] == 'text/plain'


def test_chunked_upload_sends_every_chunk(temp_config, tmp_path):
    """Test large file is split by the plan's maxChunkSize."""
    path = tmp_path / 'notes.bin'
    path.write_bytes(b'abcdefghij')
    gateway = GatewayStub(strategy='chunked', max_chunk_size=4)
    client = make_client(temp_config, gateway)

    result = client.upload_file(str(path), drive_id='drive-1', folder_path='ITR')

    assert 'Uploaded: notes.bin (ID: chunked4' in result
    assert '3 chunks' in result
    assert gateway.chunks == {0: b'abcd', 1: b'efgh', 2: b'ij'}

    chunk_body = json.loads(gateway.requests[1].content)
    assert chunk_body['totalChunks'] == 3
    assert chunk_body['fileMetadata']['driveId'] == 'drive-1'


def test_requests_carry_user_and_request_id(temp_config, sample_file):
    temp_config.set_user_id('alice')
    gateway = GatewayStub()
    client = make_client(temp_config, gateway)

    client.upload_file(str(sample_file))

    for request in gateway.requests:
        assert request.headers['X-User-Id'] == 'alice'
        assert request.headers['X-Request-ID']


def test_file_not_found(temp_config, tmp_path):
    client = make_client(temp_config, GatewayStub())

    result = client.upload_file(str(tmp_path / 'missing.pdf'))

    assert 'File not found' in result


def test_plan_failure_is_reported(temp_config, sample_file):
    def handler(request):
        return httpx.Response(502, json={'detail': 'session refused', 'code': 'SESSION_CREATE_FAILED'})

    client = make_client(temp_config, handler)
    client.config.data['max_retries'] = 0

    result = client.upload_file(str(sample_file))

    assert result == 'Upload planning failed: File host refused to open an upload session.'


def test_chunk_failure_names_the_chunk(temp_config, tmp_path):
    path = tmp_path / 'big.bin'
    path.write_bytes(b'x' * 10)
    gateway = GatewayStub(strategy='chunked', max_chunk_size=4)

    def handler(request):
        if request.url.path == '/uploads/chunk' and json.loads(request.content)['chunkIndex'] == 1:
            return httpx.Response(413, json={'detail': 'too big', 'code': 'CHUNK_TOO_LARGE'})
        return gateway(request)

    client = make_client(temp_config, handler)

    result = client.upload_file(str(path))

    assert result == 'Upload failed at chunk 1: Chunk exceeds the gateway chunk size.'


def test_retries_on_server_error(temp_config, sample_file, monkeypatch):
    """Test 503 responses are retried with backoff."""
    delays = []
    monkeypatch.setattr('uploader.upload_client.time.sleep', delays.append)
    gateway = GatewayStub()
    attempts = {'plan': 0}

    def handler(request):
        if request.url.path == '/uploads/plan':
            attempts['plan'] += 1
            if attempts['plan'] < 3:
                return httpx.Response(503, json={'detail': 'busy', 'code': 'INGEST_FAILED'})
        return gateway(request)

    client = make_client(temp_config, handler)

    result = client.upload_file(str(sample_file))

    assert result.startswith('Uploaded: report.txt')
    assert attempts['plan'] == 3
    assert delays == [1, 2]


def test_client_errors_are_not_retried(temp_config, sample_file, monkeypatch):
    monkeypatch.setattr('uploader.upload_client.time.sleep', lambda _: None)
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, json={'detail': 'bad name', 'code': 'INVALID_UPLOAD_REQUEST'})

    client = make_client(temp_config, handler)

    result = client.upload_file(str(sample_file))

    assert result == 'Upload planning failed: Invalid upload request: bad name'
    assert len(calls) == 1


def test_network_failure_after_retries(temp_config, sample_file, monkeypatch):
    monkeypatch.setattr('uploader.upload_client.time.sleep', lambda _: None)

    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(temp_config, handler)

    result = client.upload_file(str(sample_file))

    assert result == 'Error: Cannot connect to upload gateway. Is it running?'


def test_fetch_resource_formats_source(temp_config):
    client = make_client(temp_config, GatewayStub())

    result = client.fetch_resource('company-info')

    header, body = result.split('\n', 1)
    assert header == 'company-info [cached, fallback] (3ms)'
    assert json.loads(body) == {'name': 'Fallback Co'}


def test_fetch_unknown_resource(temp_config):
    client = make_client(temp_config, GatewayStub())

    result = client.fetch_resource('payroll')

    assert result == 'Fetch failed: Unknown resource.'


class TestAgainstGateway:
    """Drive the real gateway app through the uploader."""

    @pytest.fixture
    def gateway_app(self, settings):
        def graph(request):
            if request.url.host == 'login.test':
                return httpx.Response(200, json={'access_token': 'tok', 'expires_in': 3600})
            return httpx.Response(200, json={'uploadUrl': 'https://upload.test/s/1'})

        small = settings.with_overrides(
            direct_upload_threshold_bytes=256,
            max_chunk_size_bytes=256,
            default_drive_id='drive-1',
        )
        services = build_services(small, http_client=httpx.AsyncClient(transport=httpx.MockTransport(graph)))
        return create_app(services=services), services

    def test_direct_upload_end_to_end(self, temp_config, sample_file, gateway_app):
        app, services = gateway_app
        client = UploadClient(temp_config, show_progress=False)
        client.session = TestClient(app)

        result = client.upload_file(str(sample_file))

        assert result.startswith('Uploaded: report.txt')
        records = services.file_repo.list_by_owner(temp_config.get_user_id())
        assert [record.name for record in records] == ['report.txt']

    def test_chunked_upload_end_to_end(self, temp_config, large_file, gateway_app):
        app, services = gateway_app
        client = UploadClient(temp_config, show_progress=False)
        client.session = TestClient(app)

        result = client.upload_file(str(large_file))

        assert result.endswith('4 chunks)')
        records = services.file_repo.list_by_owner(temp_config.get_user_id())
        assert len(records) == 1
        assert services.blob_store.read_blob(records[0].file_id) == large_file.read_bytes()
