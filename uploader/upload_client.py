"""HTTP client for communicating with the upload gateway."""

import base64
import json
import sys
import time
import uuid
from pathlib import Path
from typing import Optional

import httpx

from common.logging_config import get_logger
from uploader.config import Config
from uploader.utils import count_chunks, format_file_size, guess_mime_type, iter_chunks

logger = get_logger(__name__)


class UploadClient:
    """HTTP client for the gateway API with retry logic and error handling."""

    def __init__(self, config: Config, show_progress: bool = True):
        """
        Initialize upload client.

        Args:
            config: Configuration instance
            show_progress: Write chunk progress to stdout
        """
        self.config = config
        self.show_progress = show_progress
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout()
        )
        self.request_id = None
        logger.info(f"Initialized UploadClient [base_url={config.get_base_url()}]")

    def close(self) -> None:
        self.session.close()

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            ConnectionError: If max retries exceeded or connection fails
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        last_exception = None

        self.request_id = str(uuid.uuid4())
        headers = dict(kwargs.pop('headers', None) or {})
        headers['X-Request-ID'] = self.request_id
        headers['X-User-Id'] = self.config.get_user_id()
        kwargs['headers'] = headers

        logger.debug(f"Making request: {method} {endpoint} [request_id={self.request_id}]")

        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if 400 <= response.status_code < 500:
                    logger.warning(
                        f"Client error: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                    )
                    return response

                if response.status_code >= 500 and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue
                logger.error(
                    f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={self.request_id}]"
                )

        if isinstance(last_exception, httpx.TimeoutException):
            raise ConnectionError("Request timed out. Gateway may be overloaded.")
        if last_exception is not None:
            raise ConnectionError("Cannot connect to upload gateway. Is it running?")
        raise ConnectionError("Max retries exceeded")

    def _format_error(self, response: httpx.Response) -> str:
        """
        Map HTTP errors to user-friendly messages.

        Args:
            response: HTTP response object

        Returns:
            User-friendly error message
        """
        try:
            error_data = response.json()
            detail = error_data.get('detail', 'Unknown error')
            code = error_data.get('code', 'UNKNOWN')
        except (json.JSONDecodeError, ValueError, AttributeError):
            detail = response.text if response.text else 'Unknown error'
            code = 'UNKNOWN'

        error_messages = {
            'AUTH_FAILED': 'Gateway could not authenticate with the file host.',
            'SESSION_CREATE_FAILED': 'File host refused to open an upload session.',
            'REMOTE_API_ERROR': 'File host returned an error.',
            'CHUNK_TOO_LARGE': 'Chunk exceeds the gateway chunk size.',
            'USE_CHUNKED_UPLOAD': 'File too large for direct upload, use a chunked upload.',
            'INVALID_UPLOAD_REQUEST': f'Invalid upload request: {detail}',
            'INGEST_FAILED': 'Gateway could not store the chunk. Please try again.',
            'FINALIZE_FAILED': f'Upload could not be finalized: {detail}',
            'UNKNOWN_RESOURCE': 'Unknown resource.',
        }

        if code in error_messages:
            return error_messages[code]

        status_messages = {
            400: 'Bad request',
            404: 'Not found',
            413: 'File too large',
            422: f'Invalid request: {detail}',
            500: 'Server error',
            502: 'Bad gateway',
            503: 'Service unavailable',
        }

        message = status_messages.get(response.status_code, detail)
        return f"{message} (Code: {code})" if code != 'UNKNOWN' else message

    def _print_progress(self, file_name: str, sent: int, total: int) -> None:
        if not self.show_progress:
            return
        progress = (sent / total) * 100
        sys.stdout.write(f"\rUploading {file_name}: chunk {sent}/{total} ({progress:.1f}%)")
        if sent == total:
            sys.stdout.write('\n')
        sys.stdout.flush()

    def upload_file(
        self,
        file_path: str,
        drive_id: Optional[str] = None,
        folder_path: Optional[str] = None,
    ) -> str:
        """
        Upload a local file through the gateway.

        Plans the upload first, then sends either one direct request or the
        chunks in order.

        Args:
            file_path: Local file to upload
            drive_id: Destination drive (gateway default when omitted)
            folder_path: Destination folder within the drive

        Returns:
            Result message
        """
        path = Path(file_path)
        if not path.is_file():
            return f"File not found: {file_path}"

        size = path.stat().st_size
        mime_type = guess_mime_type(path)
        logger.info(f"Uploading {path.name} ({format_file_size(size)})")

        try:
            response = self._request_with_retry('POST', '/uploads/plan', json={
                'fileName': path.name,
                'sizeBytes': size,
                'mimeType': mime_type,
                'driveId': drive_id,
                'folderPath': folder_path,
            })
            if response.status_code != 200:
                return f"Upload planning failed: {self._format_error(response)}"

            plan = response.json()
            metadata = {
                'name': path.name,
                'sizeBytes': size,
                'mimeType': mime_type,
                'path': folder_path,
                'driveId': drive_id,
                'folderPath': folder_path,
            }

            if plan['strategy'] == 'direct':
                return self._upload_direct(path, metadata)
            return self._upload_chunked(path, size, int(plan['maxChunkSize']), metadata)

        except ConnectionError as e:
            logger.error(f"Connection error during upload: {e}")
            return f"Error: {e}"
        except OSError as e:
            logger.error(f"Cannot read {file_path}: {e}")
            return f"Error reading file: {e}"

    def _upload_direct(self, path: Path, metadata: dict) -> str:
        payload = base64.b64encode(path.read_bytes()).decode('ascii')
        response = self._request_with_retry('POST', '/uploads/direct', json={
            'fileName': path.name,
            'payload': payload,
            'fileMetadata': metadata,
        })

        if response.status_code == 201:
            data = response.json()
            logger.info(f"Direct upload complete [file={path.name}] [file_id={data['fileId']}]")
            return f"Uploaded: {path.name} (ID: {data['fileId'][:8]}, {format_file_size(data['sizeBytes'])}, direct)"
        return f"Upload failed: {self._format_error(response)}"

    def _upload_chunked(self, path: Path, size: int, chunk_size: int, metadata: dict) -> str:
        total_chunks = count_chunks(size, chunk_size)
        file_id = None

        for chunk_index, payload in iter_chunks(path, chunk_size):
            response = self._request_with_retry('POST', '/uploads/chunk', json={
                'fileName': path.name,
                'chunkIndex': chunk_index,
                'totalChunks': total_chunks,
                'payload': payload,
                'fileMetadata': metadata,
            })
            if response.status_code != 200:
                if self.show_progress:
                    sys.stdout.write('\n')
                return f"Upload failed at chunk {chunk_index}: {self._format_error(response)}"

            ack = response.json()
            self._print_progress(path.name, chunk_index + 1, total_chunks)
            if ack.get('completed'):
                file_id = ack.get('fileId')

        if file_id is None:
            return f"Upload of {path.name} sent {total_chunks} chunk(s) but was not finalized"

        logger.info(f"Chunked upload complete [file={path.name}] [file_id={file_id}] [chunks={total_chunks}]")
        return f"Uploaded: {path.name} (ID: {file_id[:8]}, {format_file_size(size)}, {total_chunks} chunks)"

    def fetch_resource(self, resource: str) -> str:
        """
        Read a cache-fronted resource.

        Args:
            resource: Resource name (e.g. company-info)

        Returns:
            Formatted resource with its source tag
        """
        try:
            response = self._request_with_retry('GET', f'/cache/{resource}')
        except ConnectionError as e:
            logger.error(f"Connection error fetching {resource}: {e}")
            return f"Error: {e}"

        if response.status_code != 200:
            return f"Fetch failed: {self._format_error(response)}"

        data = response.json()
        tags = [data['source']]
        if data.get('fallback'):
            tags.append('fallback')
        if data.get('stale'):
            tags.append('stale')

        header = f"{resource} [{', '.join(tags)}] ({data.get('queryTimeMs', 0)}ms)"
        return f"{header}\n{json.dumps(data.get('data'), indent=2)}"
