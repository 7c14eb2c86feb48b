"""Utility functions for uploader operations."""

import base64
import mimetypes
from pathlib import Path
from typing import Iterator, Tuple

from common.constants import DEFAULT_MIME_TYPE


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"


def guess_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(str(path))
    return mime_type or DEFAULT_MIME_TYPE


def iter_chunks(path: Path, chunk_size: int) -> Iterator[Tuple[int, str]]:
    """
    Read a file in fixed-size pieces.

    Args:
        path: File to read
        chunk_size: Maximum bytes per chunk

    Yields:
        Tuples of (chunk_index, base64 payload)
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    with open(path, 'rb') as f:
        index = 0
        while True:
            piece = f.read(chunk_size)
            if not piece:
                break
            yield index, base64.b64encode(piece).decode('ascii')
            index += 1


def count_chunks(size_bytes: int, chunk_size: int) -> int:
    return max(1, -(-size_bytes // chunk_size))
