"""Tests for local blob storage."""

import hashlib
import threading

import pytest


def test_write_and_read_blob(blob_store):
    blob = blob_store.write_blob("file-1", [b"abc", b"def"])

    assert blob.size == 6
    assert blob.checksum == hashlib.sha256(b"abcdef").hexdigest()
    assert blob_store.read_blob("file-1") == b"abcdef"
    assert list(blob_store.root.glob("*.partial")) == []


def test_failed_write_leaves_nothing_behind(blob_store):
    def pieces():
        yield b"first"
        raise OSError("No space left on device")

    with pytest.raises(OSError):
        blob_store.write_blob("file-1", pieces())

    assert not blob_store.get_blob_path("file-1").exists()
    assert list(blob_store.root.glob("*.partial")) == []


def test_concurrent_writes_of_same_file_do_not_collide(blob_store):
    content = [b"x" * 4096] * 64
    errors = []

    def write():
        try:
            blob_store.write_blob("file-1", content)
        except OSError as e:
            errors.append(e)

    threads = [threading.Thread(target=write) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert blob_store.read_blob("file-1") == b"".join(content)
    assert list(blob_store.root.glob("*.partial")) == []


def test_delete_blob(blob_store):
    blob_store.write_blob("file-1", [b"abc"])

    assert blob_store.delete_blob("file-1") is True
    assert blob_store.delete_blob("file-1") is False
