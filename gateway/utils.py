"""Utility helper functions for the gateway."""

import base64
import binascii
import uuid


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def decode_payload(payload: str) -> bytes:
    """
    Decode a base64 chunk payload.

    Accepts optional ``data:<mime>;base64,`` prefixes as sent by browsers.

    Raises:
        ValueError: If the payload is not valid base64
    """
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Payload is not valid base64: {e}") from e


def progress_key(user_id: str, file_name: str) -> str:
    return f"{user_id}_{file_name}_progress"


def chunk_key(user_id: str, file_name: str, chunk_index: int) -> str:
    return f"{user_id}_{file_name}_chunk_{chunk_index}"
