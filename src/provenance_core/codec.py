"""Compact string encoding for exported states.

States travel as ``<delim><payload><delim>``: JSON, zlib-compressed, then
URL-safe base64 without padding. The payload alphabet (letters, digits,
``-`` and ``_``) never contains the delimiter, so an export can be appended
to a URL and found again by splitting on the delimiter.
"""

from __future__ import annotations

import base64
import binascii
import json
import zlib
from typing import Any

from provenance_core.graph.errors import CodecError

DEFAULT_DELIMITER = "||"
PAYLOAD_ALPHABET = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
)


def compress(text: str) -> str:
    """Compress text into a URL-safe string."""
    raw = zlib.compress(text.encode("utf-8"), level=9)
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decompress(payload: str) -> str:
    """Reverse :func:`compress`.

    Raises:
        CodecError: If the payload is not a valid compressed string.
    """
    padded = payload + "=" * (-len(payload) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        return zlib.decompress(raw).decode("utf-8")
    except (binascii.Error, zlib.error, UnicodeError, ValueError) as e:
        raise CodecError(str(e)) from e


def encode_state(value: Any) -> str:
    """Serialize a JSON-like value to a compressed payload."""
    return compress(json.dumps(value, separators=(",", ":"), ensure_ascii=False))


def decode_state(payload: str) -> Any:
    """Decode a payload produced by :func:`encode_state`.

    Raises:
        CodecError: If the payload does not decode to JSON.
    """
    text = decompress(payload)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise CodecError(f"payload is not JSON: {e.msg}") from e


def wrap(payload: str, delimiter: str = DEFAULT_DELIMITER) -> str:
    """Surround a payload with the delimiter pair."""
    return f"{delimiter}{payload}{delimiter}"


def extract(text: str, delimiter: str = DEFAULT_DELIMITER) -> str | None:
    """Find the embedded payload in ``text``.

    Splits on the delimiter and takes the last non-empty segment, which
    covers both ``...||payload||`` and ``...||payload``.

    Returns:
        The payload, or None when the delimiter does not occur in ``text``.
    """
    if delimiter not in text:
        return None
    segments = [segment for segment in text.split(delimiter) if segment]
    if not segments:
        return None
    return segments[-1]


def validate_delimiter(delimiter: str) -> None:
    """Reject delimiters that could collide with payload characters.

    Raises:
        ValueError: If the delimiter is empty or uses the payload alphabet.
    """
    if not delimiter:
        raise ValueError("delimiter must not be empty")
    clashes = sorted(set(delimiter) & PAYLOAD_ALPHABET)
    if clashes:
        raise ValueError(f"delimiter must not contain payload characters: {''.join(clashes)}")
