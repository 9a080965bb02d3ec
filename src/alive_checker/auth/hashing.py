"""SHA-256 digests in the two encodings the remote verifier re-derives."""

from __future__ import annotations

import base64
import hashlib


def to_hex_string(value: str) -> str:
    """Lowercase hex SHA-256 of the UTF-8 bytes of ``value``."""

    return _sha256(value).hex()


def to_base64_string(value: str) -> str:
    """Standard (padded, non-url-safe) base64 SHA-256 of the UTF-8 bytes of ``value``."""

    return base64.b64encode(_sha256(value)).decode("ascii")


def _sha256(value: str) -> bytes:
    return hashlib.sha256(value.encode("utf-8")).digest()
