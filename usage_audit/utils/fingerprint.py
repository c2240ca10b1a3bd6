"""Request and key fingerprinting."""

import hashlib
import json
from typing import Any

from web3 import Web3


def canonical_json(data: Any) -> str:
    """
    Serialize ``data`` deterministically.

    Keys are sorted at every level and separators carry no whitespace,
    so equal structures always produce equal strings.
    """
    return json.dumps(
        data, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    )


def request_fingerprint(
    method: str,
    endpoint: str,
    params: dict[str, Any] | None = None,
    body: Any = None,
) -> str:
    """
    SHA-256 fingerprint of a forwarded request shape.

    Args:
        method: Upper-case HTTP method
        endpoint: Normalised upstream path
        params: Forwarded query parameters (reserved names already removed)
        body: Forwarded body, or None

    Returns:
        64-character hex digest
    """
    shape = {
        "method": method,
        "endpoint": endpoint,
        "params": params or {},
        "body": body if body not in (None, b"", "") else {},
    }
    return hashlib.sha256(canonical_json(shape).encode("utf-8")).hexdigest()


def key_fingerprint(api_key: str) -> str:
    """
    Keccak-256 commitment to an API key for use on the public ledger.

    Returns:
        0x-prefixed 32-byte hex string
    """
    return Web3.to_hex(Web3.keccak(text=api_key))


def to_bytes32(hex_digest: str) -> bytes:
    """
    Convert a hex digest (with or without 0x) to exactly 32 bytes.

    Shorter digests are left-padded with zeros.
    """
    raw = bytes.fromhex(hex_digest.removeprefix("0x"))
    if len(raw) > 32:
        raise ValueError(f"Digest longer than 32 bytes: {len(raw)}")
    return raw.rjust(32, b"\x00")
