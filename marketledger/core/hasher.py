"""Canonical hashing helpers for notification integrity and journal chaining."""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def derive_address(*parts: Any) -> str:
    """Derive a stable ``0x``-prefixed 20-byte identity from *parts*.

    Used to give a marketplace instance its own account identity, distinct
    from its deployer, so that it can hold items and value in custody.
    """
    return "0x" + sha256_hex(canonical_json_bytes([str(p) for p in parts]))[:40]


def compute_payload_hash(payload: dict[str, Any]) -> str:
    """SHA-256 of a notification's content fields."""
    return sha256_hex(canonical_json_bytes(payload))


def compute_entry_hash(entry_dict: dict[str, Any]) -> str:
    """SHA-256 of a journal entry (excluding the entry_hash field itself).

    This is the seal that makes each entry tamper-evident.
    """
    d = {k: v for k, v in entry_dict.items() if k != "entry_hash"}
    return sha256_hex(canonical_json_bytes(d))
