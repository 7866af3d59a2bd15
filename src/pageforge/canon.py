"""
Canonical JSON Serialization

Provides deterministic JSON serialization for hashing and comparison.
Based on RFC 8785 (JSON Canonicalization Scheme) principles:
- Sorted keys (lexicographic)
- No whitespace
- Consistent number formatting
- UTF-8 encoding

Every content-addressed value in PageForge (dataset fingerprints, filter
references, unit content hashes) goes through these helpers so the same
input always produces the same digest across runs.
"""
from __future__ import annotations

import hashlib
import json
import unicodedata
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any


def _default_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for non-standard types.

    Handles:
    - datetime/date: ISO 8601 format
    - Decimal: string (preserves precision)
    - Enum: value
    - dataclass: dict
    - set/frozenset: sorted list
    - tuple: list
    - read-only mappings: dict
    """
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if isinstance(obj, MappingProxyType):
        return dict(obj)
    if isinstance(obj, bytes):
        return obj.hex()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonical_json(obj: Any) -> str:
    """
    Serialize object to canonical JSON string.

    Args:
        obj: Any JSON-serializable object (including dataclasses)

    Returns:
        Canonical JSON string (sorted keys, no whitespace)

    Example:
        >>> canonical_json({"b": 1, "a": 2})
        '{"a":2,"b":1}'
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        default=_default_serializer,
        ensure_ascii=False,
    )


def canonical_json_bytes(obj: Any) -> bytes:
    """Serialize object to canonical JSON as UTF-8 bytes."""
    return canonical_json(obj).encode("utf-8")


def content_hash(obj: Any) -> str:
    """
    Compute SHA-256 hash of canonical JSON representation.

    Args:
        obj: Any JSON-serializable object

    Returns:
        Hex-encoded SHA-256 hash string (64 characters)
    """
    return hashlib.sha256(canonical_json_bytes(obj)).hexdigest()


def normalize_expression(text: str) -> str:
    """
    Normalize boolean expression text for content addressing.

    Normalization:
    - Unicode normalize (NFKC)
    - Collapse whitespace (spaces, tabs, newlines) to single spaces
    - Strip leading/trailing whitespace

    The syntactic form is kept otherwise intact, so two filters collapse
    only when they are written the same way.

    Example:
        >>> normalize_expression("  wave ==\\n 1 ")
        'wave == 1'
    """
    text = unicodedata.normalize("NFKC", text)
    return " ".join(text.split())


def fingerprint_dataset(data: Any) -> str:
    """
    Compute a stable fingerprint for a bound dataset.

    Accepts anything canonical_json can serialize: a list of row dicts,
    a dict of columns, or a dataclass.

    Args:
        data: Dataset contents

    Returns:
        Hex-encoded SHA-256 hash string
    """
    return content_hash({"dataset": data})
