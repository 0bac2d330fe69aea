"""
Canonical JSON serialization and Beckn body digest.

The same logical payload always yields the same bytes:
- mapping keys sorted by code point at every level
- separators ',' and ':' with no whitespace
- non-ASCII text emitted as UTF-8, not \\u escapes
- NaN and Infinity rejected
"""
import base64
import hashlib
import json
import math
from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, List, Union

from pydantic import BaseModel

from bap_signer.exceptions import SerializationError

JsonValue = Union[None, bool, int, float, str, List["JsonValue"], Dict[str, "JsonValue"]]

DIGEST_PREFIX = "SHA-256="

# Nesting deeper than this is rejected rather than recursed into
MAX_DEPTH = 256


def _normalize(value: Any, path: str, active: set, depth: int = 0) -> JsonValue:
    """Reduce *value* to plain JSON types, rejecting anything ambiguous."""
    if depth > MAX_DEPTH:
        raise SerializationError(f"Payload nested deeper than {MAX_DEPTH} levels at {path}")
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, Enum):
        return _normalize(value.value, path, active, depth)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise SerializationError(f"Non-finite number at {path}: {value!r}")
        return float(value)
    if isinstance(value, BaseModel):
        try:
            dumped = value.model_dump(mode="json", exclude_none=True)
        except (TypeError, ValueError, RecursionError) as e:
            raise SerializationError(f"Cannot dump {type(value).__name__} at {path}: {e}") from e
        return _normalize(dumped, path, active, depth)

    if isinstance(value, (Mapping, list, tuple)):
        marker = id(value)
        if marker in active:
            raise SerializationError(f"Cyclic structure at {path}")
        active.add(marker)
        try:
            if isinstance(value, Mapping):
                result = {}
                for key, item in value.items():
                    if not isinstance(key, str):
                        raise SerializationError(
                            f"Mapping keys must be strings, got {type(key).__name__} at {path}"
                        )
                    result[key] = _normalize(item, f"{path}.{key}", active, depth + 1)
                return result
            return [_normalize(item, f"{path}[{i}]", active, depth + 1) for i, item in enumerate(value)]
        finally:
            active.discard(marker)

    raise SerializationError(f"Unsupported type {type(value).__name__} at {path}")


def canonical_bytes(payload: Any) -> bytes:
    """Serialize *payload* to its canonical UTF-8 JSON bytes."""
    normalized = _normalize(payload, "$", set())
    try:
        text = json.dumps(
            normalized,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(f"Payload is not JSON serializable: {e}") from e
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        # lone surrogates
        raise SerializationError(f"Payload contains text that is not valid UTF-8: {e}") from e


def digest_bytes(body: bytes) -> str:
    """Digest header value for an already-serialized body."""
    return DIGEST_PREFIX + base64.b64encode(hashlib.sha256(body).digest()).decode("ascii")


def compute_digest(payload: Any) -> str:
    """Return 'SHA-256=' + base64(sha256(canonical_bytes(payload)))."""
    return digest_bytes(canonical_bytes(payload))
