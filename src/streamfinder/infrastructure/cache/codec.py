"""JSON codec shared by the persistent cache adapters."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import structlog

log = structlog.get_logger(__name__)


def encode_document(value: Mapping[str, Any]) -> str:
    """Compact JSON text for *value*.

    Raises:
        TypeError: *value* holds something JSON cannot represent.
    """
    return json.dumps(dict(value), separators=(",", ":"), sort_keys=True)


def decode_document(raw: str | bytes | None, *, key: str) -> dict[str, Any] | None:
    """Parse stored text back into a dict; anything else reads as a miss."""
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except (TypeError, ValueError) as exc:
        log.warning("cache_document_undecodable", key=key, error=str(exc))
        return None
    if not isinstance(value, dict):
        log.warning("cache_document_not_object", key=key, type=type(value).__name__)
        return None
    return value
