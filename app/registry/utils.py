from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

from flask import request

from app.registry.constants import CONTENT_HASH_BYTES
from app.registry.errors import InvalidMetadata

_HEX_RE = re.compile(r"[0-9a-fA-F]+")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime(timezone=False) columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_content_hash(raw: str | bytes | None) -> bytes:
    """Accept raw 32-byte digests or their 64-char hex form."""
    if isinstance(raw, bytes):
        value = raw
    else:
        text = (raw or "").strip()
        if text.lower().startswith("0x"):
            text = text[2:]
        if len(text) != CONTENT_HASH_BYTES * 2 or not _HEX_RE.fullmatch(text):
            raise InvalidMetadata(f"content_hash must be {CONTENT_HASH_BYTES * 2} hex characters.")
        value = bytes.fromhex(text)
    if len(value) != CONTENT_HASH_BYTES:
        raise InvalidMetadata(f"content_hash must be exactly {CONTENT_HASH_BYTES} bytes.")
    return value


def check_length(field: str, value: str, limit: int, *, required: bool = True) -> str:
    value = (value or "").strip()
    if required and not value:
        raise InvalidMetadata(f"{field} is required.")
    if len(value) > limit:
        raise InvalidMetadata(f"{field} must be at most {limit} characters.")
    return value


def parse_int(raw: str | None, default: int, *, lo: int, hi: int) -> int:
    """Lenient query-string int: falls back to `default`, clamps to [lo, hi]."""
    try:
        value = int((raw or "").strip())
    except ValueError:
        return default
    return max(lo, min(hi, value))


def check_identifier(field: str, value: str, limit: int) -> str:
    """Ids and principals are compared verbatim everywhere, so they are never rewritten."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidMetadata(f"{field} is required.")
    if len(value) > limit:
        raise InvalidMetadata(f"{field} must be at most {limit} characters.")
    return value


def json_object() -> dict[str, Any]:
    """Request body as a JSON object; a missing body reads as empty."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidMetadata("Request body must be a JSON object.")
    return data
