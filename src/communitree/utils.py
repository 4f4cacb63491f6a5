"""Shared utilities."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

import orjson


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex}"


def json_dumps(obj: Any) -> str:
    return orjson.dumps(obj).decode()


def json_dumps_pretty(obj: Any) -> str:
    return orjson.dumps(obj, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS).decode()


def json_loads(data: str | bytes) -> Any:
    return orjson.loads(data)


def iso_str(dt: datetime) -> str:
    return dt.isoformat()


def parse_iso(s: str) -> datetime:
    # fromisoformat() rejects a trailing "Z" before Python 3.11
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return datetime.fromisoformat(s)


def try_parse_iso(value: Any) -> datetime | None:
    """Revive a stored temporal value; anything unparseable becomes None."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return parse_iso(value.strip())
    except ValueError:
        return None


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))
