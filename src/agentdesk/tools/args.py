"""Loose argument readers for tool handlers.

Tool schemas are advice to the model, not a contract; handlers coerce what
they get and fall back to defaults.
"""

from __future__ import annotations

import sqlite3
from typing import Any

from agentdesk.db.queries import loads_json
from agentdesk.errors import ToolError


def text(args: dict[str, Any], key: str, default: str = "") -> str:
    value = args.get(key)
    if value is None:
        return default
    return str(value).strip()


def required(args: dict[str, Any], key: str) -> str:
    value = text(args, key)
    if not value:
        raise ToolError(f"{key} is required")
    return value


def integer(
    args: dict[str, Any],
    key: str,
    default: int,
    *,
    low: int | None = None,
    high: int | None = None,
) -> int:
    try:
        value = int(args.get(key, default))
    except (TypeError, ValueError):
        value = default
    if low is not None:
        value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


def number(args: dict[str, Any], key: str, default: float | None = None) -> float | None:
    value = args.get(key, default)
    try:
        return None if value is None else float(value)
    except (TypeError, ValueError):
        return default


def string_list(args: dict[str, Any], key: str) -> list[str]:
    value = args.get(key)
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


def row_dict(row: sqlite3.Row | None) -> dict[str, Any] | None:
    """Row as a dict with *_json columns decoded under their short name."""
    if row is None:
        return None
    out: dict[str, Any] = {}
    for key in row.keys():
        if key.endswith("_json"):
            out[key[: -len("_json")]] = loads_json(row[key], None)
        else:
            out[key] = row[key]
    return out


def rows(items: list[sqlite3.Row]) -> list[dict[str, Any]]:
    return [row_dict(item) or {} for item in items]
