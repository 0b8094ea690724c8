"""Memory item data models."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum


class MemoryType(StrEnum):
    PREFERENCE = "preference"
    FACT = "fact"
    FEEDBACK = "feedback"
    STYLE = "style"
    RELATIONSHIP = "relationship"
    INSTRUCTION = "instruction"


@dataclass(slots=True, frozen=True)
class MemoryItem:
    id: str
    agent_id: str
    company_id: str
    memory_type: MemoryType
    content: str
    confidence: float
    created_at: datetime
    expires_at: datetime | None = None
    source: str | None = None
    source_id: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> MemoryItem:
        expires_raw = row["expires_at"]
        return cls(
            id=str(row["id"]),
            agent_id=str(row["agent_id"]),
            company_id=str(row["company_id"]),
            memory_type=MemoryType(str(row["memory_type"])),
            content=str(row["content"]),
            confidence=float(row["confidence"]),
            created_at=parse_timestamp(str(row["created_at"])),
            expires_at=parse_timestamp(str(expires_raw)) if expires_raw else None,
            source=row["source"],
            source_id=row["source_id"],
        )


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
