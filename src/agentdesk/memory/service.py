"""Long-term agent memory: filtered reads, idempotent writes, prompt rendering."""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime

from agentdesk.config import get_settings
from agentdesk.db.queries import insert_memory, select_memories
from agentdesk.memory.types import MemoryItem, MemoryType

logger = logging.getLogger(__name__)

MEMORY_SECTION_HEADER = "## Your Memories About This Client"


def load_memories(
    conn: sqlite3.Connection,
    agent_id: str,
    company_id: str,
    *,
    now: datetime | None = None,
    min_confidence: float | None = None,
    limit: int | None = None,
) -> list[MemoryItem]:
    """Return usable memories for one (agent, company) pair, newest first.

    Filters: confidence floor, then expiry relative to ``now``, then the cap.
    """
    settings = get_settings()
    floor = settings.memory_confidence_floor if min_confidence is None else min_confidence
    cap = settings.memory_max_items if limit is None else limit
    current = now or datetime.now(UTC)

    items: list[MemoryItem] = []
    for row in select_memories(conn, agent_id, company_id, floor):
        item = MemoryItem.from_row(row)
        if item.expires_at is not None and item.expires_at <= current:
            continue
        items.append(item)
        if len(items) >= cap:
            break
    return items


def put_memory(
    conn: sqlite3.Connection,
    *,
    agent_id: str,
    company_id: str,
    memory_type: str,
    content: str,
    confidence: float = 1.0,
    source: str | None = "conversation",
    source_id: str | None = None,
    expires_at: datetime | None = None,
    created_at: datetime | None = None,
) -> tuple[str, bool]:
    """Store a memory; a repeat of the same content is a no-op.

    Returns ``(memory_id, created)``.
    """
    kind = MemoryType(memory_type.strip().lower())
    text = content.strip()
    if not text:
        raise ValueError("memory content must not be empty")
    memory_id, created = insert_memory(
        conn,
        agent_id=agent_id,
        company_id=company_id,
        memory_type=kind.value,
        content=text,
        confidence=min(1.0, max(0.0, float(confidence))),
        source=source,
        source_id=source_id,
        expires_at=expires_at.isoformat() if expires_at else None,
        created_at=created_at.isoformat() if created_at else None,
    )
    if not created:
        logger.debug("Memory already present for agent=%s company=%s", agent_id, company_id)
    return memory_id, created


def render_memory_section(memories: list[MemoryItem]) -> str:
    if not memories:
        return ""
    grouped: dict[MemoryType, list[str]] = {}
    for item in memories:
        grouped.setdefault(item.memory_type, []).append(item.content)

    blocks = [MEMORY_SECTION_HEADER]
    for memory_type, contents in grouped.items():
        bullets = "\n".join(f"- {content}" for content in contents)
        blocks.append(f"### {memory_type.value.capitalize()}s\n{bullets}")
    return "\n\n".join(blocks)
