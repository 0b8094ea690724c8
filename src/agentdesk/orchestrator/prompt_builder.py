"""System instruction assembly for one agent invocation."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import UTC, date, datetime

from agentdesk.agents.types import AgentConfig
from agentdesk.config import get_settings
from agentdesk.db.queries import get_company
from agentdesk.memory.service import render_memory_section
from agentdesk.memory.types import MemoryItem

logger = logging.getLogger(__name__)

COMPLIANCE_REMINDER = (
    "## HIPAA REMINDER\n"
    "This is a behavioral health center. NEVER include PHI (Protected Health Information) "
    "in any output. Do not confirm or deny patient status. "
    "Keep all responses HIPAA-compliant."
)
_TRUNCATION_MARKER = "\n[...truncated...]\n"


@dataclass(slots=True, frozen=True)
class TenantFacts:
    id: str
    name: str
    company_type: str

    @property
    def regulated(self) -> bool:
        return self.company_type.lower() in get_settings().regulated_types()


def load_tenant_facts(conn: sqlite3.Connection, company_id: str) -> TenantFacts | None:
    row = get_company(conn, company_id)
    if row is None:
        logger.warning("No company record for %s; composing without context block", company_id)
        return None
    return TenantFacts(id=str(row["id"]), name=str(row["name"]), company_type=str(row["type"]))


def _truncate_with_marker(text: str, budget_chars: int) -> tuple[str, bool]:
    normalized = text.strip()
    if budget_chars <= 0 or len(normalized) <= budget_chars:
        return normalized, False
    budget_chars = max(64, budget_chars)
    head_chars = max(32, int(budget_chars * 0.65))
    tail_chars = max(16, int(budget_chars * 0.2))
    if head_chars + tail_chars + len(_TRUNCATION_MARKER) >= budget_chars:
        return normalized[: budget_chars - 1] + "…", True
    return f"{normalized[:head_chars]}{_TRUNCATION_MARKER}{normalized[-tail_chars:]}", True


def render_context_section(tenant: TenantFacts, today: date) -> str:
    return (
        "## Current Context\n"
        f"- Company: {tenant.name}\n"
        f"- Company Type: {tenant.company_type}\n"
        f"- Company ID: {tenant.id}\n"
        f"- Date: {today.isoformat()}"
    )


def compose_instructions(
    config: AgentConfig,
    tenant: TenantFacts | None,
    memories: list[MemoryItem],
    *,
    today: date | None = None,
    max_chars: int | None = None,
) -> str:
    """Base instructions, context, memories, then the compliance reminder when required.

    Only the sections before the reminder are subject to ``max_chars``.
    """
    current_day = today or datetime.now(UTC).date()
    parts = [config.system_prompt.strip()]
    if tenant is not None:
        parts.append(render_context_section(tenant, current_day))
    memory_section = render_memory_section(memories)
    if memory_section:
        parts.append(memory_section)
    body = "\n\n".join(part for part in parts if part)

    limit = get_settings().prompt_max_chars if max_chars is None else max_chars
    body, clipped = _truncate_with_marker(body, limit)
    if clipped:
        logger.info("Instructions for %s clipped to %d chars", config.name, limit)

    if tenant is not None and tenant.regulated:
        return f"{body}\n\n{COMPLIANCE_REMINDER}"
    return body
