from datetime import UTC, date, datetime

from agentdesk.agents.types import AgentConfig
from agentdesk.memory.types import MemoryItem, MemoryType
from agentdesk.orchestrator.prompt_builder import (
    COMPLIANCE_REMINDER,
    TenantFacts,
    compose_instructions,
    load_tenant_facts,
)

CONFIG = AgentConfig(
    id="agt_sarah",
    name="sarah",
    display_name="Sarah",
    role="content_writer",
    system_prompt="You are Sarah, the content writer.",
)
TODAY = date(2025, 3, 14)


def _memory(content: str) -> MemoryItem:
    return MemoryItem(
        id="mem_1",
        agent_id="agt_sarah",
        company_id="cmp_1",
        memory_type=MemoryType.STYLE,
        content=content,
        confidence=1.0,
        created_at=datetime(2025, 1, 1, tzinfo=UTC),
    )


def test_context_block_follows_base_instructions() -> None:
    tenant = TenantFacts(id="cmp_1", name="Bright Smile Dental", company_type="marketing_company")
    prompt = compose_instructions(CONFIG, tenant, [_memory("Short sentences")], today=TODAY)
    assert prompt.startswith("You are Sarah, the content writer.\n\n## Current Context\n")
    assert "- Company: Bright Smile Dental" in prompt
    assert "- Company Type: marketing_company" in prompt
    assert "- Company ID: cmp_1" in prompt
    assert "- Date: 2025-03-14" in prompt
    assert prompt.endswith("### Styles\n- Short sentences")
    assert "HIPAA" not in prompt


def test_regulated_tenant_gets_reminder_last() -> None:
    tenant = TenantFacts(id="cmp_bh", name="Harbor Recovery", company_type="bh_center")
    prompt = compose_instructions(CONFIG, tenant, [_memory("Calm tone")], today=TODAY)
    assert prompt.endswith("\n\n" + COMPLIANCE_REMINDER)
    assert prompt.count("## HIPAA REMINDER") == 1
    assert COMPLIANCE_REMINDER == (
        "## HIPAA REMINDER\nThis is a behavioral health center. NEVER include PHI "
        "(Protected Health Information) in any output. Do not confirm or deny patient "
        "status. Keep all responses HIPAA-compliant."
    )


def test_unknown_tenant_renders_base_only() -> None:
    assert compose_instructions(CONFIG, None, [], today=TODAY) == CONFIG.system_prompt


def test_truncation_never_drops_reminder() -> None:
    tenant = TenantFacts(id="cmp_bh", name="Harbor Recovery", company_type="bh_center")
    memories = [_memory("x" * 2000)]
    prompt = compose_instructions(CONFIG, tenant, memories, today=TODAY, max_chars=300)
    assert "[...truncated...]" in prompt
    assert prompt.endswith(COMPLIANCE_REMINDER)
    assert len(prompt) <= 300 + len(COMPLIANCE_REMINDER) + 2


def test_load_tenant_facts(conn, clinic_id) -> None:
    facts = load_tenant_facts(conn, clinic_id)
    assert facts is not None
    assert facts.name == "Harbor Recovery Center"
    assert facts.regulated is True
    assert load_tenant_facts(conn, "cmp_missing") is None
