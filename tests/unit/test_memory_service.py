from datetime import UTC, datetime, timedelta

import pytest

from agentdesk.agents.registry import AgentRegistry
from agentdesk.memory.service import (
    MEMORY_SECTION_HEADER,
    load_memories,
    put_memory,
    render_memory_section,
)
from agentdesk.memory.types import MemoryItem, MemoryType


@pytest.fixture
def sarah_id(conn, seeded) -> str:
    del seeded
    return AgentRegistry(conn).load("sarah").id


def _put(conn, agent_id: str, content: str, **kwargs) -> tuple[str, bool]:
    kwargs.setdefault("memory_type", "fact")
    return put_memory(conn, agent_id=agent_id, company_id="cmp_1", content=content, **kwargs)


def test_confidence_floor_and_expiry_are_applied(conn, sarah_id) -> None:
    now = datetime.now(UTC)
    _put(conn, sarah_id, "Prefers warm tones", memory_type="preference", confidence=0.9)
    _put(conn, sarah_id, "Might like puns", confidence=0.2)
    _put(conn, sarah_id, "Exactly at the floor", confidence=0.3)
    _put(conn, sarah_id, "Spring promo runs", expires_at=now - timedelta(days=1))
    _put(conn, sarah_id, "Summer promo runs", expires_at=now + timedelta(days=30))

    contents = {item.content for item in load_memories(conn, sarah_id, "cmp_1")}
    assert contents == {"Prefers warm tones", "Exactly at the floor", "Summer promo runs"}


def test_newest_first_and_capped(conn, sarah_id) -> None:
    base = datetime(2025, 1, 1, tzinfo=UTC)
    for idx in range(60):
        _put(conn, sarah_id, f"fact {idx}", created_at=base + timedelta(minutes=idx))

    items = load_memories(conn, sarah_id, "cmp_1")
    assert len(items) == 50
    assert items[0].content == "fact 59"
    assert items[-1].content == "fact 10"
    assert [item.created_at for item in items] == sorted(
        (item.created_at for item in items), reverse=True
    )


def test_memories_are_scoped_to_company(conn, sarah_id) -> None:
    _put(conn, sarah_id, "Only for cmp_1")
    put_memory(
        conn, agent_id=sarah_id, company_id="cmp_2", memory_type="fact", content="Only for cmp_2"
    )
    assert [item.content for item in load_memories(conn, sarah_id, "cmp_2")] == ["Only for cmp_2"]


def test_put_memory_is_idempotent(conn, sarah_id) -> None:
    first_id, created = _put(conn, sarah_id, "Uses Oxford commas")
    second_id, created_again = _put(conn, sarah_id, "Uses Oxford commas")
    assert created is True
    assert created_again is False
    assert first_id == second_id
    count = conn.execute(
        "SELECT COUNT(*) AS n FROM agent_memory WHERE content='Uses Oxford commas'"
    ).fetchone()["n"]
    assert count == 1


def test_put_memory_rejects_bad_input(conn, sarah_id) -> None:
    with pytest.raises(ValueError):
        _put(conn, sarah_id, "whatever", memory_type="gossip")
    with pytest.raises(ValueError):
        _put(conn, sarah_id, "   ")


def _item(memory_type: MemoryType, content: str) -> MemoryItem:
    return MemoryItem(
        id=f"mem_{content}",
        agent_id="agt_1",
        company_id="cmp_1",
        memory_type=memory_type,
        content=content,
        confidence=1.0,
        created_at=datetime(2025, 1, 1, tzinfo=UTC),
    )


def test_render_groups_by_type() -> None:
    rendered = render_memory_section(
        [
            _item(MemoryType.PREFERENCE, "Likes teal"),
            _item(MemoryType.FACT, "Founded 1998"),
            _item(MemoryType.PREFERENCE, "No stock photos"),
        ]
    )
    assert rendered == (
        f"{MEMORY_SECTION_HEADER}\n\n"
        "### Preferences\n- Likes teal\n- No stock photos\n\n"
        "### Facts\n- Founded 1998"
    )


def test_render_empty_is_blank() -> None:
    assert render_memory_section([]) == ""
