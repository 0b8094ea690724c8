import pytest

from agentdesk.agents.registry import AgentRegistry
from agentdesk.agents.seed import DEFAULT_AGENTS, SHARED_TOOLS, seed_default_agents
from agentdesk.db.queries import insert_activity, insert_memory
from agentdesk.errors import AgentNotFoundError, NotFoundError


def test_seed_creates_full_roster_once(conn) -> None:
    created = seed_default_agents(conn)
    assert created == [str(entry["name"]) for entry in DEFAULT_AGENTS]
    assert seed_default_agents(conn) == []
    assert len(AgentRegistry(conn).list_active()) == 10


def test_seeded_agents_carry_shared_tools(conn, seeded) -> None:
    del seeded
    marcus = AgentRegistry(conn).load("marcus")
    assert marcus.display_name == "Marcus"
    assert "send_email" in marcus.tools
    for name in SHARED_TOOLS:
        assert name in marcus.tools
    assert len(marcus.tools) == len(set(marcus.tools))


def test_load_unknown_agent_raises(conn, seeded) -> None:
    del seeded
    with pytest.raises(AgentNotFoundError) as exc_info:
        AgentRegistry(conn).load("zeus")
    assert exc_info.value.name == "zeus"
    assert isinstance(exc_info.value, NotFoundError)


def test_inactive_agent_is_not_found(conn, seeded) -> None:
    del seeded
    registry = AgentRegistry(conn, cache=False)
    registry.load("mia")
    conn.execute("UPDATE agents SET is_active=0 WHERE name='mia'")
    with pytest.raises(AgentNotFoundError):
        registry.load("mia")
    assert "mia" not in {config.name for config in registry.list_active()}


def test_upsert_invalidates_cache(conn, seeded) -> None:
    del seeded
    registry = AgentRegistry(conn, cache=True)
    before = registry.load("kai")
    registry.upsert(
        name="kai",
        display_name="Kai",
        role="analytics",
        system_prompt="You are Kai, now terser.",
        tools=["get_analytics_data"],
        temperature=0.2,
    )
    after = registry.load("kai")
    assert after.id == before.id
    assert after.system_prompt == "You are Kai, now terser."
    assert after.tools == ("get_analytics_data",)
    assert after.temperature == pytest.approx(0.2)


def test_cached_config_survives_until_invalidated(conn, seeded) -> None:
    del seeded
    registry = AgentRegistry(conn, cache=True)
    registry.load("rex")
    conn.execute("UPDATE agents SET display_name='Rexy' WHERE name='rex'")
    assert registry.load("rex").display_name == "Rex"
    registry.invalidate("rex")
    assert registry.load("rex").display_name == "Rexy"


def test_summaries_count_memories_and_recent_activity(conn, seeded, company_id) -> None:
    del seeded
    registry = AgentRegistry(conn)
    nora = registry.load("nora")
    insert_memory(
        conn, agent_id=nora.id, company_id=company_id, memory_type="fact", content="Two offices"
    )
    insert_activity(
        conn,
        agent_id=nora.id,
        company_id=company_id,
        action_type="chat_response",
        description="Nora responded",
    )
    summaries = {summary.config.name: summary for summary in registry.summaries()}
    assert len(summaries) == 10
    assert summaries["nora"].memory_count == 1
    assert summaries["nora"].activity_count_24h == 1
    assert summaries["atlas"].to_dict()["memory_count"] == 0
