import json

import pytest
import structlog

from agentdesk.agents.registry import AgentRegistry
from agentdesk.errors import AgentNotFoundError, ProviderError
from agentdesk.orchestrator.step import history_to_turns, run_agent
from agentdesk.providers.base import ModelResponse, TextBlock, ToolResultBlock, ToolUseBlock, Turn
from agentdesk.tools.catalog import build_default_registry
from agentdesk.tools.registry import ToolRegistry
from tests.fakes import FailingProvider, ScriptedProvider, text_response, tool_response


def _activities(conn, action_type: str = "chat_response") -> list:
    return conn.execute(
        "SELECT * FROM agent_activity WHERE action_type=? ORDER BY rowid", (action_type,)
    ).fetchall()


@pytest.mark.asyncio
async def test_plain_answer_takes_one_round(conn, seeded, company_id) -> None:
    del seeded
    provider = ScriptedProvider([text_response("Hello from Nora!")])
    result = await run_agent(
        conn, provider, build_default_registry(), "nora", "hi there", company_id
    )
    assert result.response == "Hello from Nora!"
    assert result.rounds == 1
    assert result.tools_used == []
    assert len(provider.calls) == 1

    call = provider.calls[0]
    assert call["max_tokens"] == 4096
    assert call["temperature"] == pytest.approx(0.7)
    assert "## Current Context" in call["system"]
    assert {tool.name for tool in call["tools"]} >= {"save_memory", "collect_feedback"}

    [activity] = _activities(conn)
    assert activity["id"] == result.activity_id
    assert activity["description"] == 'Nora responded to: "hi there"'
    metadata = json.loads(activity["metadata_json"])
    assert metadata == {"tools_used": [], "response_length": 16, "rounds": 1}


@pytest.mark.asyncio
async def test_sales_agent_queues_email_for_approval(conn, seeded, company_id) -> None:
    del seeded
    provider = ScriptedProvider(
        [
            tool_response(
                (
                    "send_email",
                    {
                        "to": "dana@brightsmile.example",
                        "subject": "Next steps",
                        "body": "Thanks for the call today.",
                    },
                ),
                text="Drafting that email now.",
            ),
            text_response("I've drafted the email; it is waiting for approval."),
        ]
    )
    result = await run_agent(
        conn,
        provider,
        build_default_registry(),
        "marcus",
        "Email Dana about next steps",
        company_id,
    )
    assert result.tools_used == ["send_email"]
    assert result.rounds == 2
    assert result.response == "I've drafted the email; it is waiting for approval."

    pending = conn.execute("SELECT * FROM notifications WHERE status='pending'").fetchall()
    assert len(pending) == 1
    assert pending[0]["channel"] == "email"

    second_turns = provider.calls[1]["messages"]
    assert second_turns[-2].role == "assistant"
    assert isinstance(second_turns[-2].content[1], ToolUseBlock)
    result_block = second_turns[-1].content[0]
    assert isinstance(result_block, ToolResultBlock)
    assert result_block.tool_use_id == "toolu_send_email_0"
    assert json.loads(result_block.content)["status"] == "pending_approval"


@pytest.mark.asyncio
async def test_round_cap_returns_last_text(conn, seeded, company_id) -> None:
    del seeded
    provider = ScriptedProvider(
        [tool_response(("get_company_info", {}), text="Still looking...")]
    )
    result = await run_agent(
        conn, provider, build_default_registry(), "atlas", "status?", company_id
    )
    assert result.rounds == 10
    assert len(provider.calls) == 10
    assert result.tools_used == ["get_company_info"] * 10
    assert result.response == "Still looking..."
    assert len(_activities(conn)) == 1


@pytest.mark.asyncio
async def test_end_turn_with_text_stops_after_tools(conn, seeded, company_id) -> None:
    del seeded
    response = ModelResponse(
        content=[
            TextBlock(text="Noted, I'll remember that."),
            ToolUseBlock(
                id="toolu_1",
                name="save_memory",
                input={"memory_type": "preference", "content": "Prefers Tuesday calls"},
            ),
        ],
        stop_reason="end_turn",
    )
    provider = ScriptedProvider([response, text_response("should not be requested")])
    result = await run_agent(
        conn, provider, build_default_registry(), "nora", "I like Tuesday calls", company_id
    )
    assert result.rounds == 1
    assert result.response == "Noted, I'll remember that."
    assert result.tools_used == ["save_memory"]


@pytest.mark.asyncio
async def test_tool_failure_is_fed_back_to_model(conn, seeded, company_id) -> None:
    del seeded
    registry = build_default_registry()

    @registry.tool("get_company_info", "Broken for this test")
    async def broken(args, ctx):
        raise RuntimeError("db offline")

    provider = ScriptedProvider(
        [
            tool_response(("get_company_info", {}), ("no_such_tool", {})),
            text_response("Sorry, I couldn't load the company details."),
        ]
    )
    result = await run_agent(conn, provider, registry, "atlas", "who are we?", company_id)
    assert result.response == "Sorry, I couldn't load the company details."
    results = provider.calls[1]["messages"][-1].content
    assert json.loads(results[0].content) == {"error": "Tool execution failed: db offline"}
    assert json.loads(results[1].content) == {"error": 'Tool "no_such_tool" not found'}


@pytest.mark.asyncio
async def test_multi_tool_round_runs_in_request_order(conn, seeded, company_id) -> None:
    """Tools in one round run sequentially; an earlier write is visible to later tools."""
    del seeded
    provider = ScriptedProvider(
        [
            tool_response(
                ("save_memory", {"memory_type": "fact", "content": "Opened a second office"}),
                ("save_memory", {"memory_type": "fact", "content": "Opened a second office"}),
            ),
            text_response("Saved."),
        ]
    )
    result = await run_agent(
        conn, provider, build_default_registry(), "nora", "We opened a new office", company_id
    )
    assert result.tools_used == ["save_memory", "save_memory"]
    statuses = [
        json.loads(block.content)["status"] for block in provider.calls[1]["messages"][-1].content
    ]
    assert statuses == ["memory_saved", "already_remembered"]


@pytest.mark.asyncio
async def test_provider_error_propagates_without_activity(conn, seeded, company_id) -> None:
    del seeded
    with pytest.raises(ProviderError):
        await run_agent(
            conn, FailingProvider(), build_default_registry(), "kai", "numbers?", company_id
        )
    assert _activities(conn) == []


@pytest.mark.asyncio
async def test_unknown_agent_raises_before_model_call(conn, seeded, company_id) -> None:
    del seeded
    provider = ScriptedProvider([text_response("unused")])
    with pytest.raises(AgentNotFoundError):
        await run_agent(conn, provider, ToolRegistry(), "zeus", "hello", company_id)
    assert provider.calls == []


@pytest.mark.asyncio
async def test_regulated_company_prompt_and_metadata(conn, seeded, clinic_id) -> None:
    del seeded
    provider = ScriptedProvider([text_response("Here is a draft post.")])
    await run_agent(
        conn,
        provider,
        build_default_registry(),
        "sarah",
        "Write a post",
        clinic_id,
        history=[{"role": "user", "content": "earlier"}, {"role": "assistant", "content": "ok"}],
        metadata={"channel": "portal"},
    )
    assert provider.calls[0]["system"].endswith("Keep all responses HIPAA-compliant.")
    assert [turn.role for turn in provider.calls[0]["messages"]] == ["user", "assistant", "user"]
    metadata = json.loads(_activities(conn)[0]["metadata_json"])
    assert metadata["channel"] == "portal"


def test_history_to_turns_skips_unusable_entries() -> None:
    turns = history_to_turns(
        [
            {"role": "user", "content": "hi"},
            {"role": "system", "content": "ignored"},
            {"role": "assistant", "content": ""},
            Turn(role="assistant", content="kept"),
        ]
    )
    assert [(turn.role, turn.content) for turn in turns] == [("user", "hi"), ("assistant", "kept")]


@pytest.mark.asyncio
async def test_tool_outside_agent_tool_set_is_not_found(conn, company_id) -> None:
    AgentRegistry(conn).upsert(
        name="sales-agent",
        display_name="Sales Agent",
        role="Sales",
        system_prompt="You qualify leads.",
        tools=["score_lead"],
    )
    provider = ScriptedProvider(
        [
            tool_response(
                ("send_email", {"to": "dana@brightsmile.example", "subject": "Hi", "body": "Hey"})
            ),
            text_response("I can't send email from here."),
        ]
    )
    result = await run_agent(
        conn, provider, build_default_registry(), "sales-agent", "Email Dana", company_id
    )
    assert [tool.name for tool in provider.calls[0]["tools"]] == ["score_lead"]
    assert result.tools_used == ["send_email"]
    [block] = provider.calls[1]["messages"][-1].content
    assert json.loads(block.content) == {"error": 'Tool "send_email" not found'}
    assert conn.execute("SELECT COUNT(*) FROM notifications").fetchone()[0] == 0


@pytest.mark.asyncio
async def test_long_message_description_is_truncated(conn, seeded, company_id) -> None:
    del seeded
    message = "x" * 150
    provider = ScriptedProvider([text_response("ok")])
    await run_agent(conn, provider, build_default_registry(), "nora", message, company_id)
    [activity] = _activities(conn)
    assert activity["description"] == f'Nora responded to: "{"x" * 100}..."'


@pytest.mark.asyncio
async def test_log_context_is_released_after_run(conn, seeded, company_id) -> None:
    del seeded
    structlog.contextvars.clear_contextvars()
    provider = ScriptedProvider([text_response("ok")])
    await run_agent(conn, provider, build_default_registry(), "nora", "hi", company_id)
    assert structlog.contextvars.get_contextvars() == {}

    with pytest.raises(ProviderError):
        await run_agent(
            conn, FailingProvider(), build_default_registry(), "nora", "hi", company_id
        )
    assert structlog.contextvars.get_contextvars() == {}
