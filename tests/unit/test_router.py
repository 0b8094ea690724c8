import json

import httpx
import pytest

from agentdesk.agents.registry import AgentRegistry
from agentdesk.orchestrator.router import build_routing_prompt, parse_route, route_message
from agentdesk.providers.anthropic import AnthropicProvider
from agentdesk.providers.base import ModelResponse
from tests.fakes import FailingProvider, ScriptedProvider, text_response

KNOWN = {"atlas", "diego", "nora", "marcus"}


def test_parse_plain_json() -> None:
    decision = parse_route(
        '{"target_agent": "diego", "reasoning": "SEO question", "confidence": 0.92}',
        default_agent="atlas",
        known_agents=KNOWN,
    )
    assert decision.target_agent == "diego"
    assert decision.reasoning == "SEO question"
    assert decision.confidence == pytest.approx(0.92)


def test_parse_strips_code_fences() -> None:
    text = '```json\n{"target_agent": "Marcus", "reasoning": "pricing", "confidence": 0.8}\n```'
    decision = parse_route(text, default_agent="atlas", known_agents=KNOWN)
    assert decision.target_agent == "marcus"
    assert decision.confidence == pytest.approx(0.8)


@pytest.mark.parametrize(
    "text",
    [
        "I think Diego should take this one.",
        '["diego"]',
        '{"reasoning": "no target"}',
        '{"target_agent": "zeus", "confidence": 0.9}',
        '{"target_agent": "diego", "confidence": "very"}',
    ],
)
def test_unusable_output_falls_back_to_default(text: str) -> None:
    decision = parse_route(text, default_agent="atlas", known_agents=KNOWN)
    assert decision.target_agent == "atlas"
    assert decision.confidence == 0.5
    assert decision.reasoning == "Failed to parse routing, defaulting to Atlas"


def test_missing_confidence_defaults_and_out_of_range_is_clamped() -> None:
    assert parse_route('{"target_agent": "nora"}', default_agent="atlas").confidence == 0.5
    clamped = parse_route('{"target_agent": "nora", "confidence": 7}', default_agent="atlas")
    assert clamped.confidence == 1.0


def test_routing_prompt_lists_roster_and_rules(conn, seeded) -> None:
    del seeded
    prompt = build_routing_prompt(
        AgentRegistry(conn).list_active(), default_agent="atlas", relationship_agent="nora"
    )
    for name in ("atlas", "marcus", "sarah", "aria", "diego", "mia", "rex", "luna", "kai", "nora"):
        assert f"- **{name}**:" in prompt
    assert "route to **atlas** to coordinate" in prompt
    assert "greetings or casual chat, route to **nora**" in prompt
    assert '"target_agent"' in prompt


@pytest.mark.asyncio
async def test_route_message_uses_routing_settings(conn, seeded) -> None:
    del seeded
    provider = ScriptedProvider(
        [text_response('{"target_agent": "diego", "reasoning": "rankings", "confidence": 0.9}')]
    )
    decision = await route_message(
        provider,
        AgentRegistry(conn).list_active(),
        "Why did our Google rankings drop?",
        "cmp_1",
        context={"channel": "portal"},
    )
    assert decision.target_agent == "diego"
    call = provider.calls[0]
    assert call["tools"] is None
    assert call["max_tokens"] == 256
    assert call["temperature"] == pytest.approx(0.3)
    assert call["messages"][0].content == (
        'Route this message:\n\n"Why did our Google rankings drop?"'
        f"\n\nAdditional context: {json.dumps({'channel': 'portal'})}"
    )


@pytest.mark.asyncio
async def test_transport_failure_defaults(conn, seeded) -> None:
    del seeded
    decision = await route_message(
        FailingProvider(), AgentRegistry(conn).list_active(), "hello", "cmp_1"
    )
    assert decision.target_agent == "atlas"
    assert decision.confidence == 0.5
    assert decision.reasoning == "Routing failed, defaulting to Atlas"


@pytest.mark.asyncio
async def test_empty_model_reply_defaults(conn, seeded) -> None:
    del seeded
    provider = ScriptedProvider([ModelResponse(content=[])])
    decision = await route_message(provider, AgentRegistry(conn).list_active(), "hi", "cmp_1")
    assert decision.reasoning == "Routing failed, defaulting to Atlas"


@pytest.mark.asyncio
async def test_garbled_backend_reply_defaults(conn, seeded) -> None:
    del seeded

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>bad gateway</html>")

    provider = AnthropicProvider("sk-test", transport=httpx.MockTransport(handler))
    decision = await route_message(provider, AgentRegistry(conn).list_active(), "hi", "cmp_1")
    assert decision.target_agent == "atlas"
    assert decision.confidence == 0.5
    assert decision.reasoning == "Routing failed, defaulting to Atlas"
