"""Agent execution loop: model call, tool dispatch, transcript update, repeat."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any, assert_never

from agentdesk.agents.registry import AgentRegistry
from agentdesk.agents.types import AgentConfig
from agentdesk.config import get_settings
from agentdesk.db.queries import insert_activity
from agentdesk.logging import bind_context, unbind_context
from agentdesk.memory.service import load_memories
from agentdesk.orchestrator.prompt_builder import compose_instructions, load_tenant_facts
from agentdesk.orchestrator.router import RouteDecision
from agentdesk.providers.base import (
    ModelProvider,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    Turn,
    TurnBlock,
)
from agentdesk.tools.registry import ToolContext, ToolRegistry
from agentdesk.tools.runtime import ToolRuntime

logger = logging.getLogger(__name__)

_CONTROL_MARKERS = (
    "<|start|>",
    "<|channel|>",
    "<|message|>",
    "<|analysis|>",
    "<|final|>",
    "<|call|>",
)


def _strip_control_tokens(text: str) -> str:
    """Remove chat-template control tokens some OpenAI-compatible servers leak."""
    cleaned = text.replace("<|end|>", "").strip()
    first_marker: int | None = None
    for marker in _CONTROL_MARKERS:
        idx = cleaned.find(marker)
        if idx == -1:
            continue
        first_marker = idx if first_marker is None else min(first_marker, idx)
    if first_marker is not None:
        cleaned = cleaned[:first_marker].strip()
    return cleaned


@dataclass(slots=True)
class RunResult:
    response: str
    agent_name: str
    agent_display_name: str
    tools_used: list[str]
    activity_id: str
    rounds: int
    routing: RouteDecision | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "response": self.response,
            "agent_name": self.agent_name,
            "agent_display_name": self.agent_display_name,
            "tools_used": list(self.tools_used),
            "activity_id": self.activity_id,
            "rounds": self.rounds,
        }
        if self.routing is not None:
            payload["routing"] = self.routing.to_dict()
        return payload


@dataclass(slots=True)
class _LoopState:
    transcript: list[Turn]
    response: str = ""
    tools_used: list[str] = field(default_factory=list)
    rounds: int = 0


def history_to_turns(history: list[dict[str, Any]] | list[Turn] | None) -> list[Turn]:
    """Accept prior turns as Turn objects or ``{"role", "content"}`` dicts."""
    turns: list[Turn] = []
    for item in history or []:
        if isinstance(item, Turn):
            turns.append(item)
            continue
        role = item.get("role")
        content = item.get("content")
        if role in ("user", "assistant") and isinstance(content, str) and content:
            turns.append(Turn(role=role, content=content))
    return turns


def _describe_response(display_name: str, message: str) -> str:
    excerpt = message[:100] + ("..." if len(message) > 100 else "")
    return f'{display_name} responded to: "{excerpt}"'


async def run_agent(
    conn: sqlite3.Connection,
    provider: ModelProvider,
    tools: ToolRegistry,
    agent_name: str,
    message: str,
    company_id: str,
    *,
    history: list[dict[str, Any]] | list[Turn] | None = None,
    metadata: dict[str, Any] | None = None,
    agents: AgentRegistry | None = None,
    conversation_id: str | None = None,
    project_id: str | None = None,
) -> RunResult:
    """Run one agent to completion against ``message``.

    Raises AgentNotFoundError for unknown or inactive agents and ProviderError
    when the model call fails; in both cases no activity record is written.
    """
    config = (agents or AgentRegistry(conn)).load(agent_name)
    bind_context(agent=config.name, company_id=company_id)
    try:
        return await _drive(
            conn,
            provider,
            tools,
            config,
            message,
            company_id,
            history=history,
            metadata=metadata,
            conversation_id=conversation_id,
            project_id=project_id,
        )
    finally:
        unbind_context("agent", "company_id")


async def _drive(
    conn: sqlite3.Connection,
    provider: ModelProvider,
    tools: ToolRegistry,
    config: AgentConfig,
    message: str,
    company_id: str,
    *,
    history: list[dict[str, Any]] | list[Turn] | None,
    metadata: dict[str, Any] | None,
    conversation_id: str | None,
    project_id: str | None,
) -> RunResult:
    settings = get_settings()
    memories = load_memories(conn, config.id, company_id)
    tenant = load_tenant_facts(conn, company_id)
    system = compose_instructions(config, tenant, memories)
    declarations = tools.declarations(config.tools)
    runtime = ToolRuntime(tools, allowed=config.tools)
    ctx = ToolContext(
        agent_id=config.id,
        agent_name=config.name,
        company_id=company_id,
        conn=conn,
    )
    state = _LoopState(transcript=[*history_to_turns(history), Turn(role="user", content=message)])
    max_rounds = max(1, int(settings.max_tool_rounds))

    while state.rounds < max_rounds:
        state.rounds += 1
        response = await provider.generate(
            model=config.model,
            system=system,
            messages=state.transcript,
            tools=declarations or None,
            temperature=config.temperature,
            max_tokens=settings.max_output_tokens,
        )

        texts: list[str] = []
        requests: list[ToolUseBlock] = []
        for block in response.content:
            match block:
                case TextBlock(text=text):
                    texts.append(text)
                case ToolUseBlock():
                    requests.append(block)
                case _:
                    assert_never(block)

        if texts:
            state.response = "\n".join(texts)
        if not requests:
            break

        results: list[TurnBlock] = []
        for request in requests:
            state.tools_used.append(request.name)
            logger.info("Round %d: %s calls %s", state.rounds, config.name, request.name)
            output = await runtime.execute(request.name, request.input, ctx)
            results.append(ToolResultBlock(tool_use_id=request.id, content=output))
        state.transcript.append(Turn(role="assistant", content=list(response.content)))
        state.transcript.append(Turn(role="user", content=results))

        if response.stop_reason == "end_turn" and state.response:
            break
    else:
        logger.warning("%s reached the %d round limit", config.name, max_rounds)

    final = _strip_control_tokens(state.response)
    activity_id = insert_activity(
        conn,
        agent_id=config.id,
        company_id=company_id,
        action_type="chat_response",
        description=_describe_response(config.display_name, message),
        metadata={
            "tools_used": state.tools_used,
            "response_length": len(final),
            "rounds": state.rounds,
            **(metadata or {}),
        },
        project_id=project_id,
        conversation_id=conversation_id,
    )
    logger.info(
        "%s finished in %d round(s) with %d tool call(s)",
        config.name,
        state.rounds,
        len(state.tools_used),
    )
    return RunResult(
        response=final,
        agent_name=config.name,
        agent_display_name=config.display_name,
        tools_used=state.tools_used,
        activity_id=activity_id,
        rounds=state.rounds,
    )
