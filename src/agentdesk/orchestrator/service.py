"""Orchestrator facade: route, run, and list agents."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

from agentdesk.agents.registry import AgentRegistry
from agentdesk.agents.types import AgentSummary
from agentdesk.config import get_settings
from agentdesk.db.queries import insert_activity
from agentdesk.errors import AgentNotFoundError
from agentdesk.ids import new_trace_id
from agentdesk.logging import bind_context, unbind_context
from agentdesk.orchestrator.router import RouteDecision, route_message
from agentdesk.orchestrator.step import RunResult, run_agent
from agentdesk.providers.base import ModelProvider, Turn
from agentdesk.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

ROUTER_AGENT_ID = "router"


class Orchestrator:
    def __init__(
        self,
        conn: sqlite3.Connection,
        provider: ModelProvider,
        tools: ToolRegistry,
        *,
        agents: AgentRegistry | None = None,
    ) -> None:
        self.conn = conn
        self.provider = provider
        self.tools = tools
        self.agents = agents or AgentRegistry(conn)

    async def route(
        self,
        message: str,
        company_id: str,
        context: dict[str, Any] | None = None,
    ) -> RouteDecision:
        return await route_message(
            self.provider,
            self.agents.list_active(),
            message,
            company_id,
            context,
        )

    async def handle_message(
        self,
        message: str,
        company_id: str,
        *,
        history: list[dict[str, Any]] | list[Turn] | None = None,
        context: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
        conversation_id: str | None = None,
    ) -> RunResult:
        """Route ``message``, record the decision, then run the chosen agent.

        ``metadata`` is merged into the agent's activity record alongside the
        routing details.
        """
        settings = get_settings()
        trace_id = new_trace_id()
        bind_context(trace_id=trace_id, company_id=company_id)
        try:
            decision = await self.route(message, company_id, context)
            self._record_routing(decision, message, company_id, conversation_id)
            result = await self.run_agent(
                decision.target_agent,
                message,
                company_id,
                history=history,
                metadata={
                    **(metadata or {}),
                    "routed_by": settings.default_agent,
                    "routing_confidence": decision.confidence,
                },
                conversation_id=conversation_id,
            )
        finally:
            unbind_context("trace_id", "company_id")
        result.routing = decision
        return result

    async def run_agent(
        self,
        agent_name: str,
        message: str,
        company_id: str,
        *,
        history: list[dict[str, Any]] | list[Turn] | None = None,
        metadata: dict[str, Any] | None = None,
        conversation_id: str | None = None,
        project_id: str | None = None,
    ) -> RunResult:
        return await run_agent(
            self.conn,
            self.provider,
            self.tools,
            agent_name,
            message,
            company_id,
            history=history,
            metadata=metadata,
            agents=self.agents,
            conversation_id=conversation_id,
            project_id=project_id,
        )

    async def run_direct(
        self,
        agent_name: str,
        message: str,
        company_id: str,
        *,
        history: list[dict[str, Any]] | list[Turn] | None = None,
    ) -> RunResult:
        """Talk to a named agent without routing."""
        return await self.run_agent(agent_name, message, company_id, history=history)

    def list_agents(self) -> list[AgentSummary]:
        return self.agents.summaries()

    def _record_routing(
        self,
        decision: RouteDecision,
        message: str,
        company_id: str,
        conversation_id: str | None,
    ) -> None:
        try:
            coordinator_id = self.agents.load(get_settings().default_agent).id
        except AgentNotFoundError:
            logger.warning("Coordinator agent missing; logging routing as %s", ROUTER_AGENT_ID)
            coordinator_id = ROUTER_AGENT_ID
        insert_activity(
            self.conn,
            agent_id=coordinator_id,
            company_id=company_id,
            action_type="message_routed",
            description=f'Routed message to {decision.target_agent}: "{message[:80]}"',
            metadata=decision.to_dict(),
            conversation_id=conversation_id,
        )
