"""Message routing: one non-tool model call that picks the handling agent."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from agentdesk.agents.types import AgentConfig
from agentdesk.config import get_settings
from agentdesk.errors import ProviderError
from agentdesk.providers.base import ModelProvider, TextBlock, ToolUseBlock, Turn

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.5

ROUTING_HINTS: dict[str, str] = {
    "atlas": (
        "Project Manager: coordinates work, creates projects, assigns tasks, tracks "
        "deadlines. Route here for project management, status checks, timelines and "
        "general coordination."
    ),
    "marcus": (
        "Sales: leads, proposals, follow-ups, pipeline. Route here for new business, "
        "pricing questions and proposals."
    ),
    "sarah": (
        "Content: blogs, social copy, email campaigns, website copy. Route here for "
        "content creation and copywriting."
    ),
    "aria": (
        "Design: visual concepts, mood boards, designs, brand materials. Route here for "
        "design requests and brand collateral."
    ),
    "diego": (
        "SEO: technical audits, keyword tracking, page speed, links. Route here for SEO, "
        "website performance and search rankings."
    ),
    "mia": (
        "Social Media: calendars, scheduling, engagement, platform strategy. Route here "
        "for social media management."
    ),
    "rex": (
        "Reputation: review monitoring, response drafting, sentiment. Route here for "
        "reviews and reputation concerns."
    ),
    "luna": (
        "Competitive Intel: competitor monitoring, market analysis. Route here for "
        "competitor questions and market research."
    ),
    "kai": (
        "Analytics: performance data, ROI, reports, anomalies. Route here for metrics "
        "and data analysis."
    ),
    "nora": (
        "Client Success: satisfaction, onboarding, renewals, touchpoints. Route here for "
        "client relationship topics."
    ),
}

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)


@dataclass(slots=True, frozen=True)
class RouteDecision:
    target_agent: str
    reasoning: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_agent": self.target_agent,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
        }


def build_routing_prompt(
    roster: Sequence[AgentConfig],
    *,
    default_agent: str,
    relationship_agent: str,
) -> str:
    lines = [
        "You route incoming messages to the right specialist agent.",
        "",
        "## Available Agents",
        "",
    ]
    for agent in roster:
        hint = ROUTING_HINTS.get(agent.name, agent.role.replace("_", " ").title())
        lines.append(f"- **{agent.name}**: {hint}")
    lines.extend(
        [
            "",
            "## Rules",
            "1. If the message is clearly for one agent, route to that agent.",
            "2. If the message spans multiple domains, route to the PRIMARY agent and note "
            "the others in your reasoning.",
            f"3. For vague or general messages, route to **{default_agent}** to coordinate.",
            f"4. For greetings or casual chat, route to **{relationship_agent}**.",
            "",
            "## Output Format",
            "Respond with ONLY a JSON object:",
            '{"target_agent": "<agent_name>", "reasoning": "<brief explanation>", '
            '"confidence": <0.0-1.0>}',
        ]
    )
    return "\n".join(lines)


def _fallback(default_agent: str, reason: str) -> RouteDecision:
    return RouteDecision(
        target_agent=default_agent,
        reasoning=f"{reason}, defaulting to {default_agent.title()}",
        confidence=FALLBACK_CONFIDENCE,
    )


def parse_route(
    text: str,
    *,
    default_agent: str,
    known_agents: set[str] | None = None,
) -> RouteDecision:
    """Parse the routing JSON; anything unusable yields the default agent at 0.5."""
    cleaned = _FENCE_RE.sub("", text.strip()).strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("Routing response was not JSON: %.200s", cleaned)
        return _fallback(default_agent, "Failed to parse routing")
    if not isinstance(parsed, dict):
        return _fallback(default_agent, "Failed to parse routing")

    target = str(parsed.get("target_agent") or "").strip().lower()
    if not target or (known_agents and target not in known_agents):
        logger.warning("Routing picked unknown agent %r", target)
        return _fallback(default_agent, "Failed to parse routing")
    try:
        confidence = float(parsed.get("confidence", FALLBACK_CONFIDENCE))
    except (TypeError, ValueError):
        return _fallback(default_agent, "Failed to parse routing")
    return RouteDecision(
        target_agent=target,
        reasoning=str(parsed.get("reasoning") or ""),
        confidence=min(1.0, max(0.0, confidence)),
    )


async def route_message(
    provider: ModelProvider,
    roster: Sequence[AgentConfig],
    message: str,
    company_id: str,
    context: dict[str, Any] | None = None,
) -> RouteDecision:
    """Classify ``message`` to an agent name. Never raises."""
    settings = get_settings()
    default_agent = settings.default_agent
    context_suffix = f"\n\nAdditional context: {json.dumps(context)}" if context else ""
    prompt = f'Route this message:\n\n"{message}"{context_suffix}'
    try:
        response = await provider.generate(
            model=settings.routing_model,
            system=build_routing_prompt(
                roster,
                default_agent=default_agent,
                relationship_agent=settings.relationship_agent,
            ),
            messages=[Turn(role="user", content=prompt)],
            tools=None,
            temperature=settings.routing_temperature,
            max_tokens=settings.routing_max_tokens,
        )
    except ProviderError:
        logger.exception("Routing call failed for company %s", company_id)
        return _fallback(default_agent, "Routing failed")

    text = ""
    for block in response.content:
        match block:
            case TextBlock(text=chunk):
                text = chunk
                break
            case ToolUseBlock():
                continue
    if not text.strip():
        return _fallback(default_agent, "Routing failed")

    decision = parse_route(
        text,
        default_agent=default_agent,
        known_agents={agent.name for agent in roster},
    )
    logger.info(
        "Routed message for %s to %s (%.2f)",
        company_id,
        decision.target_agent,
        decision.confidence,
    )
    return decision
