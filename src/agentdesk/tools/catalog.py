"""Default tool catalog."""

from __future__ import annotations

from agentdesk.tools import (
    analytics,
    client_success,
    content,
    design,
    intel,
    projects,
    reputation,
    sales,
    seo,
    shared,
    social,
)
from agentdesk.tools.registry import ToolRegistry

TOOL_MODULES = (
    shared,
    projects,
    sales,
    content,
    design,
    seo,
    social,
    reputation,
    intel,
    analytics,
    client_success,
)

# Tools whose outward effect is deferred to the operator.
APPROVAL_GATED_TOOLS = frozenset(
    {
        "notify_operator",
        "notify_client",
        "send_email",
        "generate_proposal",
        "generate_canva_design",
        "send_review_request",
        "alert_operator",
        "send_recap_email",
        "schedule_touchpoint",
    }
)


def build_default_registry() -> ToolRegistry:
    registry = ToolRegistry()
    for module in TOOL_MODULES:
        module.register(registry)
    return registry
