"""Tool executor: every outcome becomes a string the model can read."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

from agentdesk.errors import ToolError
from agentdesk.tools.registry import ToolContext, ToolRegistry

logger = logging.getLogger(__name__)


def error_payload(message: str) -> str:
    return json.dumps({"error": message})


class ToolRuntime:
    """Executes tools from ``registry``; ``allowed`` narrows it to one agent's tool set."""

    def __init__(self, registry: ToolRegistry, allowed: Iterable[str] | None = None) -> None:
        self.registry = registry
        self.allowed = frozenset(allowed) if allowed is not None else None

    async def execute(self, tool_name: str, arguments: object, ctx: ToolContext) -> str:
        tool = self.registry.get(tool_name)
        if tool is None or (self.allowed is not None and tool_name not in self.allowed):
            logger.warning("Tool not found: %s (agent=%s)", tool_name, ctx.agent_name)
            return error_payload(f'Tool "{tool_name}" not found')

        args: dict[str, Any] = arguments if isinstance(arguments, dict) else {}
        try:
            result = await tool.handler(args, ctx)
            return json.dumps(result, default=str)
        except ToolError as exc:
            logger.info("Tool %s rejected input: %s", tool_name, exc)
            return error_payload(str(exc))
        except Exception as exc:
            logger.exception(
                "Tool execution failed: %s (agent=%s company=%s)",
                tool_name,
                ctx.agent_name,
                ctx.company_id,
            )
            return error_payload(f"Tool execution failed: {exc}")
