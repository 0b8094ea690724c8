import json

import pytest

from agentdesk.errors import ToolError
from agentdesk.tools.registry import ToolContext, ToolRegistry
from agentdesk.tools.runtime import ToolRuntime


def _ctx(conn) -> ToolContext:
    return ToolContext(agent_id="agt_1", agent_name="kai", company_id="cmp_1", conn=conn)


@pytest.mark.asyncio
async def test_unknown_tool_returns_error_payload(conn) -> None:
    output = await ToolRuntime(ToolRegistry()).execute("teleport", {}, _ctx(conn))
    assert json.loads(output) == {"error": 'Tool "teleport" not found'}


@pytest.mark.asyncio
async def test_handler_exception_is_captured(conn) -> None:
    registry = ToolRegistry()

    @registry.tool("explode", "Always fails")
    async def explode(args, ctx):
        raise RuntimeError("kaboom")

    output = await ToolRuntime(registry).execute("explode", {}, _ctx(conn))
    assert json.loads(output) == {"error": "Tool execution failed: kaboom"}


@pytest.mark.asyncio
async def test_tool_error_message_passes_through(conn) -> None:
    registry = ToolRegistry()

    @registry.tool("strict", "Needs input")
    async def strict(args, ctx):
        raise ToolError("url is required")

    output = await ToolRuntime(registry).execute("strict", {}, _ctx(conn))
    assert json.loads(output) == {"error": "url is required"}


@pytest.mark.asyncio
async def test_result_is_json_and_non_dict_args_become_empty(conn) -> None:
    registry = ToolRegistry()
    seen: list[dict] = []

    @registry.tool("echo", "Echo")
    async def echo(args, ctx):
        seen.append(args)
        return {"company": ctx.company_id, "when": ctx.agent_name}

    output = await ToolRuntime(registry).execute("echo", ["not", "a", "dict"], _ctx(conn))
    assert json.loads(output) == {"company": "cmp_1", "when": "kai"}
    assert seen == [{}]
