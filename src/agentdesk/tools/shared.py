"""Tools available to every agent: client facts, memory, escalation."""

from __future__ import annotations

from typing import Any

from agentdesk.db.queries import get_company
from agentdesk.memory.service import put_memory
from agentdesk.memory.types import MemoryType
from agentdesk.tools import args as a
from agentdesk.tools.approvals import CLIENT, pending, request_approval
from agentdesk.tools.registry import ToolContext, ToolRegistry, schema

PROJECT_STATUSES = ("planning", "active", "in_progress", "review", "completed", "on_hold")


async def get_brand_kit(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    row = ctx.conn.execute(
        "SELECT * FROM brand_kits WHERE company_id=? LIMIT 1", (ctx.company_id,)
    ).fetchone()
    if row is None:
        return {"error": "No brand kit found for this company"}
    return a.row_dict(row) or {}


async def get_company_info(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    row = get_company(ctx.conn, ctx.company_id)
    if row is None:
        return {"error": f"Company {ctx.company_id} not found"}
    return a.row_dict(row) or {}


async def notify_operator(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    title = a.text(args, "title", "Agent escalation")
    urgency = a.text(args, "urgency", "medium")
    notification_id = request_approval(
        ctx,
        title=title,
        body=a.text(args, "body"),
        metadata={"urgency": urgency},
    )
    return pending(notification_id, "The operator has been notified.", urgency=urgency)


async def notify_client(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    notification_id = request_approval(
        ctx,
        title=a.text(args, "title", "Update from your team"),
        body=a.text(args, "body"),
        channel="portal",
        recipient_type=CLIENT,
    )
    return pending(notification_id, "Client notice queued for review before delivery.")


async def save_memory(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    memory_type = a.text(args, "memory_type", MemoryType.FACT.value).lower()
    if memory_type not in {item.value for item in MemoryType}:
        return {"error": f"Unknown memory_type: {memory_type}"}
    content = a.required(args, "content")
    memory_id, created = put_memory(
        ctx.conn,
        agent_id=ctx.agent_id,
        company_id=ctx.company_id,
        memory_type=memory_type,
        content=content,
        source="conversation",
    )
    if not created:
        return {"status": "already_remembered", "memory_id": memory_id}
    return {"status": "memory_saved", "memory_id": memory_id}


async def search_past_projects(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    limit = a.integer(args, "limit", 10, low=1, high=50)
    status = a.text(args, "status")
    query = (
        "SELECT id, name, project_type, status, due_date, created_at FROM projects "
        "WHERE company_id=?"
    )
    params: list[Any] = [ctx.company_id]
    if status:
        query += " AND status=?"
        params.append(status)
    keyword = a.text(args, "query")
    if keyword:
        query += " AND (name LIKE ? OR description LIKE ?)"
        params.extend([f"%{keyword}%", f"%{keyword}%"])
    query += " ORDER BY created_at DESC LIMIT ?"
    params.append(limit)
    projects = a.rows(ctx.conn.execute(query, params).fetchall())
    return {"projects": projects, "count": len(projects)}


def register(registry: ToolRegistry) -> None:
    registry.register(
        "get_brand_kit",
        "Retrieve the brand kit for the current company: colors, fonts, logo and voice.",
        get_brand_kit,
    )
    registry.register(
        "get_company_info",
        "Get basic information about the current company.",
        get_company_info,
    )
    registry.register(
        "notify_operator",
        "Escalate to the human operator. Use for decisions that need human judgment.",
        notify_operator,
        schema(
            {
                "title": {"type": "string", "description": "Short notification title"},
                "body": {"type": "string", "description": "Detailed message"},
                "urgency": {"type": "string", "enum": ["low", "medium", "high"]},
            },
            required=["title", "body"],
        ),
    )
    registry.register(
        "notify_client",
        "Queue a portal notification for the client. The operator reviews it first.",
        notify_client,
        schema(
            {
                "title": {"type": "string"},
                "body": {"type": "string"},
            },
            required=["title", "body"],
        ),
    )
    registry.register(
        "save_memory",
        "Remember a fact, preference or instruction about this client for future conversations.",
        save_memory,
        schema(
            {
                "memory_type": {
                    "type": "string",
                    "enum": [item.value for item in MemoryType],
                    "description": "Category of memory",
                },
                "content": {
                    "type": "string",
                    "description": "What to remember, specific and concise",
                },
            },
            required=["memory_type", "content"],
        ),
    )
    registry.register(
        "search_past_projects",
        "Search past or current projects for this company.",
        search_past_projects,
        schema(
            {
                "status": {"type": "string", "enum": list(PROJECT_STATUSES)},
                "query": {"type": "string", "description": "Text to match in name or description"},
                "limit": {"type": "number", "description": "Max results (default 10)"},
            }
        ),
    )
