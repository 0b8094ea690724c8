"""Content calendar tools (content strategist)."""

from __future__ import annotations

from typing import Any

from agentdesk.db.queries import now_iso
from agentdesk.ids import new_id
from agentdesk.tools import args as a
from agentdesk.tools.registry import ToolContext, ToolRegistry, schema

CONTENT_TYPES = (
    "blog_post",
    "social_post",
    "email_campaign",
    "website_copy",
    "ad_copy",
    "press_release",
)
PLATFORMS = ("blog", "instagram", "facebook", "linkedin", "x", "email", "website")


def _insert_content(
    ctx: ToolContext,
    *,
    title: str,
    content_type: str,
    platform: str | None,
    body: str,
    status: str,
    scheduled_for: str | None = None,
) -> str:
    content_id = new_id("cnt")
    ctx.conn.execute(
        (
            "INSERT INTO content_calendar(id, company_id, title, content_type, platform, body, "
            "scheduled_for, status, created_by, created_at) VALUES(?,?,?,?,?,?,?,?,?,?)"
        ),
        (
            content_id,
            ctx.company_id,
            title,
            content_type,
            platform,
            body,
            scheduled_for,
            status,
            ctx.agent_name,
            now_iso(),
        ),
    )
    return content_id


async def get_style_dna(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    row = ctx.conn.execute(
        "SELECT * FROM style_profiles WHERE company_id=? LIMIT 1", (ctx.company_id,)
    ).fetchone()
    if row is None:
        return {"error": "No Style DNA profile found for this company"}
    return a.row_dict(row) or {}


async def get_client_history(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    limit = a.integer(args, "limit", 10, low=1, high=50)
    content = ctx.conn.execute(
        "SELECT id, title, content_type, platform, status, created_at FROM content_calendar "
        "WHERE company_id=? ORDER BY created_at DESC LIMIT ?",
        (ctx.company_id, limit),
    ).fetchall()
    deliverables = ctx.conn.execute(
        "SELECT id, kind, title, status, created_at FROM deliverables "
        "WHERE company_id=? ORDER BY created_at DESC LIMIT ?",
        (ctx.company_id, limit),
    ).fetchall()
    return {"content": a.rows(content), "deliverables": a.rows(deliverables)}


async def create_content(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    body = a.required(args, "body")
    content_type = a.text(args, "content_type", "blog_post")
    title = a.text(args, "title", content_type.replace("_", " ").title())
    platform = a.text(args, "platform") or None
    content_id = _insert_content(
        ctx,
        title=title,
        content_type=content_type,
        platform=platform,
        body=body,
        status="draft",
    )
    return {
        "status": "content_created",
        "content": {
            "id": content_id,
            "title": title,
            "content_type": content_type,
            "platform": platform,
            "status": "draft",
        },
    }


async def schedule_content(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    content_id = a.text(args, "content_id")
    scheduled_for = a.required(args, "scheduled_for")
    cursor = ctx.conn.execute(
        "UPDATE content_calendar SET scheduled_for=?, status='pending_approval' "
        "WHERE id=? AND company_id=?",
        (scheduled_for, content_id, ctx.company_id),
    )
    if not cursor.rowcount:
        return {"error": f"Content {content_id} not found"}
    return {
        "status": "content_scheduled",
        "content": {"id": content_id, "scheduled_for": scheduled_for, "status": "pending_approval"},
        "note": "Scheduled content publishes only after operator approval.",
    }


async def repurpose_content(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    source_id = a.text(args, "content_id")
    source = ctx.conn.execute(
        "SELECT * FROM content_calendar WHERE id=? AND company_id=?",
        (source_id, ctx.company_id),
    ).fetchone()
    if source is None:
        return {"error": "Source content not found"}
    formats = a.string_list(args, "target_formats") or ["social_post"]
    return {
        "source": {
            "id": source["id"],
            "title": source["title"],
            "content_type": source["content_type"],
            "body": source["body"],
        },
        "target_formats": formats,
        "note": "Write each version with create_content, adapting length and tone per format.",
    }


async def search_keywords(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    query = a.text(args, "query")
    rows = ctx.conn.execute(
        "SELECT keyword, position, search_volume, url FROM keyword_rankings "
        "WHERE company_id=? AND keyword LIKE ? ORDER BY search_volume DESC LIMIT 25",
        (ctx.company_id, f"%{query}%"),
    ).fetchall()
    return {"keywords": a.rows(rows)}


def register(registry: ToolRegistry) -> None:
    registry.register(
        "get_style_dna",
        "Get the company's Style DNA: tone, vocabulary and do/don't lists.",
        get_style_dna,
    )
    registry.register(
        "get_client_history",
        "List recent content and deliverables produced for this company.",
        get_client_history,
        schema({"limit": {"type": "number"}}),
    )
    registry.register(
        "create_content",
        "Save a content draft (blog, social post, email, copy) to the content calendar.",
        create_content,
        schema(
            {
                "title": {"type": "string"},
                "content_type": {"type": "string", "enum": list(CONTENT_TYPES)},
                "platform": {"type": "string", "enum": list(PLATFORMS)},
                "body": {"type": "string"},
            },
            required=["content_type", "body"],
        ),
    )
    registry.register(
        "schedule_content",
        "Propose a publish time for drafted content; it waits for operator approval.",
        schedule_content,
        schema(
            {
                "content_id": {"type": "string"},
                "scheduled_for": {"type": "string", "description": "ISO datetime"},
            },
            required=["content_id", "scheduled_for"],
        ),
    )
    registry.register(
        "repurpose_content",
        "Load an existing piece of content to rewrite it for other formats.",
        repurpose_content,
        schema(
            {
                "content_id": {"type": "string"},
                "target_formats": {"type": "array", "items": {"type": "string"}},
            },
            required=["content_id"],
        ),
    )
    registry.register(
        "search_keywords",
        "Search tracked keywords for this company by text.",
        search_keywords,
        schema({"query": {"type": "string"}}, required=["query"]),
    )
