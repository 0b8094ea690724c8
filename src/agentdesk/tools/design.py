"""Visual design tools (design director)."""

from __future__ import annotations

from typing import Any

from agentdesk.db.queries import now_iso
from agentdesk.ids import new_id
from agentdesk.tools import args as a
from agentdesk.tools.approvals import pending, request_approval
from agentdesk.tools.registry import ToolContext, ToolRegistry, schema

DESIGN_TYPES = (
    "flyer",
    "business_card",
    "social_graphic",
    "banner",
    "brochure",
    "presentation",
    "logo_concept",
)


def _brand(ctx: ToolContext) -> dict[str, Any] | None:
    return a.row_dict(
        ctx.conn.execute(
            "SELECT * FROM brand_kits WHERE company_id=? LIMIT 1", (ctx.company_id,)
        ).fetchone()
    )


def _style(ctx: ToolContext) -> dict[str, Any] | None:
    return a.row_dict(
        ctx.conn.execute(
            "SELECT * FROM style_profiles WHERE company_id=? LIMIT 1", (ctx.company_id,)
        ).fetchone()
    )


async def get_scraped_references(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    references = a.rows(
        ctx.conn.execute(
            "SELECT url, title, summary, images_json FROM scraped_sites "
            "WHERE company_id=? ORDER BY scraped_at DESC",
            (ctx.company_id,),
        ).fetchall()
    )
    return {"references": references, "count": len(references)}


async def generate_canva_design(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    design_type = a.text(args, "design_type", "social_graphic")
    brief = a.required(args, "brief")
    deliverable_id = new_id("dlv")
    ctx.conn.execute(
        (
            "INSERT INTO deliverables(id, company_id, agent_name, kind, title, body, status, "
            "created_at) VALUES(?,?,?,?,?,?,'pending_approval',?)"
        ),
        (
            deliverable_id,
            ctx.company_id,
            ctx.agent_name,
            "design_brief",
            a.text(args, "title", design_type.replace("_", " ").title()),
            brief,
            now_iso(),
        ),
    )
    notification_id = request_approval(
        ctx,
        title=f"Design brief: {design_type}",
        body=brief,
        metadata={
            "action": "design_brief",
            "design_type": design_type,
            "deliverable_id": deliverable_id,
        },
    )
    return pending(
        notification_id,
        "Design brief sent for review. Production starts after approval.",
        deliverable_id=deliverable_id,
    )


async def create_mood_board(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    brand = _brand(ctx) or {}
    style = _style(ctx) or {}
    return {
        "theme": a.text(args, "theme", "brand refresh"),
        "colors": brand.get("colors") or [],
        "fonts": brand.get("fonts") or [],
        "tone": style.get("tone"),
        "keywords": a.string_list(args, "keywords"),
        "note": "Present two or three directions built from these brand inputs.",
    }


async def brand_audit(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    brand = _brand(ctx)
    style = _style(ctx)
    recent = a.rows(
        ctx.conn.execute(
            "SELECT title, content_type, status FROM content_calendar "
            "WHERE company_id=? ORDER BY created_at DESC LIMIT 10",
            (ctx.company_id,),
        ).fetchall()
    )
    gaps: list[str] = []
    if brand is None:
        gaps.append("No brand kit on file")
    else:
        if not brand.get("logo_url"):
            gaps.append("Brand kit has no logo")
        if not brand.get("colors"):
            gaps.append("Brand kit has no color palette")
        if not brand.get("voice"):
            gaps.append("Brand voice is undefined")
    if style is None:
        gaps.append("No Style DNA profile")
    return {"brand_kit": brand, "style_dna": style, "recent_content": recent, "gaps": gaps}


async def search_stock_images(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    return {
        "query": a.text(args, "query"),
        "orientation": a.text(args, "orientation", "any"),
        "count": a.integer(args, "count", 5, low=1, high=20),
        "note": "Stock search is descriptive; include these terms in the design brief.",
    }


def register(registry: ToolRegistry) -> None:
    registry.register(
        "get_scraped_references",
        "List reference websites the client shared, with summaries and images.",
        get_scraped_references,
    )
    registry.register(
        "generate_canva_design",
        "Submit a design brief. It is queued for operator approval before production.",
        generate_canva_design,
        schema(
            {
                "design_type": {"type": "string", "enum": list(DESIGN_TYPES)},
                "title": {"type": "string"},
                "brief": {"type": "string"},
            },
            required=["design_type", "brief"],
        ),
    )
    registry.register(
        "create_mood_board",
        "Assemble mood board inputs from the brand kit and Style DNA.",
        create_mood_board,
        schema(
            {
                "theme": {"type": "string"},
                "keywords": {"type": "array", "items": {"type": "string"}},
            }
        ),
    )
    registry.register(
        "brand_audit",
        "Review brand kit, Style DNA and recent content for consistency gaps.",
        brand_audit,
    )
    registry.register(
        "search_stock_images",
        "Describe stock imagery to use in a design brief.",
        search_stock_images,
        schema(
            {
                "query": {"type": "string"},
                "orientation": {
                    "type": "string",
                    "enum": ["landscape", "portrait", "square", "any"],
                },
                "count": {"type": "number"},
            },
            required=["query"],
        ),
    )
