"""Search and site health tools (SEO specialist)."""

from __future__ import annotations

import re
from typing import Any

from agentdesk.db.queries import now_iso
from agentdesk.ids import new_id
from agentdesk.tools import args as a
from agentdesk.tools.registry import ToolContext, ToolRegistry, schema

_WORD_RE = re.compile(r"[a-z0-9']+")


def _company_url(ctx: ToolContext) -> str:
    row = ctx.conn.execute(
        "SELECT website_url FROM companies WHERE id=?", (ctx.company_id,)
    ).fetchone()
    return str(row["website_url"]) if row and row["website_url"] else ""


def _queue_audit(ctx: ToolContext, url: str, audit_type: str) -> str:
    audit_id = new_id("seo")
    ctx.conn.execute(
        "INSERT INTO seo_audits(id, company_id, url, audit_type, created_at) VALUES(?,?,?,?,?)",
        (audit_id, ctx.company_id, url, audit_type, now_iso()),
    )
    return audit_id


async def audit_website(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    url = a.text(args, "url") or _company_url(ctx)
    if not url:
        return {"error": "No url given and the company has no website on file"}
    audit_id = _queue_audit(ctx, url, a.text(args, "audit_type", "full"))
    return {
        "status": "audit_queued",
        "audit_id": audit_id,
        "url": url,
        "note": "Results are available once the audit runs.",
    }


async def check_page_speed(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    url = a.text(args, "url") or _company_url(ctx)
    if not url:
        return {"error": "url is required"}
    audit_id = _queue_audit(ctx, url, "page_speed")
    return {
        "status": "pending",
        "audit_id": audit_id,
        "url": url,
        "device": a.text(args, "device", "mobile"),
    }


async def track_keywords(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    keywords = a.string_list(args, "keywords")
    if not keywords:
        return {"error": "keywords is required"}
    now = now_iso()
    url = a.text(args, "url") or None
    ctx.conn.executemany(
        "INSERT INTO keyword_rankings(id, company_id, keyword, url, tracked_at) VALUES(?,?,?,?,?)",
        [(new_id("kwr"), ctx.company_id, keyword, url, now) for keyword in keywords],
    )
    return {"status": "keywords_added", "count": len(keywords)}


async def get_keyword_rankings(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    keyword = a.text(args, "keyword")
    query = (
        "SELECT keyword, position, search_volume, url, tracked_at FROM keyword_rankings "
        "WHERE company_id=?"
    )
    params: list[Any] = [ctx.company_id]
    if keyword:
        query += " AND keyword=?"
        params.append(keyword)
    query += " ORDER BY tracked_at DESC LIMIT ?"
    params.append(a.integer(args, "limit", 50, low=1, high=200))
    return {"rankings": a.rows(ctx.conn.execute(query, params).fetchall())}


async def analyze_competitors_seo(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    competitors = a.rows(
        ctx.conn.execute(
            "SELECT id, name, website_url, notes FROM competitors WHERE company_id=?",
            (ctx.company_id,),
        ).fetchall()
    )
    return {"competitors": competitors, "count": len(competitors)}


async def check_broken_links(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    url = a.text(args, "url") or _company_url(ctx)
    if not url:
        return {"error": "url is required"}
    audit_id = _queue_audit(ctx, url, "broken_links")
    return {"status": "pending", "audit_id": audit_id, "url": url}


async def generate_seo_report(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    audits = a.rows(
        ctx.conn.execute(
            "SELECT url, audit_type, score, status, created_at FROM seo_audits "
            "WHERE company_id=? ORDER BY created_at DESC LIMIT 5",
            (ctx.company_id,),
        ).fetchall()
    )
    rankings = a.rows(
        ctx.conn.execute(
            "SELECT keyword, position, search_volume FROM keyword_rankings "
            "WHERE company_id=? ORDER BY tracked_at DESC LIMIT 50",
            (ctx.company_id,),
        ).fetchall()
    )
    ranked = [row for row in rankings if row["position"] is not None]
    top_10 = sum(1 for row in ranked if row["position"] <= 10)
    avg = round(sum(row["position"] for row in ranked) / len(ranked), 1) if ranked else None
    return {
        "audits": audits,
        "keywords_tracked": len(rankings),
        "keywords_in_top_10": top_10,
        "average_position": avg,
        "rankings": rankings,
    }


async def optimize_content(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    body = a.text(args, "content")
    keyword = a.text(args, "target_keyword").lower()
    words = _WORD_RE.findall(body.lower())
    hits = body.lower().count(keyword) if keyword else 0
    density = round(hits * max(1, len(keyword.split())) / len(words) * 100, 2) if words else 0.0
    suggestions: list[str] = []
    if len(words) < 300:
        suggestions.append("Expand to at least 300 words")
    if keyword and hits == 0:
        suggestions.append(f'Use "{keyword}" at least once, ideally in the first paragraph')
    elif density > 3:
        suggestions.append("Keyword density is above 3%; reduce repetition")
    return {
        "word_count": len(words),
        "keyword_occurrences": hits,
        "keyword_density_pct": density,
        "suggestions": suggestions,
    }


def register(registry: ToolRegistry) -> None:
    registry.register(
        "audit_website",
        "Queue a technical SEO audit of a URL (defaults to the company site).",
        audit_website,
        schema(
            {
                "url": {"type": "string"},
                "audit_type": {"type": "string", "enum": ["full", "technical", "content"]},
            }
        ),
    )
    registry.register(
        "check_page_speed",
        "Queue a page speed check for a URL.",
        check_page_speed,
        schema(
            {
                "url": {"type": "string"},
                "device": {"type": "string", "enum": ["mobile", "desktop"]},
            }
        ),
    )
    registry.register(
        "track_keywords",
        "Start tracking search rankings for keywords.",
        track_keywords,
        schema(
            {
                "keywords": {"type": "array", "items": {"type": "string"}},
                "url": {"type": "string"},
            },
            required=["keywords"],
        ),
    )
    registry.register(
        "get_keyword_rankings",
        "Get current search positions for tracked keywords.",
        get_keyword_rankings,
        schema({"keyword": {"type": "string"}, "limit": {"type": "number"}}),
    )
    registry.register(
        "analyze_competitors_seo",
        "List known competitors and their sites for SEO comparison.",
        analyze_competitors_seo,
    )
    registry.register(
        "check_broken_links",
        "Queue a broken link crawl for a URL.",
        check_broken_links,
        schema({"url": {"type": "string"}}),
    )
    registry.register(
        "generate_seo_report",
        "Summarize recent audits and keyword positions.",
        generate_seo_report,
    )
    registry.register(
        "optimize_content",
        "Score a draft for word count and keyword usage and suggest fixes.",
        optimize_content,
        schema(
            {
                "content": {"type": "string"},
                "target_keyword": {"type": "string"},
            },
            required=["content"],
        ),
    )
