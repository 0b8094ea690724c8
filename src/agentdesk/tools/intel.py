"""Competitive intelligence tools."""

from __future__ import annotations

import json
import sqlite3
from typing import Any

from agentdesk.db.queries import now_iso
from agentdesk.ids import new_id
from agentdesk.tools import args as a
from agentdesk.tools.registry import ToolContext, ToolRegistry, schema


def _competitor(ctx: ToolContext, name_or_id: str) -> sqlite3.Row | None:
    return ctx.conn.execute(
        "SELECT * FROM competitors WHERE company_id=? AND (id=? OR lower(name)=lower(?)) LIMIT 1",
        (ctx.company_id, name_or_id, name_or_id),
    ).fetchone()


def _snapshots(ctx: ToolContext, snapshot_type: str, competitor: str = "") -> list[dict[str, Any]]:
    query = (
        "SELECT c.name, s.data_json, s.captured_at FROM competitor_snapshots s "
        "JOIN competitors c ON c.id = s.competitor_id "
        "WHERE s.company_id=? AND s.snapshot_type=?"
    )
    params: list[Any] = [ctx.company_id, snapshot_type]
    if competitor:
        query += " AND (c.id=? OR lower(c.name)=lower(?))"
        params.extend([competitor, competitor])
    query += " ORDER BY s.captured_at DESC LIMIT 20"
    return a.rows(ctx.conn.execute(query, params).fetchall())


async def scrape_competitor_site(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    name = a.text(args, "competitor")
    url = a.text(args, "url")
    row = _competitor(ctx, name) if name else None
    if row is None:
        if not name or not url:
            return {"error": "Unknown competitor; give both competitor and url to add one"}
        competitor_id = new_id("cmpt")
        ctx.conn.execute(
            "INSERT INTO competitors(id, company_id, name, website_url, created_at) "
            "VALUES(?,?,?,?,?)",
            (competitor_id, ctx.company_id, name, url, now_iso()),
        )
    else:
        competitor_id = str(row["id"])
        url = url or str(row["website_url"] or "")
    snapshot_id = new_id("snap")
    ctx.conn.execute(
        (
            "INSERT INTO competitor_snapshots(id, competitor_id, company_id, snapshot_type, "
            "data_json, captured_at) VALUES(?,?,?,'site_scrape',?,?)"
        ),
        (
            snapshot_id,
            competitor_id,
            ctx.company_id,
            json.dumps({"url": url, "status": "queued"}),
            now_iso(),
        ),
    )
    return {"status": "scrape_queued", "competitor_id": competitor_id, "snapshot_id": snapshot_id}


async def get_competitor_social(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    return {"snapshots": _snapshots(ctx, "social", a.text(args, "competitor"))}


async def search_ad_library(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    return {
        "query": a.text(args, "query"),
        "snapshots": _snapshots(ctx, "ads", a.text(args, "competitor")),
    }


async def track_competitor_pricing(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    return {"snapshots": _snapshots(ctx, "pricing", a.text(args, "competitor"))}


async def get_competitor_jobs(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    return {"snapshots": _snapshots(ctx, "jobs", a.text(args, "competitor"))}


async def generate_competitive_brief(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    competitors = a.rows(
        ctx.conn.execute(
            "SELECT id, name, website_url, notes FROM competitors WHERE company_id=?",
            (ctx.company_id,),
        ).fetchall()
    )
    counts = ctx.conn.execute(
        "SELECT snapshot_type, COUNT(*) AS count FROM competitor_snapshots "
        "WHERE company_id=? GROUP BY snapshot_type",
        (ctx.company_id,),
    ).fetchall()
    return {
        "competitors": competitors,
        "snapshot_counts": {row["snapshot_type"]: row["count"] for row in counts},
        "focus": a.text(args, "focus", "overall landscape"),
    }


async def identify_market_gaps(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    ours = {
        str(row["project_type"])
        for row in ctx.conn.execute(
            "SELECT DISTINCT project_type FROM projects WHERE company_id=? "
            "AND project_type IS NOT NULL",
            (ctx.company_id,),
        ).fetchall()
    }
    offered: dict[str, int] = {}
    for snap in _snapshots(ctx, "services"):
        data = snap.get("data") or {}
        for service in data.get("services", []) if isinstance(data, dict) else []:
            offered[str(service)] = offered.get(str(service), 0) + 1
    return {
        "competitor_services": offered,
        "our_services": sorted(ours),
        "gaps": sorted(service for service in offered if service not in ours),
    }


def register(registry: ToolRegistry) -> None:
    competitor = {"competitor": {"type": "string", "description": "Competitor name or id"}}
    registry.register(
        "scrape_competitor_site",
        "Queue a scrape of a competitor's website, adding the competitor if new.",
        scrape_competitor_site,
        schema({**competitor, "url": {"type": "string"}}, required=["competitor"]),
    )
    registry.register(
        "get_competitor_social",
        "Captured social activity for competitors.",
        get_competitor_social,
        schema(competitor),
    )
    registry.register(
        "search_ad_library",
        "Captured ad campaigns for competitors.",
        search_ad_library,
        schema({**competitor, "query": {"type": "string"}}),
    )
    registry.register(
        "track_competitor_pricing",
        "Captured pricing pages for competitors.",
        track_competitor_pricing,
        schema(competitor),
    )
    registry.register(
        "get_competitor_jobs",
        "Captured job postings for competitors.",
        get_competitor_jobs,
        schema(competitor),
    )
    registry.register(
        "generate_competitive_brief",
        "Summarize known competitors and captured intelligence.",
        generate_competitive_brief,
        schema({"focus": {"type": "string"}}),
    )
    registry.register(
        "identify_market_gaps",
        "Compare competitor services with the client's project history.",
        identify_market_gaps,
    )
