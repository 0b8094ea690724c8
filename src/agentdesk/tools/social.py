"""Social media tools (social media manager)."""

from __future__ import annotations

from typing import Any

from agentdesk.db.queries import now_iso
from agentdesk.ids import new_id
from agentdesk.tools import args as a
from agentdesk.tools.registry import ToolContext, ToolRegistry, schema

SOCIAL_PLATFORMS = ("instagram", "facebook", "linkedin", "x")

# Industry-average engagement windows, local time.
BEST_POSTING_TIMES: dict[str, list[str]] = {
    "instagram": ["Tue 11:00", "Wed 11:00", "Fri 10:00"],
    "facebook": ["Tue 09:00", "Wed 09:00", "Thu 13:00"],
    "linkedin": ["Tue 08:00", "Wed 10:00", "Thu 09:00"],
    "x": ["Mon 09:00", "Wed 12:00", "Fri 09:00"],
}


async def schedule_post(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    platform = a.text(args, "platform").lower()
    if platform not in SOCIAL_PLATFORMS:
        return {"error": f"Unsupported platform: {platform or '(none)'}"}
    body = a.required(args, "content")
    post_id = new_id("cnt")
    scheduled_for = a.text(args, "scheduled_for") or None
    ctx.conn.execute(
        (
            "INSERT INTO content_calendar(id, company_id, title, content_type, platform, body, "
            "scheduled_for, status, created_by, created_at) "
            "VALUES(?,?,?,'social_post',?,?,?,'pending_approval',?,?)"
        ),
        (
            post_id,
            ctx.company_id,
            a.text(args, "title", f"{platform.title()} post"),
            platform,
            body,
            scheduled_for,
            ctx.agent_name,
            now_iso(),
        ),
    )
    return {
        "status": "post_scheduled",
        "post": {"id": post_id, "platform": platform, "scheduled_for": scheduled_for},
        "note": "Posts publish only after operator approval.",
    }


async def get_engagement_metrics(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    platform = a.text(args, "platform").lower()
    sources = (platform,) if platform else SOCIAL_PLATFORMS
    marks = ",".join("?" for _ in sources)
    rows = ctx.conn.execute(
        (
            "SELECT source, metric, value, period_start, period_end FROM analytics_snapshots "
            f"WHERE company_id=? AND source IN ({marks}) ORDER BY period_end DESC LIMIT 100"
        ),
        (ctx.company_id, *sources),
    ).fetchall()
    return {"metrics": a.rows(rows)}


async def draft_social_reply(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    comment = a.required(args, "comment")
    return {
        "status": "draft",
        "platform": a.text(args, "platform"),
        "comment": comment,
        "tone": a.text(args, "tone", "friendly"),
        "note": "Write the reply in your response; replies are never posted automatically.",
    }


async def find_trending_topics(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    industry = a.text(args, "industry")
    if not industry:
        row = ctx.conn.execute(
            "SELECT industry FROM companies WHERE id=?", (ctx.company_id,)
        ).fetchone()
        industry = str(row["industry"]) if row and row["industry"] else "general"
    return {
        "industry": industry,
        "platform": a.text(args, "platform", "all"),
        "note": "No live trend feed is connected; suggest timely topics from your own knowledge.",
    }


async def get_best_posting_times(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    platform = a.text(args, "platform").lower()
    if platform:
        return {platform: BEST_POSTING_TIMES.get(platform, [])}
    return dict(BEST_POSTING_TIMES)


async def generate_social_report(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    marks = ",".join("?" for _ in SOCIAL_PLATFORMS)
    posts = ctx.conn.execute(
        (
            "SELECT platform, status, COUNT(*) AS count FROM content_calendar "
            f"WHERE company_id=? AND platform IN ({marks}) GROUP BY platform, status"
        ),
        (ctx.company_id, *SOCIAL_PLATFORMS),
    ).fetchall()
    metrics = await get_engagement_metrics({}, ctx)
    by_platform: dict[str, dict[str, int]] = {}
    for row in posts:
        by_platform.setdefault(row["platform"], {})[row["status"]] = int(row["count"])
    return {"posts": by_platform, "engagement": metrics["metrics"]}


def register(registry: ToolRegistry) -> None:
    registry.register(
        "schedule_post",
        "Queue a social post for a platform; it publishes after operator approval.",
        schedule_post,
        schema(
            {
                "platform": {"type": "string", "enum": list(SOCIAL_PLATFORMS)},
                "title": {"type": "string"},
                "content": {"type": "string"},
                "scheduled_for": {"type": "string", "description": "ISO datetime"},
            },
            required=["platform", "content"],
        ),
    )
    registry.register(
        "get_engagement_metrics",
        "Get recent engagement metrics per social platform.",
        get_engagement_metrics,
        schema({"platform": {"type": "string", "enum": list(SOCIAL_PLATFORMS)}}),
    )
    registry.register(
        "draft_social_reply",
        "Prepare a reply to a social comment or DM for review.",
        draft_social_reply,
        schema(
            {
                "platform": {"type": "string"},
                "comment": {"type": "string"},
                "tone": {"type": "string"},
            },
            required=["comment"],
        ),
    )
    registry.register(
        "find_trending_topics",
        "Find trending topics for the client's industry.",
        find_trending_topics,
        schema({"industry": {"type": "string"}, "platform": {"type": "string"}}),
    )
    registry.register(
        "get_best_posting_times",
        "Recommended posting windows per platform.",
        get_best_posting_times,
        schema({"platform": {"type": "string", "enum": list(SOCIAL_PLATFORMS)}}),
    )
    registry.register(
        "generate_social_report",
        "Summarize scheduled posts and engagement across platforms.",
        generate_social_report,
    )
