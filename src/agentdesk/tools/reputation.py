"""Review monitoring and response tools (reputation manager)."""

from __future__ import annotations

from typing import Any

from agentdesk.tools import args as a
from agentdesk.tools.approvals import pending, request_approval
from agentdesk.tools.registry import ToolContext, ToolRegistry, schema

REVIEW_PLATFORMS = ("google", "yelp", "facebook", "healthgrades")


async def get_new_reviews(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    query = "SELECT * FROM reviews WHERE company_id=? AND response_status='none'"
    params: list[Any] = [ctx.company_id]
    platform = a.text(args, "platform").lower()
    if platform:
        query += " AND platform=?"
        params.append(platform)
    max_rating = a.integer(args, "max_rating", 5, low=1, high=5)
    query += " AND rating<=? ORDER BY posted_at DESC LIMIT 25"
    params.append(max_rating)
    reviews = a.rows(ctx.conn.execute(query, params).fetchall())
    return {"reviews": reviews, "count": len(reviews)}


async def draft_review_response(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    review_id = a.text(args, "review_id")
    response = a.required(args, "response")
    cursor = ctx.conn.execute(
        "UPDATE reviews SET response_draft=?, response_status='draft' "
        "WHERE id=? AND company_id=?",
        (response, review_id, ctx.company_id),
    )
    if not cursor.rowcount:
        return {"error": f"Review {review_id} not found"}
    return {
        "status": "response_drafted",
        "review_id": review_id,
        "note": "The response is saved as a draft; the operator publishes it.",
    }


async def get_sentiment_trends(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    rows = ctx.conn.execute(
        (
            "SELECT substr(posted_at, 1, 7) AS month, COUNT(*) AS count, "
            "AVG(rating) AS avg_rating FROM reviews WHERE company_id=? "
            "GROUP BY month ORDER BY month DESC LIMIT ?"
        ),
        (ctx.company_id, a.integer(args, "months", 6, low=1, high=24)),
    ).fetchall()
    return {
        "trend": [
            {
                "month": row["month"],
                "count": row["count"],
                "avg_rating": round(row["avg_rating"], 2),
            }
            for row in rows
        ]
    }


async def send_review_request(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    customer = a.required(args, "customer_email")
    platform = a.text(args, "platform", "google")
    notification_id = request_approval(
        ctx,
        title=f"Review request to {customer}",
        body=a.text(args, "message") or f"Invite {customer} to leave a {platform} review.",
        channel="email",
        metadata={"action": "review_request", "to": customer, "platform": platform},
    )
    return pending(notification_id, "Review request queued for operator approval.")


async def get_competitor_ratings(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    rows = ctx.conn.execute(
        (
            "SELECT c.name, s.data_json, s.captured_at FROM competitor_snapshots s "
            "JOIN competitors c ON c.id = s.competitor_id "
            "WHERE s.company_id=? AND s.snapshot_type='ratings' ORDER BY s.captured_at DESC"
        ),
        (ctx.company_id,),
    ).fetchall()
    return {"ratings": a.rows(rows)}


async def generate_reputation_report(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    stats = ctx.conn.execute(
        (
            "SELECT platform, COUNT(*) AS count, AVG(rating) AS avg_rating, "
            "SUM(CASE WHEN response_status='none' THEN 1 ELSE 0 END) AS unanswered "
            "FROM reviews WHERE company_id=? GROUP BY platform"
        ),
        (ctx.company_id,),
    ).fetchall()
    return {
        "platforms": {
            row["platform"]: {
                "count": row["count"],
                "avg_rating": round(row["avg_rating"], 2),
                "unanswered": row["unanswered"],
            }
            for row in stats
        }
    }


async def alert_operator(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    review_id = a.text(args, "review_id")
    notification_id = request_approval(
        ctx,
        title=a.text(args, "title", "Reputation alert"),
        body=a.text(args, "details"),
        metadata={"urgency": "high", "review_id": review_id or None},
    )
    return pending(notification_id, "Operator alerted.")


def register(registry: ToolRegistry) -> None:
    registry.register(
        "get_new_reviews",
        "List reviews that have no response yet, optionally by platform or max rating.",
        get_new_reviews,
        schema(
            {
                "platform": {"type": "string", "enum": list(REVIEW_PLATFORMS)},
                "max_rating": {"type": "number"},
            }
        ),
    )
    registry.register(
        "draft_review_response",
        "Save a draft response to a review. Never confirm or deny patient status.",
        draft_review_response,
        schema(
            {
                "review_id": {"type": "string"},
                "response": {"type": "string"},
            },
            required=["review_id", "response"],
        ),
    )
    registry.register(
        "get_sentiment_trends",
        "Monthly review count and average rating.",
        get_sentiment_trends,
        schema({"months": {"type": "number"}}),
    )
    registry.register(
        "send_review_request",
        "Queue a review invitation to a customer for operator approval.",
        send_review_request,
        schema(
            {
                "customer_email": {"type": "string"},
                "platform": {"type": "string", "enum": list(REVIEW_PLATFORMS)},
                "message": {"type": "string"},
            },
            required=["customer_email"],
        ),
    )
    registry.register(
        "get_competitor_ratings",
        "Latest captured review ratings for competitors.",
        get_competitor_ratings,
    )
    registry.register(
        "generate_reputation_report",
        "Review volume, rating and response backlog per platform.",
        generate_reputation_report,
    )
    registry.register(
        "alert_operator",
        "Alert the operator right away, e.g. for a 1-star review.",
        alert_operator,
        schema(
            {
                "title": {"type": "string"},
                "details": {"type": "string"},
                "review_id": {"type": "string"},
            },
            required=["details"],
        ),
    )
