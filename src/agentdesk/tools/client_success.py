"""Client relationship tools (client success manager)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from agentdesk.memory.service import put_memory
from agentdesk.tools import args as a
from agentdesk.tools.approvals import pending, request_approval
from agentdesk.tools.registry import ToolContext, ToolRegistry, schema

SENTIMENTS = ("positive", "neutral", "negative")


def _signals(ctx: ToolContext) -> dict[str, Any]:
    review = ctx.conn.execute(
        "SELECT AVG(rating) AS avg_rating, COUNT(*) AS count FROM reviews WHERE company_id=?",
        (ctx.company_id,),
    ).fetchone()
    projects = ctx.conn.execute(
        (
            "SELECT COUNT(*) AS total, "
            "SUM(CASE WHEN status='completed' THEN 1 ELSE 0 END) AS completed, "
            "SUM(CASE WHEN status='on_hold' THEN 1 ELSE 0 END) AS on_hold "
            "FROM projects WHERE company_id=?"
        ),
        (ctx.company_id,),
    ).fetchone()
    since = (datetime.now(UTC) - timedelta(days=30)).isoformat()
    activity = ctx.conn.execute(
        "SELECT COUNT(*) AS count FROM agent_activity WHERE company_id=? AND created_at>=?",
        (ctx.company_id, since),
    ).fetchone()
    negative_feedback = ctx.conn.execute(
        "SELECT COUNT(*) AS count FROM agent_memory WHERE company_id=? "
        "AND memory_type='feedback' AND content LIKE '[negative]%'",
        (ctx.company_id,),
    ).fetchone()
    return {
        "avg_rating": float(review["avg_rating"]) if review["avg_rating"] is not None else None,
        "review_count": int(review["count"]),
        "projects_total": int(projects["total"] or 0),
        "projects_completed": int(projects["completed"] or 0),
        "projects_on_hold": int(projects["on_hold"] or 0),
        "activity_30d": int(activity["count"]),
        "negative_feedback": int(negative_feedback["count"]),
    }


def _satisfaction(signals: dict[str, Any]) -> int:
    score = 70.0
    if signals["avg_rating"] is not None:
        score += (signals["avg_rating"] - 3.5) * 10
    if signals["projects_total"]:
        score += (signals["projects_completed"] / signals["projects_total"] - 0.5) * 20
    score -= signals["projects_on_hold"] * 5
    score -= signals["negative_feedback"] * 7
    return int(max(0, min(100, round(score))))


async def get_client_activity(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    days = a.integer(args, "days", 30, low=1, high=365)
    since = (datetime.now(UTC) - timedelta(days=days)).isoformat()
    rows = ctx.conn.execute(
        "SELECT a.action_type, a.description, a.created_at, g.name AS agent "
        "FROM agent_activity a LEFT JOIN agents g ON g.id = a.agent_id "
        "WHERE a.company_id=? AND a.created_at>=? ORDER BY a.created_at DESC LIMIT 50",
        (ctx.company_id, since),
    ).fetchall()
    return {"days": days, "activity": a.rows(rows)}


async def calculate_satisfaction_score(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    signals = _signals(ctx)
    return {"score": _satisfaction(signals), "signals": signals}


async def send_recap_email(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    subject = a.text(args, "subject", "Monthly recap")
    notification_id = request_approval(
        ctx,
        title=f"Client recap: {subject}",
        body=a.text(args, "body"),
        channel="email",
        metadata={"action": "recap_email", "subject": subject},
    )
    return pending(notification_id, "Recap email queued for operator review before sending.")


async def check_renewal_dates(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    company = ctx.conn.execute(
        "SELECT renewal_date FROM companies WHERE id=?", (ctx.company_id,)
    ).fetchone()
    invoices = ctx.conn.execute(
        "SELECT id, amount, status, issued_at, paid_at FROM invoices "
        "WHERE company_id=? ORDER BY issued_at DESC LIMIT 10",
        (ctx.company_id,),
    ).fetchall()
    return {
        "renewal_date": company["renewal_date"] if company else None,
        "invoices": a.rows(invoices),
    }


async def get_churn_risk(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    signals = _signals(ctx)
    factors: list[str] = []
    if signals["activity_30d"] == 0:
        factors.append("No agent activity in the last 30 days")
    if signals["avg_rating"] is not None and signals["avg_rating"] < 3.5:
        factors.append("Average review rating below 3.5")
    if signals["projects_on_hold"]:
        factors.append(f"{signals['projects_on_hold']} project(s) on hold")
    if signals["negative_feedback"]:
        factors.append(f"{signals['negative_feedback']} negative feedback note(s)")
    open_invoices = ctx.conn.execute(
        "SELECT COUNT(*) AS count FROM invoices WHERE company_id=? AND status='overdue'",
        (ctx.company_id,),
    ).fetchone()
    if open_invoices["count"]:
        factors.append(f"{open_invoices['count']} overdue invoice(s)")
    level = "high" if len(factors) >= 3 else "medium" if factors else "low"
    return {"risk": level, "factors": factors, "satisfaction_score": _satisfaction(signals)}


async def schedule_touchpoint(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    touchpoint = a.text(args, "touchpoint_type", "check_in")
    days = a.integer(args, "days_from_now", 7, low=0, high=365)
    when = (datetime.now(UTC) + timedelta(days=days)).date().isoformat()
    notification_id = request_approval(
        ctx,
        title=f"Touchpoint: {touchpoint} on {when}",
        body=a.text(args, "notes") or f"Planned {touchpoint} with the client.",
        metadata={"action": "touchpoint", "touchpoint_type": touchpoint, "date": when},
    )
    return pending(notification_id, "Touchpoint proposed to the operator.", date=when)


async def collect_feedback(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    feedback = a.required(args, "feedback")
    sentiment = a.text(args, "sentiment", "neutral").lower()
    if sentiment not in SENTIMENTS:
        sentiment = "neutral"
    topic = a.text(args, "topic", "general")
    memory_id, created = put_memory(
        ctx.conn,
        agent_id=ctx.agent_id,
        company_id=ctx.company_id,
        memory_type="feedback",
        content=f"[{sentiment}] {topic}: {feedback}",
        source="feedback",
    )
    return {
        "status": "feedback_recorded" if created else "already_recorded",
        "memory_id": memory_id,
        "sentiment": sentiment,
    }


def register(registry: ToolRegistry) -> None:
    registry.register(
        "get_client_activity",
        "Recent agent activity for this client.",
        get_client_activity,
        schema({"days": {"type": "number", "description": "Lookback window (default 30)"}}),
    )
    registry.register(
        "calculate_satisfaction_score",
        "Score client satisfaction (0-100) from reviews, projects and feedback.",
        calculate_satisfaction_score,
    )
    registry.register(
        "send_recap_email",
        "Queue a recap email to the client for operator review.",
        send_recap_email,
        schema(
            {"subject": {"type": "string"}, "body": {"type": "string"}},
            required=["subject", "body"],
        ),
    )
    registry.register(
        "check_renewal_dates",
        "Contract renewal date and recent invoices.",
        check_renewal_dates,
    )
    registry.register(
        "get_churn_risk",
        "Assess churn risk from engagement, sentiment and billing signals.",
        get_churn_risk,
    )
    registry.register(
        "schedule_touchpoint",
        "Propose a client touchpoint (check-in, QBR, call) for operator approval.",
        schedule_touchpoint,
        schema(
            {
                "touchpoint_type": {
                    "type": "string",
                    "enum": ["check_in", "quarterly_review", "call", "gift"],
                },
                "days_from_now": {"type": "number"},
                "notes": {"type": "string"},
            }
        ),
    )
    registry.register(
        "collect_feedback",
        "Record client feedback with its sentiment and topic.",
        collect_feedback,
        schema(
            {
                "feedback": {"type": "string"},
                "sentiment": {"type": "string", "enum": list(SENTIMENTS)},
                "topic": {"type": "string"},
            },
            required=["feedback"],
        ),
    )
