"""Lead pipeline tools (sales)."""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime, timedelta
from typing import Any

from agentdesk.db.queries import loads_json, now_iso
from agentdesk.ids import new_id
from agentdesk.tools import args as a
from agentdesk.tools.approvals import pending, request_approval
from agentdesk.tools.registry import ToolContext, ToolRegistry, schema

LEAD_STAGES = (
    "new",
    "contacted",
    "qualified",
    "discovery_scheduled",
    "proposal_sent",
    "negotiating",
    "won",
    "lost",
    "nurture",
)


def _lead(ctx: ToolContext, lead_id: str) -> sqlite3.Row | None:
    return ctx.conn.execute(
        "SELECT * FROM leads WHERE id=? AND company_id=?", (lead_id, ctx.company_id)
    ).fetchone()


def _append_note(ctx: ToolContext, lead_id: str, current: object, note: str) -> None:
    notes = loads_json(current, [])
    if not isinstance(notes, list):
        notes = []
    notes.append({"date": now_iso(), "note": note, "agent": ctx.agent_name})
    ctx.conn.execute(
        "UPDATE leads SET notes_json=?, updated_at=? WHERE id=?",
        (json.dumps(notes), now_iso(), lead_id),
    )


async def send_email(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    to = a.text(args, "to")
    subject = a.text(args, "subject")
    body = a.text(args, "body")
    if not to or not subject:
        return {"error": "to and subject are required"}
    notification_id = request_approval(
        ctx,
        title=f"Email draft: {subject}",
        body=f"To: {to}\nSubject: {subject}\n\n{body}",
        channel="email",
        metadata={"action": "email_draft", "to": to, "subject": subject, "email_body": body},
    )
    return pending(notification_id, "Email queued for operator approval before sending.")


async def get_lead_history(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    lead_id = a.text(args, "lead_id")
    email = a.text(args, "email")
    if lead_id:
        row = _lead(ctx, lead_id)
    elif email:
        row = ctx.conn.execute(
            "SELECT * FROM leads WHERE email=? AND company_id=? LIMIT 1", (email, ctx.company_id)
        ).fetchone()
    else:
        return {"error": "Provide either email or lead_id"}
    if row is None:
        return {"error": "Lead not found"}
    followups = ctx.conn.execute(
        "SELECT id, channel, scheduled_for, status FROM followup_sequences "
        "WHERE lead_id=? ORDER BY scheduled_for ASC",
        (row["id"],),
    ).fetchall()
    return {"lead": a.row_dict(row), "followups": a.rows(followups)}


async def score_lead(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    lead_id = a.text(args, "lead_id")
    row = _lead(ctx, lead_id)
    if row is None:
        return {"error": f"Lead {lead_id} not found"}
    score = a.integer(args, "score", int(row["score"]), low=0, high=100)
    stage = a.text(args, "stage") or str(row["stage"])
    if stage not in LEAD_STAGES:
        return {"error": f"Unknown stage: {stage}"}
    ctx.conn.execute(
        "UPDATE leads SET score=?, stage=?, updated_at=? WHERE id=?",
        (score, stage, now_iso(), lead_id),
    )
    note = a.text(args, "notes")
    if note:
        _append_note(ctx, lead_id, row["notes_json"], note)
    return {
        "status": "lead_updated",
        "lead": {"id": lead_id, "name": row["name"], "score": score, "stage": stage},
    }


async def generate_proposal(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    lead_id = a.text(args, "lead_id")
    row = _lead(ctx, lead_id)
    if row is None:
        return {"error": f"Lead {lead_id} not found"}
    services = a.string_list(args, "services")
    budget = a.number(args, "estimated_budget")
    timeline = a.text(args, "timeline", "TBD")
    body = (
        f"Proposal for {row['name']} ({lead_id}).\n"
        f"Services: {', '.join(services) or 'TBD'}\n"
        f"Budget: {f'${budget:,.0f}' if budget is not None else 'TBD'}\n"
        f"Timeline: {timeline}"
    )
    notification_id = request_approval(
        ctx,
        title="Proposal needs approval",
        body=body,
        metadata={
            "action": "proposal_approval",
            "lead_id": lead_id,
            "services": services,
            "estimated_budget": budget,
            "timeline": timeline,
        },
    )
    return pending(notification_id, "Proposal sent to the operator for pricing approval.")


async def schedule_followup(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    lead_id = a.text(args, "lead_id")
    if _lead(ctx, lead_id) is None:
        return {"error": f"Lead {lead_id} not found"}
    days = a.integer(args, "days_from_now", 3, low=0, high=365)
    scheduled_for = (datetime.now(UTC) + timedelta(days=days)).isoformat()
    followup_id = new_id("fup")
    ctx.conn.execute(
        (
            "INSERT INTO followup_sequences(id, lead_id, company_id, channel, message, "
            "scheduled_for, created_at) VALUES(?,?,?,?,?,?,?)"
        ),
        (
            followup_id,
            lead_id,
            ctx.company_id,
            a.text(args, "channel", "email"),
            a.text(args, "message"),
            scheduled_for,
            now_iso(),
        ),
    )
    # Scheduled follow-ups go out only after the operator releases them.
    return {
        "status": "followup_scheduled",
        "followup": {"id": followup_id, "scheduled_for": scheduled_for, "status": "scheduled"},
    }


async def update_pipeline(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    stage = a.text(args, "stage")
    if stage:
        leads = ctx.conn.execute(
            "SELECT id, name, score, stage FROM leads WHERE company_id=? AND stage=? "
            "ORDER BY score DESC",
            (ctx.company_id, stage),
        ).fetchall()
        return {"stage": stage, "leads": a.rows(leads)}
    summary = ctx.conn.execute(
        "SELECT stage, COUNT(*) AS count, AVG(score) AS avg_score FROM leads "
        "WHERE company_id=? GROUP BY stage",
        (ctx.company_id,),
    ).fetchall()
    return {
        "pipeline": {
            row["stage"]: {"count": row["count"], "avg_score": round(row["avg_score"] or 0, 1)}
            for row in summary
        }
    }


def register(registry: ToolRegistry) -> None:
    registry.register(
        "send_email",
        "Draft an email. It goes to the operator's approval queue and is never sent directly.",
        send_email,
        schema(
            {
                "to": {"type": "string"},
                "subject": {"type": "string"},
                "body": {"type": "string"},
            },
            required=["to", "subject", "body"],
        ),
    )
    registry.register(
        "get_lead_history",
        "Look up a lead by id or email with its scheduled follow-ups.",
        get_lead_history,
        schema({"lead_id": {"type": "string"}, "email": {"type": "string"}}),
    )
    registry.register(
        "score_lead",
        "Set a lead's score (0-100) and pipeline stage, optionally adding a note.",
        score_lead,
        schema(
            {
                "lead_id": {"type": "string"},
                "score": {"type": "number"},
                "stage": {"type": "string", "enum": list(LEAD_STAGES)},
                "notes": {"type": "string"},
            },
            required=["lead_id"],
        ),
    )
    registry.register(
        "generate_proposal",
        "Draft a service proposal for a lead; the operator approves pricing before it is sent.",
        generate_proposal,
        schema(
            {
                "lead_id": {"type": "string"},
                "services": {"type": "array", "items": {"type": "string"}},
                "estimated_budget": {"type": "number"},
                "timeline": {"type": "string"},
            },
            required=["lead_id", "services"],
        ),
    )
    registry.register(
        "schedule_followup",
        "Schedule a follow-up message to a lead N days from now.",
        schedule_followup,
        schema(
            {
                "lead_id": {"type": "string"},
                "days_from_now": {"type": "number"},
                "channel": {"type": "string", "enum": ["email", "sms", "call"]},
                "message": {"type": "string"},
            },
            required=["lead_id", "days_from_now", "message"],
        ),
    )
    registry.register(
        "update_pipeline",
        "Summarize the lead pipeline by stage, or list the leads in one stage.",
        update_pipeline,
        schema({"stage": {"type": "string", "enum": list(LEAD_STAGES)}}),
    )
