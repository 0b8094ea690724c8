"""Project and task lifecycle tools (coordinator)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from agentdesk.db.queries import get_agent_row, insert_activity, now_iso
from agentdesk.ids import new_id
from agentdesk.tools import args as a
from agentdesk.tools.registry import ToolContext, ToolRegistry, schema

PROJECT_TYPES = (
    "website",
    "branding",
    "logo",
    "flyer",
    "social_campaign",
    "seo",
    "content",
    "ad_campaign",
    "email_campaign",
    "reputation",
    "other",
)
TASK_STATUSES = ("todo", "in_progress", "waiting_review", "completed", "blocked", "cancelled")
OPEN_PROJECT_STATUSES = ("planning", "active", "in_progress", "review")
OPEN_TASK_STATUSES = ("todo", "in_progress", "blocked")


async def create_project(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    name = a.required(args, "name")
    project_type = a.text(args, "type", "other")
    project_id = new_id("prj")
    now = now_iso()
    ctx.conn.execute(
        (
            "INSERT INTO projects(id, company_id, name, description, project_type, status, "
            "due_date, created_by, created_at, updated_at) VALUES(?,?,?,?,?,?,?,?,?,?)"
        ),
        (
            project_id,
            ctx.company_id,
            name,
            a.text(args, "requirements") or None,
            project_type if project_type in PROJECT_TYPES else "other",
            "planning",
            a.text(args, "due_date") or None,
            ctx.agent_name,
            now,
            now,
        ),
    )
    return {
        "status": "project_created",
        "project": {"id": project_id, "name": name, "type": project_type, "status": "planning"},
    }


async def assign_task(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    agent_name = a.text(args, "agent_name")
    if get_agent_row(ctx.conn, agent_name) is None:
        return {"error": f'Agent "{agent_name}" not found'}
    project_id = a.text(args, "project_id")
    project = ctx.conn.execute(
        "SELECT id FROM projects WHERE id=? AND company_id=?", (project_id, ctx.company_id)
    ).fetchone()
    if project is None:
        return {"error": f"Project {project_id} not found"}
    task_id = new_id("tsk")
    title = a.text(args, "title", "Untitled task")
    now = now_iso()
    ctx.conn.execute(
        (
            "INSERT INTO tasks(id, project_id, company_id, title, description, assigned_agent, "
            "priority, due_date, created_at, updated_at) VALUES(?,?,?,?,?,?,?,?,?,?)"
        ),
        (
            task_id,
            project_id,
            ctx.company_id,
            title,
            a.text(args, "description") or None,
            agent_name,
            a.text(args, "priority", "medium"),
            a.text(args, "due_date") or None,
            now,
            now,
        ),
    )
    return {
        "status": "task_assigned",
        "task": {"id": task_id, "title": title, "assigned_agent": agent_name, "status": "todo"},
    }


async def update_task(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    task_id = a.text(args, "task_id")
    status = a.text(args, "status")
    if status and status not in TASK_STATUSES:
        return {"error": f"Unknown status: {status}"}
    row = ctx.conn.execute(
        "SELECT * FROM tasks WHERE id=? AND company_id=?", (task_id, ctx.company_id)
    ).fetchone()
    if row is None:
        return {"error": f"Task {task_id} not found"}
    note = a.text(args, "result")
    description = row["description"] or ""
    if note:
        description = f"{description}\n\nResult: {note}".strip()
    ctx.conn.execute(
        "UPDATE tasks SET status=?, description=?, updated_at=? WHERE id=?",
        (status or row["status"], description or None, now_iso(), task_id),
    )
    return {
        "status": "task_updated",
        "task": {"id": task_id, "title": row["title"], "status": status or row["status"]},
    }


async def get_project_status(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    project_id = a.text(args, "project_id")
    project = ctx.conn.execute(
        "SELECT * FROM projects WHERE id=? AND company_id=?", (project_id, ctx.company_id)
    ).fetchone()
    if project is None:
        return {"error": f"Project {project_id} not found"}
    tasks = a.rows(
        ctx.conn.execute(
            "SELECT id, title, status, assigned_agent, due_date FROM tasks "
            "WHERE project_id=? ORDER BY created_at ASC",
            (project_id,),
        ).fetchall()
    )
    done = sum(1 for task in tasks if task["status"] == "completed")
    return {
        "project": a.row_dict(project),
        "tasks": tasks,
        "progress": round(done / len(tasks), 2) if tasks else 0.0,
    }


async def route_to_agent(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    target = a.text(args, "agent_name")
    if get_agent_row(ctx.conn, target) is None:
        return {"error": f'Agent "{target}" not found'}
    message = a.text(args, "message")
    insert_activity(
        ctx.conn,
        agent_id=ctx.agent_id,
        company_id=ctx.company_id,
        action_type="route_to_agent",
        description=f'Handed off to {target}: "{message[:80]}"',
        metadata={"target_agent": target, "message": message, "reason": a.text(args, "reason")},
    )
    return {
        "status": "routed",
        "target_agent": target,
        "note": "The message has been queued for the target agent.",
    }


async def check_deadlines(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    days = a.integer(args, "days_ahead", 7, low=1, high=365)
    cutoff = (datetime.now(UTC) + timedelta(days=days)).isoformat()
    project_marks = ",".join("?" for _ in OPEN_PROJECT_STATUSES)
    task_marks = ",".join("?" for _ in OPEN_TASK_STATUSES)
    projects = ctx.conn.execute(
        (
            "SELECT id, name, project_type, status, due_date FROM projects "
            f"WHERE company_id=? AND due_date IS NOT NULL AND due_date<=? "
            f"AND status IN ({project_marks}) ORDER BY due_date ASC"
        ),
        (ctx.company_id, cutoff, *OPEN_PROJECT_STATUSES),
    ).fetchall()
    tasks = ctx.conn.execute(
        (
            "SELECT id, title, status, due_date, project_id, assigned_agent FROM tasks "
            f"WHERE company_id=? AND due_date IS NOT NULL AND due_date<=? "
            f"AND status IN ({task_marks}) ORDER BY due_date ASC"
        ),
        (ctx.company_id, cutoff, *OPEN_TASK_STATUSES),
    ).fetchall()
    return {
        "upcoming_project_deadlines": a.rows(projects),
        "upcoming_task_deadlines": a.rows(tasks),
        "days_checked": days,
    }


def register(registry: ToolRegistry) -> None:
    registry.register(
        "create_project",
        "Create a new project for this company with a name, type and initial requirements.",
        create_project,
        schema(
            {
                "name": {"type": "string"},
                "type": {"type": "string", "enum": list(PROJECT_TYPES)},
                "requirements": {"type": "string"},
                "due_date": {"type": "string", "description": "ISO date"},
            },
            required=["name", "type"],
        ),
    )
    registry.register(
        "assign_task",
        "Create a task within a project and assign it to an agent.",
        assign_task,
        schema(
            {
                "project_id": {"type": "string"},
                "title": {"type": "string"},
                "description": {"type": "string"},
                "agent_name": {"type": "string"},
                "priority": {"type": "string", "enum": ["low", "medium", "high", "urgent"]},
                "due_date": {"type": "string"},
            },
            required=["project_id", "title", "agent_name"],
        ),
    )
    registry.register(
        "update_task",
        "Update a task's status and record a result summary.",
        update_task,
        schema(
            {
                "task_id": {"type": "string"},
                "status": {"type": "string", "enum": list(TASK_STATUSES)},
                "result": {"type": "string"},
            },
            required=["task_id"],
        ),
    )
    registry.register(
        "get_project_status",
        "Get a project with its tasks and completion progress.",
        get_project_status,
        schema({"project_id": {"type": "string"}}, required=["project_id"]),
    )
    registry.register(
        "route_to_agent",
        "Hand a message or task to a specialist agent.",
        route_to_agent,
        schema(
            {
                "agent_name": {"type": "string"},
                "message": {"type": "string"},
                "reason": {"type": "string"},
            },
            required=["agent_name", "message"],
        ),
    )
    registry.register(
        "check_deadlines",
        "List open projects and tasks due within the next N days.",
        check_deadlines,
        schema({"days_ahead": {"type": "number", "description": "Default 7"}}),
    )
