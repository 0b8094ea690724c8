"""Human approval gate for outward-facing tool actions.

Handlers never send anything themselves: they record a pending notification
for the operator and, when a webhook is configured, submit a background task
that tells the operator something is waiting. ``list_pending`` and ``resolve``
are the operator side of the queue.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

from agentdesk.config import get_settings
from agentdesk.db.queries import (
    get_notification,
    insert_notification,
    list_notifications,
    loads_json,
    now_iso,
    update_notification_status,
)
from agentdesk.errors import ApprovalError, NotFoundError
from agentdesk.tasks import NOTIFY_APPROVAL_TASK, get_task_runner
from agentdesk.tools.registry import ToolContext

logger = logging.getLogger(__name__)

OPERATOR = "operator"
CLIENT = "client"

PENDING = "pending"
RESOLVED_STATUSES = ("approved", "rejected", "changes_requested")


def request_approval(
    ctx: ToolContext,
    *,
    title: str,
    body: str,
    channel: str = "slack",
    recipient_type: str = OPERATOR,
    metadata: dict[str, Any] | None = None,
) -> str:
    """Queue an action for human review; returns the notification id."""
    notification_id = insert_notification(
        ctx.conn,
        recipient_type=recipient_type,
        company_id=ctx.company_id,
        channel=channel,
        title=title,
        body=body,
        metadata={"requested_by": ctx.agent_name, **(metadata or {})},
    )
    logger.info(
        "Approval requested by %s: %s (%s)", ctx.agent_name, title, notification_id
    )
    if recipient_type == OPERATOR and get_settings().slack_webhook_url:
        submitted = get_task_runner().send_task(
            NOTIFY_APPROVAL_TASK,
            kwargs={
                "notification_id": notification_id,
                "title": title,
                "body": body,
                "company_id": ctx.company_id,
                "agent_name": ctx.agent_name,
            },
        )
        if not submitted:
            logger.warning("Approval notice %s was not dispatched", notification_id)
    return notification_id


def pending(notification_id: str, message: str, **extra: Any) -> dict[str, Any]:
    return {
        "status": "pending_approval",
        "notification_id": notification_id,
        "message": message,
        **extra,
    }


def _item(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "recipient_type": row["recipient_type"],
        "company_id": row["company_id"],
        "channel": row["channel"],
        "title": row["title"],
        "body": row["body"],
        "metadata": loads_json(row["metadata_json"], {}),
        "status": row["status"],
        "created_at": row["created_at"],
    }


def list_pending(conn: sqlite3.Connection, company_id: str | None = None) -> list[dict[str, Any]]:
    """Items waiting for a human decision, oldest first."""
    return [_item(row) for row in list_notifications(conn, status=PENDING, company_id=company_id)]


def resolve(
    conn: sqlite3.Connection,
    notification_id: str,
    status: str,
    *,
    feedback: str | None = None,
) -> dict[str, Any]:
    """Record the operator's decision on a pending item.

    Only the stored status changes; nothing is sent on approval.
    """
    if status not in RESOLVED_STATUSES:
        raise ApprovalError(f"Unknown approval status: {status}")
    row = get_notification(conn, notification_id)
    if row is None:
        raise NotFoundError(f"Notification not found: {notification_id}")
    if row["status"] != PENDING:
        raise ApprovalError(f"Notification {notification_id} is already {row['status']}")

    metadata = loads_json(row["metadata_json"], {})
    metadata["resolved_at"] = now_iso()
    if feedback:
        metadata["feedback"] = feedback
    if not update_notification_status(conn, notification_id, status=status, metadata=metadata):
        raise ApprovalError(f"Notification {notification_id} was resolved concurrently")
    logger.info("Approval %s marked %s", notification_id, status)
    return {**_item(row), "status": status, "metadata": metadata}
