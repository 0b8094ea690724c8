"""Core query helpers for the agent, memory and activity tables."""

import json
import sqlite3
from datetime import UTC, datetime, timedelta
from typing import Any

from agentdesk.ids import new_id


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def loads_json(value: object, default: Any) -> Any:
    if not isinstance(value, str) or not value:
        return default
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return default


def get_agent_row(conn: sqlite3.Connection, name: str) -> sqlite3.Row | None:
    return conn.execute(
        "SELECT * FROM agents WHERE name=? AND is_active=1 LIMIT 1",
        (name,),
    ).fetchone()


def list_active_agent_rows(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    return conn.execute(
        "SELECT * FROM agents WHERE is_active=1 ORDER BY name ASC"
    ).fetchall()


def upsert_agent_row(conn: sqlite3.Connection, values: dict[str, Any]) -> str:
    """Insert or update an agent by name; returns the agent id."""
    now = now_iso()
    existing = conn.execute(
        "SELECT id FROM agents WHERE name=? LIMIT 1", (values["name"],)
    ).fetchone()
    tools_json = json.dumps(list(values.get("tools", [])))
    if existing is not None:
        conn.execute(
            (
                "UPDATE agents SET display_name=?, role=?, avatar_url=?, system_prompt=?, "
                "tools_json=?, model=?, temperature=?, is_active=?, updated_at=? WHERE id=?"
            ),
            (
                values["display_name"],
                values["role"],
                values.get("avatar_url"),
                values["system_prompt"],
                tools_json,
                values["model"],
                float(values.get("temperature", 0.7)),
                1 if values.get("is_active", True) else 0,
                now,
                existing["id"],
            ),
        )
        return str(existing["id"])
    agent_id = values.get("id") or new_id("agt")
    conn.execute(
        (
            "INSERT INTO agents(id, name, display_name, role, avatar_url, system_prompt, "
            "tools_json, model, temperature, is_active, created_at, updated_at) "
            "VALUES(?,?,?,?,?,?,?,?,?,?,?,?)"
        ),
        (
            agent_id,
            values["name"],
            values["display_name"],
            values["role"],
            values.get("avatar_url"),
            values["system_prompt"],
            tools_json,
            values["model"],
            float(values.get("temperature", 0.7)),
            1 if values.get("is_active", True) else 0,
            now,
            now,
        ),
    )
    return str(agent_id)


def select_memories(
    conn: sqlite3.Connection,
    agent_id: str,
    company_id: str,
    min_confidence: float,
) -> list[sqlite3.Row]:
    return conn.execute(
        (
            "SELECT * FROM agent_memory "
            "WHERE agent_id=? AND company_id=? AND confidence>=? "
            "ORDER BY created_at DESC, rowid DESC"
        ),
        (agent_id, company_id, min_confidence),
    ).fetchall()


def insert_memory(
    conn: sqlite3.Connection,
    *,
    agent_id: str,
    company_id: str,
    memory_type: str,
    content: str,
    confidence: float = 1.0,
    source: str | None = None,
    source_id: str | None = None,
    expires_at: str | None = None,
    created_at: str | None = None,
) -> tuple[str, bool]:
    """Insert a memory unless the same content exists; returns (id, created)."""
    memory_id = new_id("mem")
    cursor = conn.execute(
        (
            "INSERT OR IGNORE INTO agent_memory("
            "id, agent_id, company_id, memory_type, content, confidence, "
            "source, source_id, created_at, expires_at"
            ") VALUES(?,?,?,?,?,?,?,?,?,?)"
        ),
        (
            memory_id,
            agent_id,
            company_id,
            memory_type,
            content,
            confidence,
            source,
            source_id,
            created_at or now_iso(),
            expires_at,
        ),
    )
    if cursor.rowcount:
        return memory_id, True
    row = conn.execute(
        "SELECT id FROM agent_memory WHERE agent_id=? AND company_id=? AND content=?",
        (agent_id, company_id, content),
    ).fetchone()
    return (str(row["id"]) if row else memory_id), False


def count_memories(conn: sqlite3.Connection, agent_id: str) -> int:
    row = conn.execute(
        "SELECT COUNT(*) AS n FROM agent_memory WHERE agent_id=?", (agent_id,)
    ).fetchone()
    return int(row["n"]) if row else 0


def insert_activity(
    conn: sqlite3.Connection,
    *,
    agent_id: str,
    company_id: str | None,
    action_type: str,
    description: str,
    metadata: dict[str, Any] | None = None,
    project_id: str | None = None,
    conversation_id: str | None = None,
) -> str:
    activity_id = new_id("act")
    conn.execute(
        (
            "INSERT INTO agent_activity("
            "id, agent_id, company_id, action_type, description, metadata_json, "
            "project_id, conversation_id, created_at"
            ") VALUES(?,?,?,?,?,?,?,?,?)"
        ),
        (
            activity_id,
            agent_id,
            company_id,
            action_type,
            description,
            json.dumps(metadata or {}, default=str),
            project_id,
            conversation_id,
            now_iso(),
        ),
    )
    return activity_id


def count_recent_activity(
    conn: sqlite3.Connection, agent_id: str, window: timedelta = timedelta(hours=24)
) -> int:
    since = (datetime.now(UTC) - window).isoformat()
    row = conn.execute(
        "SELECT COUNT(*) AS n FROM agent_activity WHERE agent_id=? AND created_at>=?",
        (agent_id, since),
    ).fetchone()
    return int(row["n"]) if row else 0


def get_company(conn: sqlite3.Connection, company_id: str) -> sqlite3.Row | None:
    return conn.execute(
        "SELECT * FROM companies WHERE id=? LIMIT 1", (company_id,)
    ).fetchone()


def insert_company(
    conn: sqlite3.Connection,
    *,
    name: str,
    company_type: str,
    company_id: str | None = None,
    **extra: Any,
) -> str:
    company_id = company_id or new_id("cmp")
    conn.execute(
        (
            "INSERT INTO companies(id, name, type, website_url, industry, contact_name, "
            "contact_email, renewal_date, created_at) VALUES(?,?,?,?,?,?,?,?,?)"
        ),
        (
            company_id,
            name,
            company_type,
            extra.get("website_url"),
            extra.get("industry"),
            extra.get("contact_name"),
            extra.get("contact_email"),
            extra.get("renewal_date"),
            now_iso(),
        ),
    )
    return company_id


def insert_notification(
    conn: sqlite3.Connection,
    *,
    recipient_type: str,
    company_id: str | None,
    channel: str,
    title: str,
    body: str,
    metadata: dict[str, Any] | None = None,
) -> str:
    notification_id = new_id("ntf")
    conn.execute(
        (
            "INSERT INTO notifications("
            "id, recipient_type, company_id, channel, title, body, metadata_json, "
            "status, created_at"
            ") VALUES(?,?,?,?,?,?,?,'pending',?)"
        ),
        (
            notification_id,
            recipient_type,
            company_id,
            channel,
            title,
            body,
            json.dumps(metadata or {}, default=str),
            now_iso(),
        ),
    )
    return notification_id


def get_notification(conn: sqlite3.Connection, notification_id: str) -> sqlite3.Row | None:
    return conn.execute("SELECT * FROM notifications WHERE id=?", (notification_id,)).fetchone()


def list_notifications(
    conn: sqlite3.Connection,
    *,
    status: str = "pending",
    company_id: str | None = None,
) -> list[sqlite3.Row]:
    if company_id is None:
        return conn.execute(
            "SELECT * FROM notifications WHERE status=? ORDER BY created_at ASC, rowid ASC",
            (status,),
        ).fetchall()
    return conn.execute(
        "SELECT * FROM notifications WHERE status=? AND company_id=? "
        "ORDER BY created_at ASC, rowid ASC",
        (status, company_id),
    ).fetchall()


def update_notification_status(
    conn: sqlite3.Connection,
    notification_id: str,
    *,
    status: str,
    metadata: dict[str, Any],
    expected_status: str = "pending",
) -> bool:
    """Move a notification out of ``expected_status``; False when nothing matched."""
    cursor = conn.execute(
        "UPDATE notifications SET status=?, metadata_json=? WHERE id=? AND status=?",
        (status, json.dumps(metadata, default=str), notification_id, expected_status),
    )
    return cursor.rowcount > 0
