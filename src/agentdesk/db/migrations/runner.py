"""Simple SQL migration runner."""

import logging
import sqlite3
from pathlib import Path

from agentdesk.db.connection import get_conn
from agentdesk.errors import StoreError

MIGRATIONS_DIR = Path(__file__).resolve().parent
logger = logging.getLogger(__name__)


def run_migrations() -> list[str]:
    """Apply pending *.sql files in name order; return the names applied."""
    applied_now: list[str] = []
    with get_conn() as conn:
        conn.execute("BEGIN IMMEDIATE")
        try:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS schema_migrations("
                "name TEXT PRIMARY KEY, "
                "applied_at TEXT NOT NULL)"
            )
            applied = {
                row[0] for row in conn.execute("SELECT name FROM schema_migrations").fetchall()
            }
            for file in sorted(MIGRATIONS_DIR.glob("*.sql")):
                if file.name in applied:
                    continue
                # executescript would commit the open transaction; run statements one by one.
                for statement in _split_statements(file.read_text()):
                    try:
                        conn.execute(statement)
                    except sqlite3.Error as exc:
                        raise StoreError(f"migration {file.name} failed: {exc}") from exc
                conn.execute(
                    "INSERT INTO schema_migrations(name, applied_at) VALUES(?, datetime('now'))",
                    (file.name,),
                )
                applied_now.append(file.name)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
    if applied_now:
        logger.info("Applied migrations: %s", ", ".join(applied_now))
    return applied_now


def _split_statements(script: str) -> list[str]:
    lines = [line for line in script.splitlines() if not line.strip().startswith("--")]
    return [chunk.strip() for chunk in "\n".join(lines).split(";") if chunk.strip()]


if __name__ == "__main__":
    run_migrations()
