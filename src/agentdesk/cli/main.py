"""Click CLI group: migrate, seed, add-company, agents, approvals, route and chat."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import sys

import click

from agentdesk.agents.registry import AgentRegistry
from agentdesk.agents.seed import seed_default_agents
from agentdesk.config import get_settings
from agentdesk.db.connection import get_conn
from agentdesk.db.migrations.runner import run_migrations
from agentdesk.db.queries import insert_company
from agentdesk.errors import AgentDeskError
from agentdesk.logging import configure_logging
from agentdesk.orchestrator.service import Orchestrator
from agentdesk.providers.factory import build_provider
from agentdesk.tasks import shutdown_task_runner
from agentdesk.tools.approvals import list_pending, resolve
from agentdesk.tools.catalog import build_default_registry


def _orchestrator(conn: sqlite3.Connection) -> Orchestrator:
    return Orchestrator(conn, build_provider(get_settings()), build_default_registry())


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL.")
def cli(log_level: str | None) -> None:
    """Agent desk runtime CLI."""
    configure_logging(level=log_level)


@cli.command()
def migrate() -> None:
    """Apply pending SQL migrations."""
    applied = run_migrations()
    if applied:
        for name in applied:
            click.echo(f"applied {name}")
    else:
        click.echo("database is up to date")


@cli.command()
def seed() -> None:
    """Insert the default agent roster."""
    with get_conn() as conn:
        created = seed_default_agents(conn)
    click.echo(f"seeded {len(created)} agent(s)" + (f": {', '.join(created)}" if created else ""))


@cli.command("add-company")
@click.argument("name")
@click.option(
    "--type",
    "company_type",
    type=click.Choice(["bh_center", "marketing_company"]),
    default="marketing_company",
    show_default=True,
)
@click.option("--id", "company_id", default=None, help="Use a fixed company ID.")
def add_company(name: str, company_type: str, company_id: str | None) -> None:
    """Register a client company."""
    with get_conn() as conn:
        created_id = insert_company(
            conn, name=name, company_type=company_type, company_id=company_id
        )
    click.echo(created_id)


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Print the roster as JSON.")
def agents(json_output: bool) -> None:
    """List active agents with memory and 24h activity counts."""
    with get_conn() as conn:
        rows = [summary.to_dict() for summary in AgentRegistry(conn).summaries()]
    if json_output:
        click.echo(json.dumps(rows, indent=2))
        return
    if not rows:
        click.echo("no active agents (run `agentdesk seed`)")
        return
    for row in rows:
        click.echo(
            f"{row['name']:<8} {row['display_name']:<8} {row['role']:<20} "
            f"memories={row['memory_count']} activity_24h={row['activity_count_24h']}"
        )


@cli.group()
def approvals() -> None:
    """Review actions waiting for human approval."""


@approvals.command("list")
@click.option("--company", "company_id", default=None, help="Only this company's items.")
@click.option("--json", "json_output", is_flag=True, help="Print the queue as JSON.")
def approvals_list(company_id: str | None, json_output: bool) -> None:
    """List pending approval items."""
    with get_conn() as conn:
        items = list_pending(conn, company_id)
    if json_output:
        click.echo(json.dumps(items, indent=2))
        return
    if not items:
        click.echo("no pending approvals")
        return
    for item in items:
        requested_by = item["metadata"].get("requested_by", "?")
        click.echo(
            f"{item['id']}  {item['channel']:<6} {item['company_id'] or '-':<10} "
            f"{requested_by:<8} {item['title']}"
        )


def _resolve(notification_id: str, status: str, feedback: str | None) -> None:
    try:
        with get_conn() as conn:
            item = resolve(conn, notification_id, status, feedback=feedback)
    except AgentDeskError as exc:
        click.echo(f"error: {exc}", err=True)
        sys.exit(1)
    click.echo(f"{item['id']} {item['status']}")


@approvals.command("approve")
@click.argument("notification_id")
def approvals_approve(notification_id: str) -> None:
    """Mark an item approved."""
    _resolve(notification_id, "approved", None)


@approvals.command("reject")
@click.argument("notification_id")
@click.option("--feedback", default=None, help="Why the item was rejected.")
def approvals_reject(notification_id: str, feedback: str | None) -> None:
    """Mark an item rejected."""
    _resolve(notification_id, "rejected", feedback)


@approvals.command("request-changes")
@click.argument("notification_id")
@click.option("--feedback", required=True, help="What needs to change.")
def approvals_request_changes(notification_id: str, feedback: str) -> None:
    """Send an item back for changes."""
    _resolve(notification_id, "changes_requested", feedback)


@cli.command()
@click.argument("message")
@click.option("--company", "company_id", required=True, help="Company (tenant) ID.")
def route(message: str, company_id: str) -> None:
    """Show which agent would handle MESSAGE."""
    try:
        with get_conn() as conn:
            decision = asyncio.run(_orchestrator(conn).route(message, company_id))
    except AgentDeskError as exc:
        click.echo(f"error: {exc}", err=True)
        sys.exit(1)
    click.echo(json.dumps(decision.to_dict(), indent=2))


@cli.command()
@click.argument("message")
@click.option("--company", "company_id", required=True, help="Company (tenant) ID.")
@click.option("--agent", "agent_name", default=None, help="Skip routing and talk to this agent.")
@click.option("--json", "json_output", is_flag=True, help="Print structured JSON response.")
def chat(message: str, company_id: str, agent_name: str | None, json_output: bool) -> None:
    """Send MESSAGE and print the agent's reply."""
    try:
        with get_conn() as conn:
            orchestrator = _orchestrator(conn)
            if agent_name:
                result = asyncio.run(orchestrator.run_direct(agent_name, message, company_id))
            else:
                result = asyncio.run(orchestrator.handle_message(message, company_id))
    except AgentDeskError as exc:
        click.echo(f"error: {exc}", err=True)
        sys.exit(1)
    finally:
        # Approval notices queued during the turn are delivered before exit.
        shutdown_task_runner()
    if json_output:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return
    click.echo(f"[{result.agent_display_name}] {result.response}")
    if result.tools_used:
        click.echo(f"tools: {', '.join(result.tools_used)}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
