from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from agentdesk.cli.main import cli
from agentdesk.db.connection import get_conn
from agentdesk.db.queries import insert_notification
from agentdesk.orchestrator.service import Orchestrator
from agentdesk.tools.catalog import build_default_registry
from tests.fakes import ScriptedProvider, text_response


@pytest.fixture
def fake_orchestrator(monkeypatch: pytest.MonkeyPatch) -> ScriptedProvider:
    provider = ScriptedProvider(
        [
            text_response('{"target_agent": "kai", "reasoning": "metrics", "confidence": 0.85}'),
            text_response("Traffic is up 14% month over month."),
        ]
    )
    monkeypatch.setattr(
        "agentdesk.cli.main._orchestrator",
        lambda conn: Orchestrator(conn, provider, build_default_registry()),
    )
    return provider


def _invoke(*args: str):
    return CliRunner().invoke(cli, ["--log-level", "WARNING", *args])


def test_migrate_is_idempotent() -> None:
    result = _invoke("migrate")
    assert result.exit_code == 0
    assert "database is up to date" in result.stdout


def test_seed_and_list_agents() -> None:
    seeded = _invoke("seed")
    assert seeded.exit_code == 0
    assert "seeded 10 agent(s)" in seeded.stdout

    listed = _invoke("agents", "--json")
    assert listed.exit_code == 0
    roster = json.loads(listed.stdout)
    assert len(roster) == 10
    assert {row["name"] for row in roster} >= {"atlas", "nora", "diego"}
    assert all(row["memory_count"] == 0 for row in roster)


def test_add_company_prints_id() -> None:
    result = _invoke("add-company", "Harbor Recovery", "--type", "bh_center", "--id", "cmp_bh")
    assert result.exit_code == 0
    assert result.stdout.strip() == "cmp_bh"


def test_chat_routes_and_answers(fake_orchestrator: ScriptedProvider) -> None:
    _invoke("seed")
    result = _invoke("chat", "How was traffic last month?", "--company", "cmp_1", "--json")
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["agent_name"] == "kai"
    assert payload["response"] == "Traffic is up 14% month over month."
    assert payload["routing"]["confidence"] == pytest.approx(0.85)


def test_chat_direct_skips_router(fake_orchestrator: ScriptedProvider) -> None:
    _invoke("seed")
    result = _invoke("chat", "hi", "--company", "cmp_1", "--agent", "nora")
    assert result.exit_code == 0, result.output
    assert result.stdout.startswith("[Nora] ")
    assert len(fake_orchestrator.calls) == 1


def test_chat_unknown_agent_exits_nonzero(fake_orchestrator: ScriptedProvider) -> None:
    del fake_orchestrator
    _invoke("seed")
    result = _invoke("chat", "hi", "--company", "cmp_1", "--agent", "zeus")
    assert result.exit_code == 1
    assert "Agent not found: zeus" in result.output


def test_route_prints_decision(fake_orchestrator: ScriptedProvider) -> None:
    del fake_orchestrator
    _invoke("seed")
    result = _invoke("route", "ROI on ads?", "--company", "cmp_1")
    assert result.exit_code == 0
    assert json.loads(result.stdout)["target_agent"] == "kai"


def _queue_notice(title: str) -> str:
    with get_conn() as conn:
        return insert_notification(
            conn,
            recipient_type="operator",
            company_id="cmp_1",
            channel="email",
            title=title,
            body="Draft body",
            metadata={"requested_by": "marcus"},
        )


def test_approvals_list_and_resolve() -> None:
    empty = _invoke("approvals", "list")
    assert empty.exit_code == 0
    assert "no pending approvals" in empty.stdout

    first = _queue_notice("Email to Dana")
    second = _queue_notice("Email to Lee")
    listed = _invoke("approvals", "list", "--company", "cmp_1", "--json")
    assert [item["id"] for item in json.loads(listed.stdout)] == [first, second]

    approved = _invoke("approvals", "approve", first)
    assert approved.exit_code == 0
    assert approved.stdout.strip() == f"{first} approved"

    changes = _invoke("approvals", "request-changes", second, "--feedback", "Softer tone")
    assert changes.exit_code == 0
    assert json.loads(_invoke("approvals", "list", "--json").stdout) == []


def test_approvals_resolving_twice_fails() -> None:
    notice = _queue_notice("Email to Dana")
    assert _invoke("approvals", "reject", notice).exit_code == 0
    again = _invoke("approvals", "approve", notice)
    assert again.exit_code == 1
    assert "already rejected" in again.output

    missing = _invoke("approvals", "approve", "ntf_missing")
    assert missing.exit_code == 1
    assert "Notification not found: ntf_missing" in missing.output
