import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from agentdesk.agents.seed import seed_default_agents
from agentdesk.config import get_settings
from agentdesk.db.connection import get_conn
from agentdesk.db.migrations.runner import run_migrations
from agentdesk.db.queries import insert_company
from agentdesk.tasks import reset_task_runner


@pytest.fixture(autouse=True)
def test_env(tmp_path: Path):
    db = tmp_path / "test.db"
    os.environ["APP_DB"] = str(db)
    os.environ["APP_ENV"] = "dev"
    os.environ["SLACK_WEBHOOK_URL"] = ""
    os.environ["MODEL_PROVIDER"] = "anthropic"
    get_settings.cache_clear()
    run_migrations()
    reset_task_runner()
    root = logging.getLogger()
    level = root.level
    yield
    get_settings.cache_clear()
    reset_task_runner()
    # CLI commands install a structlog handler on the root logger.
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def conn() -> Iterator:
    with get_conn() as connection:
        yield connection


@pytest.fixture
def seeded(conn) -> list[str]:
    return seed_default_agents(conn)


@pytest.fixture
def company_id(conn) -> str:
    return insert_company(
        conn, name="Bright Smile Dental", company_type="marketing_company", company_id="cmp_1"
    )


@pytest.fixture
def clinic_id(conn) -> str:
    return insert_company(
        conn, name="Harbor Recovery Center", company_type="bh_center", company_id="cmp_bh"
    )
