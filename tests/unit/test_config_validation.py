import pytest

from agentdesk.config import get_settings, validate_settings_for_env


def _prod(monkeypatch: pytest.MonkeyPatch, **env: str) -> list[str]:
    monkeypatch.setenv("APP_ENV", "prod")
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    return validate_settings_for_env(get_settings())


def test_dev_defaults_are_valid() -> None:
    assert validate_settings_for_env(get_settings()) == []


def test_prod_requires_api_key_and_durable_db(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    problems = _prod(monkeypatch, APP_DB="/tmp/agentdesk.db")
    assert "ANTHROPIC_API_KEY is required in prod" in problems
    assert "APP_DB must not point at /tmp in prod" in problems


def test_prod_with_key_and_db_is_valid(monkeypatch: pytest.MonkeyPatch) -> None:
    problems = _prod(
        monkeypatch,
        ANTHROPIC_API_KEY="sk-test",
        APP_DB="/srv/agentdesk/app.db",
    )
    assert problems == []


def test_openai_compat_needs_base_url_in_prod(monkeypatch: pytest.MonkeyPatch) -> None:
    problems = _prod(
        monkeypatch,
        MODEL_PROVIDER="openai_compat",
        OPENAI_COMPAT_BASE_URL="",
        APP_DB="/srv/agentdesk/app.db",
    )
    assert problems == ["OPENAI_COMPAT_BASE_URL is required in prod"]


def test_rejects_unknown_provider_and_bad_limits(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MODEL_PROVIDER", "carrier-pigeon")
    monkeypatch.setenv("MAX_TOOL_ROUNDS", "0")
    monkeypatch.setenv("MEMORY_CONFIDENCE_FLOOR", "1.5")
    get_settings.cache_clear()
    problems = validate_settings_for_env(get_settings())
    assert any(p.startswith("MODEL_PROVIDER must be one of") for p in problems)
    assert "MAX_TOOL_ROUNDS must be >= 1" in problems
    assert "MEMORY_CONFIDENCE_FLOOR must be within [0, 1]" in problems


def test_regulated_types_parses_csv(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REGULATED_COMPANY_TYPES", "bh_center, Pharmacy ,")
    get_settings.cache_clear()
    assert get_settings().regulated_types() == {"bh_center", "pharmacy"}
