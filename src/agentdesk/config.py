"""Application configuration contract."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    app_db: str = Field(alias="APP_DB", default="/tmp/agentdesk.db")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    model_provider: str = Field(alias="MODEL_PROVIDER", default="anthropic")
    anthropic_api_key: str = Field(alias="ANTHROPIC_API_KEY", default="")
    anthropic_base_url: str = Field(
        alias="ANTHROPIC_BASE_URL", default="https://api.anthropic.com/v1"
    )
    anthropic_version: str = Field(alias="ANTHROPIC_VERSION", default="2023-06-01")
    openai_compat_base_url: str = Field(
        alias="OPENAI_COMPAT_BASE_URL", default="http://localhost:30000/v1"
    )
    openai_compat_api_key: str = Field(alias="OPENAI_COMPAT_API_KEY", default="")
    model_timeout_seconds: int = Field(alias="MODEL_TIMEOUT_SECONDS", default=120)

    default_model: str = Field(alias="DEFAULT_MODEL", default="claude-sonnet-4-5-20250929")
    routing_model: str = Field(alias="ROUTING_MODEL", default="claude-sonnet-4-5-20250929")
    routing_max_tokens: int = Field(alias="ROUTING_MAX_TOKENS", default=256)
    routing_temperature: float = Field(alias="ROUTING_TEMPERATURE", default=0.3)
    max_tool_rounds: int = Field(alias="MAX_TOOL_ROUNDS", default=10)
    max_output_tokens: int = Field(alias="MAX_OUTPUT_TOKENS", default=4096)

    memory_confidence_floor: float = Field(alias="MEMORY_CONFIDENCE_FLOOR", default=0.3)
    memory_max_items: int = Field(alias="MEMORY_MAX_ITEMS", default=50)
    prompt_max_chars: int = Field(alias="PROMPT_MAX_CHARS", default=0)

    default_agent: str = Field(alias="DEFAULT_AGENT", default="atlas")
    relationship_agent: str = Field(alias="RELATIONSHIP_AGENT", default="nora")
    regulated_company_types: str = Field(alias="REGULATED_COMPANY_TYPES", default="bh_center")
    agent_cache_enabled: int = Field(alias="AGENT_CACHE_ENABLED", default=1)

    slack_webhook_url: str = Field(alias="SLACK_WEBHOOK_URL", default="")
    task_runner_max_concurrent: int = Field(alias="TASK_RUNNER_MAX_CONCURRENT", default=20)
    task_runner_shutdown_timeout_seconds: int = Field(
        alias="TASK_RUNNER_SHUTDOWN_TIMEOUT_SECONDS",
        default=30,
    )

    def regulated_types(self) -> set[str]:
        return {
            item.strip().lower()
            for item in self.regulated_company_types.split(",")
            if item.strip()
        }


_SUPPORTED_PROVIDERS = {"anthropic", "openai_compat"}


def validate_settings_for_env(settings: Settings) -> list[str]:
    """Return configuration problems; an empty list means the settings are usable."""
    problems: list[str] = []
    provider = settings.model_provider.strip().lower()
    if provider not in _SUPPORTED_PROVIDERS:
        problems.append(f"MODEL_PROVIDER must be one of {sorted(_SUPPORTED_PROVIDERS)}")
    if settings.max_tool_rounds < 1:
        problems.append("MAX_TOOL_ROUNDS must be >= 1")
    if not 0.0 <= settings.memory_confidence_floor <= 1.0:
        problems.append("MEMORY_CONFIDENCE_FLOOR must be within [0, 1]")
    if settings.memory_max_items < 1:
        problems.append("MEMORY_MAX_ITEMS must be >= 1")
    if settings.app_env != "prod":
        return problems

    if provider == "anthropic" and not settings.anthropic_api_key.strip():
        problems.append("ANTHROPIC_API_KEY is required in prod")
    if provider == "openai_compat" and not settings.openai_compat_base_url.strip():
        problems.append("OPENAI_COMPAT_BASE_URL is required in prod")
    if settings.app_db.startswith("/tmp/"):
        problems.append("APP_DB must not point at /tmp in prod")
    return problems


@lru_cache
def get_settings() -> Settings:
    return Settings()
