"""Provider construction helpers."""

from agentdesk.config import Settings
from agentdesk.errors import ConfigError
from agentdesk.providers.anthropic import AnthropicProvider
from agentdesk.providers.base import ModelProvider
from agentdesk.providers.openai_compat import OpenAICompatProvider

_ALLOWED_PROVIDERS = {"anthropic", "openai_compat"}


def resolve_provider_name(settings: Settings) -> str:
    value = settings.model_provider.strip().lower()
    if value in _ALLOWED_PROVIDERS:
        return value
    raise ConfigError(f"unsupported MODEL_PROVIDER: {settings.model_provider!r}")


def build_provider(settings: Settings) -> ModelProvider:
    name = resolve_provider_name(settings)
    if name == "openai_compat":
        return OpenAICompatProvider(
            base_url=settings.openai_compat_base_url,
            api_key=settings.openai_compat_api_key,
            timeout_seconds=settings.model_timeout_seconds,
        )
    if not settings.anthropic_api_key:
        raise ConfigError("ANTHROPIC_API_KEY is not set")
    return AnthropicProvider(
        settings.anthropic_api_key,
        base_url=settings.anthropic_base_url,
        api_version=settings.anthropic_version,
        timeout_seconds=settings.model_timeout_seconds,
    )
