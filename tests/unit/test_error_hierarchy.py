"""Tests for error hierarchy."""

from agentdesk.errors import (
    AgentDeskError,
    ApprovalError,
    AgentNotFoundError,
    ConfigError,
    NotFoundError,
    ProviderError,
    StoreError,
    ToolError,
)


def test_hierarchy() -> None:
    assert issubclass(NotFoundError, AgentDeskError)
    assert issubclass(AgentNotFoundError, NotFoundError)
    assert issubclass(ProviderError, AgentDeskError)
    assert issubclass(ToolError, AgentDeskError)
    assert issubclass(ConfigError, AgentDeskError)
    assert issubclass(StoreError, AgentDeskError)
    assert issubclass(ApprovalError, AgentDeskError)


def test_retryable_default() -> None:
    assert AgentDeskError("test").retryable is False
    assert ProviderError("test").retryable is True
    assert ProviderError("bad request", retryable=False).retryable is False
    assert ToolError("test").retryable is False


def test_agent_not_found_carries_name() -> None:
    err = AgentNotFoundError("ghost")
    assert err.name == "ghost"
    assert str(err) == "Agent not found: ghost"
