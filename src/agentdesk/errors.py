"""agentdesk exception hierarchy.

All runtime exceptions inherit from AgentDeskError so callers can separate
configuration problems (not found) from transport failures (retry the whole
invocation).
"""


class AgentDeskError(Exception):
    """Base exception for all agentdesk errors."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class NotFoundError(AgentDeskError):
    """A requested record does not exist or is not active."""


class AgentNotFoundError(NotFoundError):
    """Unknown or inactive agent name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Agent not found: {name}")
        self.name = name


class ProviderError(AgentDeskError):
    """Error communicating with the model backend."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class ToolError(AgentDeskError):
    """Error executing a tool."""


class ConfigError(AgentDeskError):
    """Invalid or missing configuration."""


class StoreError(AgentDeskError):
    """Error reading or writing the record store."""


class ApprovalError(AgentDeskError):
    """An approval item cannot move to the requested status."""
