"""Provider contracts and the content-block types exchanged with the model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol


@dataclass(slots=True, frozen=True)
class TextBlock:
    text: str


@dataclass(slots=True, frozen=True)
class ToolUseBlock:
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class ToolResultBlock:
    tool_use_id: str
    content: str


# What the model can emit.
ContentBlock = TextBlock | ToolUseBlock
# What a transcript turn can carry.
TurnBlock = TextBlock | ToolUseBlock | ToolResultBlock

Role = Literal["user", "assistant"]


@dataclass(slots=True)
class Turn:
    role: Role
    content: str | list[TurnBlock]


@dataclass(slots=True, frozen=True)
class ToolDeclaration:
    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass(slots=True)
class ModelResponse:
    content: list[ContentBlock]
    stop_reason: str = "end_turn"
    usage: dict[str, int] = field(default_factory=dict)


class ModelProvider(Protocol):
    async def generate(
        self,
        *,
        model: str,
        system: str,
        messages: list[Turn],
        tools: list[ToolDeclaration] | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ) -> ModelResponse: ...

    async def health_check(self) -> bool: ...
