"""Tool registration helpers."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from agentdesk.providers.base import ToolDeclaration

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ToolContext:
    """Per-invocation identity handed to every tool handler."""

    agent_id: str
    agent_name: str
    company_id: str
    conn: sqlite3.Connection = field(repr=False, compare=False)


ToolCallable = Callable[[dict[str, Any], ToolContext], Awaitable[Any]]


def schema(
    properties: dict[str, dict[str, Any]] | None = None,
    required: Iterable[str] = (),
) -> dict[str, Any]:
    """Build a JSON-schema object for tool input."""
    body: dict[str, Any] = {"type": "object", "properties": properties or {}}
    required_list = list(required)
    if required_list:
        body["required"] = required_list
    return body


@dataclass(slots=True)
class ToolDef:
    name: str
    description: str
    handler: ToolCallable
    input_schema: dict[str, Any] = field(default_factory=schema)

    def declaration(self) -> ToolDeclaration:
        return ToolDeclaration(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
        )


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: dict[str, ToolDef] = {}

    def register(
        self,
        name: str,
        description: str,
        handler: ToolCallable,
        input_schema: dict[str, Any] | None = None,
    ) -> None:
        if name in self._tools:
            logger.warning("Tool %s registered twice; keeping the latest handler", name)
        self._tools[name] = ToolDef(
            name=name,
            description=description,
            handler=handler,
            input_schema=input_schema or schema(),
        )

    def tool(
        self,
        name: str,
        description: str,
        input_schema: dict[str, Any] | None = None,
    ) -> Callable[[ToolCallable], ToolCallable]:
        """Decorator form of ``register``."""

        def _wrap(handler: ToolCallable) -> ToolCallable:
            self.register(name, description, handler, input_schema)
            return handler

        return _wrap

    def get(self, name: str) -> ToolDef | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return sorted(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def declarations(self, names: Iterable[str]) -> list[ToolDeclaration]:
        """Declarations for the given names, in order; unknown names are dropped."""
        declared: list[ToolDeclaration] = []
        for name in names:
            tool = self._tools.get(name)
            if tool is None:
                logger.warning("Unknown tool: %s", name)
                continue
            declared.append(tool.declaration())
        return declared

    def has_tools(self, names: Iterable[str]) -> tuple[list[str], list[str]]:
        found: list[str] = []
        missing: list[str] = []
        for name in names:
            (found if name in self._tools else missing).append(name)
        return found, missing
