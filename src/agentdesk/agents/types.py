"""Agent configuration data models."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from agentdesk.db.queries import loads_json


@dataclass(slots=True, frozen=True)
class AgentConfig:
    id: str
    name: str
    display_name: str
    role: str
    system_prompt: str
    tools: tuple[str, ...] = ()
    model: str = "claude-sonnet-4-5-20250929"
    temperature: float = 0.7
    is_active: bool = True
    avatar_url: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> AgentConfig:
        raw_tools = loads_json(row["tools_json"], [])
        tools = tuple(str(item) for item in raw_tools if isinstance(item, str) and item)
        temperature = row["temperature"]
        return cls(
            id=str(row["id"]),
            name=str(row["name"]),
            display_name=str(row["display_name"]),
            role=str(row["role"]),
            system_prompt=str(row["system_prompt"]),
            tools=tools,
            model=str(row["model"]),
            temperature=0.7 if temperature is None else float(temperature),
            is_active=bool(row["is_active"]),
            avatar_url=row["avatar_url"],
        )


@dataclass(slots=True)
class AgentSummary:
    """Roster entry: an active agent plus usage counters."""

    config: AgentConfig
    memory_count: int = 0
    activity_count_24h: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.config.id,
            "name": self.config.name,
            "display_name": self.config.display_name,
            "role": self.config.role,
            "avatar_url": self.config.avatar_url,
            "tools": list(self.config.tools),
            "model": self.config.model,
            "is_active": self.config.is_active,
            "memory_count": self.memory_count,
            "activity_count_24h": self.activity_count_24h,
        }
