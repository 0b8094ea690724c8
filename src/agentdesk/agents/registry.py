"""Agent registry backed by the agents table."""

from __future__ import annotations

import logging
import sqlite3

from agentdesk.agents.types import AgentConfig, AgentSummary
from agentdesk.config import get_settings
from agentdesk.db.queries import (
    count_memories,
    count_recent_activity,
    get_agent_row,
    list_active_agent_rows,
    upsert_agent_row,
)
from agentdesk.errors import AgentNotFoundError

logger = logging.getLogger(__name__)


class AgentRegistry:
    """Loads active agent configurations by name.

    The per-instance cache only ever holds active configs and is dropped by
    ``invalidate()`` or any write that goes through ``upsert``.
    """

    def __init__(self, conn: sqlite3.Connection, *, cache: bool | None = None) -> None:
        self.conn = conn
        if cache is None:
            cache = bool(get_settings().agent_cache_enabled)
        self._cache_enabled = cache
        self._cache: dict[str, AgentConfig] = {}

    def load(self, name: str) -> AgentConfig:
        if self._cache_enabled and name in self._cache:
            return self._cache[name]
        row = get_agent_row(self.conn, name)
        if row is None:
            raise AgentNotFoundError(name)
        config = AgentConfig.from_row(row)
        if self._cache_enabled:
            self._cache[name] = config
        return config

    def list_active(self) -> list[AgentConfig]:
        return [AgentConfig.from_row(row) for row in list_active_agent_rows(self.conn)]

    def summaries(self) -> list[AgentSummary]:
        """Active roster with memory and 24h activity counts."""
        return [
            AgentSummary(
                config=config,
                memory_count=count_memories(self.conn, config.id),
                activity_count_24h=count_recent_activity(self.conn, config.id),
            )
            for config in self.list_active()
        ]

    def upsert(
        self,
        *,
        name: str,
        display_name: str,
        role: str,
        system_prompt: str,
        tools: list[str] | tuple[str, ...] = (),
        model: str | None = None,
        temperature: float = 0.7,
        is_active: bool = True,
        avatar_url: str | None = None,
    ) -> str:
        agent_id = upsert_agent_row(
            self.conn,
            {
                "name": name,
                "display_name": display_name,
                "role": role,
                "system_prompt": system_prompt,
                "tools": list(tools),
                "model": model or get_settings().default_model,
                "temperature": temperature,
                "is_active": is_active,
                "avatar_url": avatar_url,
            },
        )
        self.invalidate(name)
        logger.info("Agent config updated: %s", name)
        return agent_id

    def invalidate(self, name: str | None = None) -> None:
        if name is None:
            self._cache.clear()
        else:
            self._cache.pop(name, None)
