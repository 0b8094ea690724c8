"""Anthropic Messages API adapter over httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from agentdesk.config import get_settings
from agentdesk.errors import ProviderError
from agentdesk.providers.base import (
    ContentBlock,
    ModelResponse,
    TextBlock,
    ToolDeclaration,
    ToolResultBlock,
    ToolUseBlock,
    Turn,
    TurnBlock,
)

logger = logging.getLogger(__name__)


class AnthropicProvider:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        api_version: str | None = None,
        timeout_seconds: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key
        self.base_url = (base_url or settings.anthropic_base_url).rstrip("/")
        self.api_version = api_version or settings.anthropic_version
        self.timeout_seconds = max(10, int(timeout_seconds or settings.model_timeout_seconds))
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
        }

    @staticmethod
    def _block_to_wire(block: TurnBlock) -> dict[str, Any]:
        match block:
            case TextBlock(text=text):
                return {"type": "text", "text": text}
            case ToolUseBlock(id=block_id, name=name, input=arguments):
                return {"type": "tool_use", "id": block_id, "name": name, "input": arguments}
            case ToolResultBlock(tool_use_id=tool_use_id, content=content):
                return {"type": "tool_result", "tool_use_id": tool_use_id, "content": content}

    @classmethod
    def _to_messages(cls, turns: list[Turn]) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        for turn in turns:
            if isinstance(turn.content, str):
                messages.append({"role": turn.role, "content": turn.content})
            else:
                messages.append(
                    {
                        "role": turn.role,
                        "content": [cls._block_to_wire(block) for block in turn.content],
                    }
                )
        return messages

    @staticmethod
    def _to_tools(tools: list[ToolDeclaration] | None) -> list[dict[str, Any]] | None:
        if not tools:
            return None
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.input_schema,
            }
            for tool in tools
        ]

    @staticmethod
    def _parse_response(payload: dict[str, Any]) -> ModelResponse:
        raw_content = payload.get("content")
        if not isinstance(raw_content, list):
            raise ProviderError("anthropic response missing content", retryable=False)
        blocks: list[ContentBlock] = []
        for raw in raw_content:
            if not isinstance(raw, dict):
                continue
            match raw.get("type"):
                case "text":
                    blocks.append(TextBlock(text=str(raw.get("text", ""))))
                case "tool_use":
                    arguments = raw.get("input")
                    blocks.append(
                        ToolUseBlock(
                            id=str(raw.get("id", "")),
                            name=str(raw.get("name", "")),
                            input=arguments if isinstance(arguments, dict) else {},
                        )
                    )
                case other:
                    logger.debug("Ignoring unsupported content block type: %s", other)
        usage_raw = payload.get("usage")
        usage = (
            {k: int(v) for k, v in usage_raw.items() if isinstance(v, int)}
            if isinstance(usage_raw, dict)
            else {}
        )
        return ModelResponse(
            content=blocks,
            stop_reason=str(payload.get("stop_reason") or "end_turn"),
            usage=usage,
        )

    async def generate(
        self,
        *,
        model: str,
        system: str,
        messages: list[Turn],
        tools: list[ToolDeclaration] | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ) -> ModelResponse:
        body: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "system": system,
            "messages": self._to_messages(messages),
            "temperature": temperature,
        }
        wire_tools = self._to_tools(tools)
        if wire_tools is not None:
            body["tools"] = wire_tools
        endpoint = f"{self.base_url}/messages"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(endpoint, json=body, headers=self._headers())
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise ProviderError(
                f"anthropic request failed with HTTP {status}",
                retryable=status == 429 or status >= 500,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"anthropic request failed: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("anthropic response is not valid JSON", retryable=False) from exc
        if not isinstance(payload, dict):
            raise ProviderError("anthropic response is not an object", retryable=False)
        return self._parse_response(payload)

    async def health_check(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}/models", headers=self._headers())
            return response.status_code < 400
        except httpx.HTTPError:
            return False
