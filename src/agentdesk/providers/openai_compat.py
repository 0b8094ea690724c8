"""Adapter for OpenAI-compatible chat completions servers (SGLang, vLLM, Ollama)."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from agentdesk.config import get_settings
from agentdesk.errors import ProviderError
from agentdesk.ids import new_id
from agentdesk.providers.base import (
    ContentBlock,
    ModelResponse,
    TextBlock,
    ToolDeclaration,
    ToolResultBlock,
    ToolUseBlock,
    Turn,
)

logger = logging.getLogger(__name__)

_FINISH_REASONS = {
    "stop": "end_turn",
    "tool_calls": "tool_use",
    "length": "max_tokens",
}


class OpenAICompatProvider:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout_seconds: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.openai_compat_base_url).rstrip("/")
        self.api_key = settings.openai_compat_api_key if api_key is None else api_key
        self.timeout_seconds = max(10, int(timeout_seconds or settings.model_timeout_seconds))
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"authorization": f"Bearer {self.api_key}"}

    @staticmethod
    def _coerce_text(value: object) -> str:
        if isinstance(value, str):
            return value
        if isinstance(value, list):
            chunks: list[str] = []
            for item in value:
                if isinstance(item, str):
                    chunks.append(item)
                elif isinstance(item, dict):
                    text = item.get("text")
                    if isinstance(text, str):
                        chunks.append(text)
            return "".join(chunks)
        return ""

    @staticmethod
    def _to_messages(system: str, turns: list[Turn]) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = [{"role": "system", "content": system}]
        for turn in turns:
            if isinstance(turn.content, str):
                messages.append({"role": turn.role, "content": turn.content})
                continue
            texts: list[str] = []
            tool_calls: list[dict[str, Any]] = []
            tool_results: list[dict[str, Any]] = []
            for block in turn.content:
                match block:
                    case TextBlock(text=text):
                        texts.append(text)
                    case ToolUseBlock(id=block_id, name=name, input=arguments):
                        tool_calls.append(
                            {
                                "id": block_id,
                                "type": "function",
                                "function": {"name": name, "arguments": json.dumps(arguments)},
                            }
                        )
                    case ToolResultBlock(tool_use_id=tool_use_id, content=content):
                        tool_results.append(
                            {"role": "tool", "tool_call_id": tool_use_id, "content": content}
                        )
            if turn.role == "assistant":
                message: dict[str, Any] = {"role": "assistant", "content": "\n".join(texts)}
                if tool_calls:
                    message["tool_calls"] = tool_calls
                messages.append(message)
            else:
                messages.extend(tool_results)
                if texts:
                    messages.append({"role": "user", "content": "\n".join(texts)})
        return messages

    @staticmethod
    def _to_tools(tools: list[ToolDeclaration] | None) -> list[dict[str, Any]] | None:
        if not tools:
            return None
        normalized: list[dict[str, Any]] = []
        for tool in tools:
            function: dict[str, Any] = {"name": tool.name, "parameters": tool.input_schema}
            if tool.description:
                function["description"] = tool.description
            normalized.append({"type": "function", "function": function})
        return normalized

    @staticmethod
    def _parse_arguments(arguments: object) -> dict[str, Any]:
        if isinstance(arguments, dict):
            return arguments
        if isinstance(arguments, str):
            try:
                decoded = json.loads(arguments)
            except json.JSONDecodeError:
                return {}
            if isinstance(decoded, dict):
                return decoded
        return {}

    @classmethod
    def _parse_response(cls, payload: dict[str, Any]) -> ModelResponse:
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise ProviderError("chat completion response missing choices", retryable=False)
        first = choices[0]
        message = first.get("message")
        if not isinstance(message, dict):
            raise ProviderError("chat completion response message missing", retryable=False)

        blocks: list[ContentBlock] = []
        text = cls._coerce_text(message.get("content"))
        if text:
            blocks.append(TextBlock(text=text))
        tool_calls_raw = message.get("tool_calls") or []
        if isinstance(tool_calls_raw, list):
            for call in tool_calls_raw:
                if not isinstance(call, dict):
                    continue
                fn = call.get("function")
                if not isinstance(fn, dict):
                    continue
                name = fn.get("name")
                if not isinstance(name, str) or not name:
                    continue
                blocks.append(
                    ToolUseBlock(
                        id=str(call.get("id") or new_id("call")),
                        name=name,
                        input=cls._parse_arguments(fn.get("arguments", {})),
                    )
                )
        finish = str(first.get("finish_reason") or "stop")
        return ModelResponse(content=blocks, stop_reason=_FINISH_REASONS.get(finish, finish))

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
            "messages": self._to_messages(system, messages),
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        normalized_tools = self._to_tools(tools)
        if normalized_tools is not None:
            body["tools"] = normalized_tools
        endpoint = f"{self.base_url}/chat/completions"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(endpoint, json=body, headers=self._headers())
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise ProviderError(
                f"chat completion request failed with HTTP {status}",
                retryable=status == 429 or status >= 500,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"chat completion request failed: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError(
                "chat completion response is not valid JSON", retryable=False
            ) from exc
        if not isinstance(payload, dict):
            raise ProviderError("chat completion response is not an object", retryable=False)
        return self._parse_response(payload)

    async def health_check(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}/models", headers=self._headers())
            return response.status_code < 400
        except httpx.HTTPError:
            return False
