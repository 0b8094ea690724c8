import json

import httpx
import pytest

from agentdesk.config import get_settings
from agentdesk.errors import ConfigError, ProviderError
from agentdesk.providers.anthropic import AnthropicProvider
from agentdesk.providers.base import (
    TextBlock,
    ToolDeclaration,
    ToolResultBlock,
    ToolUseBlock,
    Turn,
)
from agentdesk.providers.factory import build_provider
from agentdesk.providers.openai_compat import OpenAICompatProvider

LOOKUP = ToolDeclaration(
    name="get_company_info",
    description="Company facts",
    input_schema={"type": "object", "properties": {}},
)
TRANSCRIPT = [
    Turn(role="user", content="Who are we?"),
    Turn(
        role="assistant",
        content=[TextBlock(text="Checking."), ToolUseBlock(id="toolu_1", name="get_company_info")],
    ),
    Turn(role="user", content=[ToolResultBlock(tool_use_id="toolu_1", content='{"name": "BSD"}')]),
]


@pytest.mark.asyncio
async def test_anthropic_generate_round_trip() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content.decode("utf-8"))
        return httpx.Response(
            200,
            json={
                "content": [
                    {"type": "text", "text": "Let me look."},
                    {"type": "tool_use", "id": "toolu_2", "name": "save_memory", "input": {"a": 1}},
                    {"type": "thinking", "thinking": "..."},
                ],
                "stop_reason": "tool_use",
                "usage": {"input_tokens": 12, "output_tokens": 7},
            },
        )

    provider = AnthropicProvider(
        "sk-test", base_url="https://api.example/v1", transport=httpx.MockTransport(handler)
    )
    response = await provider.generate(
        model="claude-test", system="Be brief.", messages=TRANSCRIPT, tools=[LOOKUP]
    )

    assert seen["url"] == "https://api.example/v1/messages"
    assert seen["headers"]["x-api-key"] == "sk-test"
    assert seen["headers"]["anthropic-version"] == "2023-06-01"
    body = seen["body"]
    assert body["system"] == "Be brief."
    assert body["tools"][0]["input_schema"] == {"type": "object", "properties": {}}
    assert body["messages"][1]["content"][1] == {
        "type": "tool_use",
        "id": "toolu_1",
        "name": "get_company_info",
        "input": {},
    }
    assert body["messages"][2]["content"][0]["type"] == "tool_result"

    assert response.stop_reason == "tool_use"
    assert response.content == [
        TextBlock(text="Let me look."),
        ToolUseBlock(id="toolu_2", name="save_memory", input={"a": 1}),
    ]
    assert response.usage == {"input_tokens": 12, "output_tokens": 7}


@pytest.mark.asyncio
async def test_anthropic_http_errors_become_provider_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(529, json={"error": {"type": "overloaded_error"}})

    provider = AnthropicProvider("sk-test", transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderError) as exc_info:
        await provider.generate(model="m", system="", messages=[Turn(role="user", content="x")])
    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_anthropic_client_error_is_not_retryable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": {"type": "invalid_request_error"}})

    provider = AnthropicProvider("sk-test", transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderError) as exc_info:
        await provider.generate(model="m", system="", messages=[Turn(role="user", content="x")])
    assert exc_info.value.retryable is False


@pytest.mark.asyncio
async def test_openai_compat_maps_tool_calls() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content.decode("utf-8"))
        return httpx.Response(
            200,
            json={
                "choices": [
                    {
                        "message": {
                            "role": "assistant",
                            "content": None,
                            "tool_calls": [
                                {
                                    "id": "call_9",
                                    "type": "function",
                                    "function": {
                                        "name": "track_keywords",
                                        "arguments": '{"keywords": ["dentist"]}',
                                    },
                                }
                            ],
                        },
                        "finish_reason": "tool_calls",
                    }
                ]
            },
        )

    provider = OpenAICompatProvider(
        base_url="http://llm.local/v1", api_key="", transport=httpx.MockTransport(handler)
    )
    response = await provider.generate(
        model="local-model", system="sys", messages=TRANSCRIPT, tools=[LOOKUP]
    )

    assert seen["url"] == "http://llm.local/v1/chat/completions"
    messages = seen["body"]["messages"]
    assert messages[0] == {"role": "system", "content": "sys"}
    assert messages[2]["tool_calls"][0]["function"]["name"] == "get_company_info"
    assert messages[3] == {"role": "tool", "tool_call_id": "toolu_1", "content": '{"name": "BSD"}'}
    assert seen["body"]["tools"][0]["function"]["parameters"] == LOOKUP.input_schema

    assert response.stop_reason == "tool_use"
    assert response.content == [
        ToolUseBlock(id="call_9", name="track_keywords", input={"keywords": ["dentist"]})
    ]


@pytest.mark.asyncio
async def test_openai_compat_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    provider = OpenAICompatProvider(
        base_url="http://llm.local/v1", transport=httpx.MockTransport(handler)
    )
    with pytest.raises(ProviderError):
        await provider.generate(model="m", system="", messages=[Turn(role="user", content="x")])


@pytest.mark.asyncio
async def test_non_json_success_body_becomes_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>bad gateway</html>")

    providers = [
        AnthropicProvider("sk-test", transport=httpx.MockTransport(handler)),
        OpenAICompatProvider(
            base_url="http://llm.local/v1", transport=httpx.MockTransport(handler)
        ),
    ]
    for provider in providers:
        with pytest.raises(ProviderError) as exc_info:
            await provider.generate(
                model="m", system="", messages=[Turn(role="user", content="x")]
            )
        assert exc_info.value.retryable is False
        assert "not valid JSON" in str(exc_info.value)


def test_build_provider_selection(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    get_settings.cache_clear()
    with pytest.raises(ConfigError):
        build_provider(get_settings())

    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-live")
    get_settings.cache_clear()
    assert isinstance(build_provider(get_settings()), AnthropicProvider)

    monkeypatch.setenv("MODEL_PROVIDER", "openai_compat")
    get_settings.cache_clear()
    assert isinstance(build_provider(get_settings()), OpenAICompatProvider)

    monkeypatch.setenv("MODEL_PROVIDER", "smoke-signals")
    get_settings.cache_clear()
    with pytest.raises(ConfigError):
        build_provider(get_settings())
