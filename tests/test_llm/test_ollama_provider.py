"""
Tests for the Ollama adapter.

Requests go through an httpx.Client backed by httpx.MockTransport, so
payloads and error handling are exercised end to end without a server.
"""

from __future__ import annotations

import json

import httpx
import pytest

from llmgate.exceptions import ProviderConnectionError, ProviderResponseError
from llmgate.providers.ollama_provider import OllamaProvider


# ===========================================================================
# Fixtures
# ===========================================================================

class RecordingHandler:
    """MockTransport handler: canned responses per path, requests recorded."""

    def __init__(self, routes):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes[request.url.path]
        return route(request) if callable(route) else route

    def last_json(self):
        return json.loads(self.requests[-1].content)


def _provider(routes, **config):
    handler = RecordingHandler(routes)
    client = httpx.Client(
        transport=httpx.MockTransport(handler),
        base_url="http://ollama.test",
    )
    provider = OllamaProvider({"default_model": "llama3.1:8b", **config}, client=client)
    return provider, handler


def _chat_ok(request):
    return httpx.Response(200, json={
        "model": "llama3.1:8b",
        "message": {"role": "assistant", "content": "Local hello"},
        "done": True,
        "done_reason": "stop",
        "prompt_eval_count": 20,
        "eval_count": 5,
    })


MESSAGES = [{"role": "user", "content": "Hello"}]


# ===========================================================================
# Availability & Models
# ===========================================================================

class TestAvailability:

    def test_available_without_api_key(self):
        provider = OllamaProvider()
        assert provider.is_available()
        assert provider.base_url == "http://localhost:11434"

    def test_lists_installed_models(self):
        provider, handler = _provider({
            "/api/tags": httpx.Response(200, json={"models": [{"name": "llama3.1:8b"}, {"name": "llava:13b"}]}),
        })
        assert provider.get_available_models() == {"llama3.1:8b": "llama3.1:8b", "llava:13b": "llava:13b"}
        assert handler.requests[0].method == "GET"

    def test_model_listing_error_propagates(self):
        provider, _ = _provider({"/api/tags": httpx.Response(500)})
        with pytest.raises(ProviderConnectionError):
            provider.get_available_models()

    def test_test_connection(self):
        provider, _ = _provider({"/api/tags": httpx.Response(200, json={"models": [{"name": "phi3"}]})})
        result = provider.test_connection()
        assert result["success"] is True
        assert result["models"] == {"phi3": "phi3"}


# ===========================================================================
# Chat
# ===========================================================================

class TestChat:

    def test_payload_and_response(self):
        provider, handler = _provider({"/api/chat": _chat_ok})
        response = provider.chat_completion(MESSAGES, {
            "temperature": 0.2,
            "max_tokens": 64,
            "top_p": 0.9,
            "stop_sequences": ["\n\n"],
            "response_format": "json",
            "system_prompt": "Answer in JSON.",
        })

        assert response.content == "Local hello"
        assert response.provider == "ollama"
        assert response.usage.total_tokens == 25
        assert response.usage.estimated_cost == 0.0

        payload = handler.last_json()
        assert payload["model"] == "llama3.1:8b"
        assert payload["stream"] is False
        assert payload["format"] == "json"
        assert payload["messages"][0] == {"role": "system", "content": "Answer in JSON."}
        assert payload["options"] == {
            "temperature": 0.2,
            "num_predict": 64,
            "top_p": 0.9,
            "stop": ["\n\n"],
        }

    def test_default_temperature(self):
        provider, handler = _provider({"/api/chat": _chat_ok})
        provider.chat_completion(MESSAGES)
        assert handler.last_json()["options"] == {"temperature": 0.7}

    def test_length_done_reason(self):
        provider, _ = _provider({"/api/chat": httpx.Response(200, json={
            "message": {"content": "cut"}, "done_reason": "length",
        })})
        response = provider.chat_completion(MESSAGES)
        assert response.was_truncated()
        assert response.model == "llama3.1:8b"

    def test_client_error(self):
        provider, _ = _provider({"/api/chat": httpx.Response(404, json={"error": "model not found"})})
        with pytest.raises(ProviderResponseError) as exc_info:
            provider.chat_completion(MESSAGES)
        assert exc_info.value.status_code == 404

    def test_server_error(self):
        provider, _ = _provider({"/api/chat": httpx.Response(503)})
        with pytest.raises(ProviderConnectionError) as exc_info:
            provider.chat_completion(MESSAGES)
        assert exc_info.value.status_code == 503

    def test_transport_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider, _ = _provider({"/api/chat": refuse})
        with pytest.raises(ProviderConnectionError, match="connection refused"):
            provider.chat_completion(MESSAGES)


# ===========================================================================
# Embeddings / Vision
# ===========================================================================

class TestEmbeddings:

    def test_embed(self):
        provider, handler = _provider({"/api/embed": httpx.Response(200, json={
            "model": "nomic-embed-text",
            "embeddings": [[0.1, 0.2], [0.3, 0.4]],
            "prompt_eval_count": 8,
        })})
        response = provider.embeddings(["a", "b"])

        assert response.embeddings == [[0.1, 0.2], [0.3, 0.4]]
        assert response.usage.prompt_tokens == 8
        assert handler.last_json() == {"model": "nomic-embed-text", "input": ["a", "b"]}


class TestVision:

    def test_inline_images(self):
        provider, handler = _provider({"/api/chat": _chat_ok})
        provider.analyze_image(
            [
                {"type": "text", "text": "Describe"},
                {"type": "image_url", "image_url": {"url": "data:image/png;base64,iVBOR"}},
            ],
            {"model": "llava:13b"},
        )
        payload = handler.last_json()
        assert payload["model"] == "llava:13b"
        assert payload["messages"] == [{"role": "user", "content": "Describe", "images": ["iVBOR"]}]

    def test_remote_image_rejected(self):
        provider, handler = _provider({"/api/chat": _chat_ok})
        with pytest.raises(ValueError, match="data: URLs"):
            provider.analyze_image([{"type": "image_url", "image_url": {"url": "https://x/y.png"}}])
        assert handler.requests == []


# ===========================================================================
# Streaming
# ===========================================================================

class TestStreaming:

    def test_ndjson_stream(self):
        lines = [
            {"message": {"content": "Hel"}, "done": False},
            {"message": {"content": ""}, "done": False},
            {"message": {"content": "lo"}, "done": False},
            {"message": {"content": ""}, "done": True},
        ]
        body = "\n".join(json.dumps(line) for line in lines) + "\n"
        provider, handler = _provider({"/api/chat": httpx.Response(200, text=body)})

        fragments = provider.stream_chat_completion(MESSAGES)
        assert handler.requests == []
        assert list(fragments) == ["Hel", "lo"]
        assert handler.last_json()["stream"] is True

    def test_stream_error_status(self):
        provider, _ = _provider({"/api/chat": httpx.Response(500)})
        with pytest.raises(ProviderConnectionError):
            list(provider.stream_chat_completion(MESSAGES))


# ===========================================================================
# Tools
# ===========================================================================

class TestTools:

    TOOLS = [{"type": "function", "function": {"name": "get_time", "parameters": {}}}]

    def test_tool_calls(self):
        provider, handler = _provider({"/api/chat": httpx.Response(200, json={
            "message": {
                "content": "",
                "tool_calls": [
                    {"function": {"name": "get_time", "arguments": {"tz": "UTC"}}},
                    {"function": {"name": "get_time", "arguments": '{"tz": "CET"}'}},
                ],
            },
            "done_reason": "stop",
        })})
        response = provider.chat_completion_with_tools(MESSAGES, self.TOOLS)

        assert response.finish_reason == "tool_calls"
        assert [c["id"] for c in response.tool_calls] == ["call_0", "call_1"]
        assert response.tool_calls[1]["function"]["arguments"] == {"tz": "CET"}
        assert handler.last_json()["tools"] == self.TOOLS

    def test_tool_choice_none_omits_tools(self):
        provider, handler = _provider({"/api/chat": _chat_ok})
        response = provider.chat_completion_with_tools(MESSAGES, self.TOOLS, {"tool_choice": "none"})
        assert "tools" not in handler.last_json()
        assert response.tool_calls is None
        assert response.is_complete()
