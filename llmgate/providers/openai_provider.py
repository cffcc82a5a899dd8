"""
OpenAI and OpenAI-compatible adapter.

Speaks the chat completions / embeddings API through the official
openai SDK. The same adapter serves every vendor that exposes an
OpenAI-compatible endpoint (OpenRouter, Mistral, Groq, Gemini,
Azure OpenAI, custom gateways) by pointing base_url elsewhere.

Usage:
    from llmgate.providers.openai_provider import OpenAIProvider

    provider = OpenAIProvider({"api_key": "sk-...", "default_model": "gpt-4o"})
    response = provider.chat_completion([{"role": "user", "content": "Hi"}])
    print(response.content)

    # Tests inject a mock client
    provider = OpenAIProvider({"api_key": "test"}, client=MagicMock())
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator, Optional, Union

from llmgate.domain.enums import ModelCapability
from llmgate.domain.responses import (
    CompletionResponse,
    EmbeddingResponse,
    UsageStatistics,
    VisionResponse,
)
from llmgate.providers.base import BaseProvider
from llmgate.providers.contracts import StreamingCapable, ToolCapable, VisionCapable

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4096
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
IMAGE_FORMATS = ["png", "jpeg", "jpg", "gif", "webp"]
MAX_IMAGE_SIZE = 20 * 1024 * 1024  # 20 MB

# Option keys passed through to the chat completions payload as-is
_PASSTHROUGH = ("top_p", "frequency_penalty", "presence_penalty")


class OpenAIProvider(BaseProvider, VisionCapable, StreamingCapable, ToolCapable):
    """Adapter for OpenAI and OpenAI-compatible chat APIs."""

    provider_identifier = "openai"
    provider_name = "OpenAI"
    default_base_url = "https://api.openai.com/v1"
    fallback_model = "gpt-4o"
    embedding_model = DEFAULT_EMBEDDING_MODEL
    features = frozenset({
        ModelCapability.CHAT.value,
        ModelCapability.COMPLETION.value,
        ModelCapability.EMBEDDINGS.value,
        ModelCapability.VISION.value,
        ModelCapability.STREAMING.value,
        ModelCapability.TOOLS.value,
        ModelCapability.JSON_MODE.value,
    })

    # --- Client ---

    def _get_client(self) -> Any:
        """Return the injected client, or build one from config."""
        if self._client is None:
            import openai

            self._client = openai.OpenAI(
                api_key=self.api_key,
                base_url=self.base_url or None,
                organization=self.organization_id or None,
                timeout=float(self.timeout),
                max_retries=self.max_retries,
            )
        return self._client

    def get_available_models(self) -> dict[str, str]:
        return {
            "gpt-4o": "GPT-4o",
            "gpt-4o-mini": "GPT-4o Mini (Fast)",
            "o3": "O3 (Advanced Reasoning)",
            "o4-mini": "O4 Mini (Reasoning)",
            "gpt-4.1": "GPT-4.1",
        }

    def test_connection(self) -> dict[str, Any]:
        listed = self._get_client().models.list()
        models = {m.id: m.id for m in getattr(listed, "data", listed)}
        return {
            "success": True,
            "message": f"Connection successful. Found {len(models)} models.",
            "models": models,
        }

    # --- Chat ---

    def chat_completion(
        self,
        messages: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> CompletionResponse:
        options = options or {}
        payload = self._build_chat_payload(messages, options)

        response = self._get_client().chat.completions.create(**payload)
        return self._to_completion(response, payload["model"])

    def _build_chat_payload(
        self,
        messages: list[dict[str, Any]],
        options: dict[str, Any],
    ) -> dict[str, Any]:
        system_prompt = options.get("system_prompt")
        if system_prompt and not any(m.get("role") == "system" for m in messages):
            messages = [{"role": "system", "content": system_prompt}, *messages]

        temperature = options.get("temperature")
        max_tokens = options.get("max_tokens")
        payload: dict[str, Any] = {
            "model": self._model_for(options),
            "messages": messages,
            "temperature": DEFAULT_TEMPERATURE if temperature is None else temperature,
            "max_tokens": max_tokens or DEFAULT_MAX_TOKENS,
        }
        for key in _PASSTHROUGH:
            if options.get(key) is not None:
                payload[key] = options[key]
        if options.get("stop_sequences"):
            payload["stop"] = options["stop_sequences"]
        if options.get("response_format") == "json":
            payload["response_format"] = {"type": "json_object"}
        return payload

    def _to_completion(
        self,
        response: Any,
        requested_model: str,
        tool_calls: Optional[list[dict[str, Any]]] = None,
    ) -> CompletionResponse:
        choice = response.choices[0] if response.choices else None
        content = ""
        finish_reason = "stop"
        if choice is not None:
            if choice.message is not None:
                content = choice.message.content or ""
            finish_reason = choice.finish_reason or "stop"

        return CompletionResponse(
            content=content,
            model=getattr(response, "model", None) or requested_model,
            usage=_usage(response),
            finish_reason=finish_reason,
            provider=self.identifier,
            tool_calls=tool_calls,
        )

    # --- Embeddings ---

    def embeddings(
        self,
        input: Union[str, list[str]],
        options: Optional[dict[str, Any]] = None,
    ) -> EmbeddingResponse:
        options = options or {}
        texts = [input] if isinstance(input, str) else list(input)
        payload: dict[str, Any] = {
            "model": options.get("model") or self.embedding_model,
            "input": texts,
        }
        if options.get("dimensions"):
            payload["dimensions"] = options["dimensions"]

        response = self._get_client().embeddings.create(**payload)

        return EmbeddingResponse(
            embeddings=[list(item.embedding) for item in response.data],
            model=getattr(response, "model", None) or payload["model"],
            usage=_usage(response),
            provider=self.identifier,
        )

    # --- Vision ---

    def analyze_image(
        self,
        content: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> VisionResponse:
        options = options or {}
        detail = options.get("detail_level")
        if detail:
            content = [_with_detail(part, detail) for part in content]

        messages: list[dict[str, Any]] = [{"role": "user", "content": content}]
        if options.get("system_prompt"):
            messages.insert(0, {"role": "system", "content": options["system_prompt"]})

        payload: dict[str, Any] = {
            "model": self._model_for(options),
            "messages": messages,
            "max_tokens": options.get("max_tokens") or DEFAULT_MAX_TOKENS,
        }
        if options.get("temperature") is not None:
            payload["temperature"] = options["temperature"]

        response = self._get_client().chat.completions.create(**payload)

        choice = response.choices[0] if response.choices else None
        description = ""
        if choice is not None and choice.message is not None:
            description = choice.message.content or ""

        return VisionResponse(
            description=description,
            model=getattr(response, "model", None) or payload["model"],
            usage=_usage(response),
            provider=self.identifier,
        )

    def supported_image_formats(self) -> list[str]:
        return list(IMAGE_FORMATS)

    def max_image_size(self) -> int:
        return MAX_IMAGE_SIZE

    # --- Streaming ---

    def stream_chat_completion(
        self,
        messages: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> Iterator[str]:
        payload = self._build_chat_payload(messages, options or {})
        payload["stream"] = True

        # Generator body runs on first next(); no request before that
        stream = self._get_client().chat.completions.create(**payload)
        for chunk in stream:
            if not chunk.choices:
                continue
            text = chunk.choices[0].delta.content
            if text:
                yield text

    # --- Tools ---

    def chat_completion_with_tools(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> CompletionResponse:
        options = options or {}
        payload = self._build_chat_payload(messages, options)
        if tools:
            payload["tools"] = tools
            if options.get("tool_choice"):
                payload["tool_choice"] = options["tool_choice"]
            if options.get("parallel_tool_calls") is not None:
                payload["parallel_tool_calls"] = options["parallel_tool_calls"]

        response = self._get_client().chat.completions.create(**payload)

        tool_calls: list[dict[str, Any]] = []
        choice = response.choices[0] if response.choices else None
        if choice is not None and choice.message is not None and choice.message.tool_calls:
            for call in choice.message.tool_calls:
                try:
                    arguments = json.loads(call.function.arguments or "{}")
                except json.JSONDecodeError:
                    logger.warning(
                        "tool_arguments_invalid_json",
                        extra={"provider": self.identifier, "tool": call.function.name},
                    )
                    arguments = {}
                tool_calls.append({
                    "id": call.id,
                    "type": "function",
                    "function": {
                        "name": call.function.name,
                        "arguments": arguments,
                    },
                })

        return self._to_completion(response, payload["model"], tool_calls or None)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _usage(response: Any) -> UsageStatistics:
    usage = getattr(response, "usage", None)
    if usage is None:
        return UsageStatistics()
    prompt = getattr(usage, "prompt_tokens", 0) or 0
    completion = getattr(usage, "completion_tokens", 0) or 0
    return UsageStatistics.from_tokens(prompt, completion)


def _with_detail(part: dict[str, Any], detail: str) -> dict[str, Any]:
    """Set image_url.detail on image parts that don't specify one."""
    if part.get("type") != "image_url":
        return part
    image_url = dict(part.get("image_url") or {})
    image_url.setdefault("detail", detail)
    return {**part, "image_url": image_url}
