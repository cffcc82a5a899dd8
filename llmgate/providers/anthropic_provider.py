"""
Anthropic Claude adapter.

Uses the anthropic SDK's Messages API. System messages are lifted out
of the conversation into the `system` parameter, OpenAI-style image
parts are translated to Claude image blocks, and tool definitions in
OpenAI function format are translated to Claude's input_schema format.

Claude has no embeddings endpoint; embeddings() raises
UnsupportedFeatureError.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Optional, Union

from llmgate.domain.enums import ModelCapability
from llmgate.domain.responses import (
    CompletionResponse,
    EmbeddingResponse,
    UsageStatistics,
    VisionResponse,
)
from llmgate.exceptions import UnsupportedFeatureError
from llmgate.providers.base import BaseProvider
from llmgate.providers.contracts import StreamingCapable, ToolCapable, VisionCapable

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4096
IMAGE_FORMATS = ["png", "jpeg", "jpg", "gif", "webp"]
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5 MB per image

# Claude stop_reason -> normalized finish_reason
_STOP_REASONS = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
    "tool_use": "tool_calls",
    "refusal": "content_filter",
}

_TOOL_CHOICES = {
    "auto": {"type": "auto"},
    "required": {"type": "any"},
    "none": {"type": "none"},
}


class AnthropicProvider(BaseProvider, VisionCapable, StreamingCapable, ToolCapable):
    """Adapter for Anthropic's Claude models."""

    provider_identifier = "anthropic"
    provider_name = "Anthropic Claude"
    default_base_url = "https://api.anthropic.com"
    fallback_model = "claude-sonnet-4-20250514"
    features = frozenset({
        ModelCapability.CHAT.value,
        ModelCapability.COMPLETION.value,
        ModelCapability.VISION.value,
        ModelCapability.STREAMING.value,
        ModelCapability.TOOLS.value,
    })

    def _get_client(self) -> Any:
        if self._client is None:
            import anthropic

            self._client = anthropic.Anthropic(
                api_key=self.api_key,
                base_url=self.base_url or None,
                timeout=float(self.timeout),
                max_retries=self.max_retries,
            )
        return self._client

    def get_available_models(self) -> dict[str, str]:
        return {
            "claude-sonnet-4-20250514": "Claude Sonnet 4",
            "claude-opus-4-20250514": "Claude Opus 4",
            "claude-3-5-haiku-20241022": "Claude 3.5 Haiku (Fast)",
        }

    # --- Chat ---

    def chat_completion(
        self,
        messages: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> CompletionResponse:
        options = options or {}
        kwargs = self._build_kwargs(messages, options)

        response = self._get_client().messages.create(**kwargs)
        content, tool_calls = _parse_blocks(response)
        return self._to_completion(response, kwargs["model"], content, tool_calls or None)

    def _build_kwargs(
        self,
        messages: list[dict[str, Any]],
        options: dict[str, Any],
    ) -> dict[str, Any]:
        system_parts = [m["content"] for m in messages if m.get("role") == "system"]
        if options.get("system_prompt") and not system_parts:
            system_parts = [options["system_prompt"]]
        conversation = [
            {"role": m["role"], "content": _to_claude_content(m["content"])}
            for m in messages
            if m.get("role") != "system"
        ]

        temperature = options.get("temperature")
        kwargs: dict[str, Any] = {
            "model": self._model_for(options),
            "max_tokens": options.get("max_tokens") or DEFAULT_MAX_TOKENS,
            # Claude caps temperature at 1.0
            "temperature": min(1.0, DEFAULT_TEMPERATURE if temperature is None else temperature),
            "messages": conversation,
        }
        if system_parts:
            kwargs["system"] = "\n\n".join(system_parts)
        if options.get("top_p") is not None:
            kwargs["top_p"] = options["top_p"]
        if options.get("stop_sequences"):
            kwargs["stop_sequences"] = options["stop_sequences"]
        return kwargs

    def _to_completion(
        self,
        response: Any,
        requested_model: str,
        content: str,
        tool_calls: Optional[list[dict[str, Any]]] = None,
    ) -> CompletionResponse:
        stop_reason = getattr(response, "stop_reason", None) or "end_turn"
        return CompletionResponse(
            content=content,
            model=getattr(response, "model", None) or requested_model,
            usage=_usage(response),
            finish_reason=_STOP_REASONS.get(stop_reason, stop_reason),
            provider=self.identifier,
            tool_calls=tool_calls,
        )

    # --- Embeddings ---

    def embeddings(
        self,
        input: Union[str, list[str]],
        options: Optional[dict[str, Any]] = None,
    ) -> EmbeddingResponse:
        raise UnsupportedFeatureError(
            f'Provider "{self.identifier}" does not support embeddings',
            capability=ModelCapability.EMBEDDINGS.value,
            provider_id=self.identifier,
        )

    # --- Vision ---

    def analyze_image(
        self,
        content: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> VisionResponse:
        options = options or {}
        messages: list[dict[str, Any]] = [{"role": "user", "content": content}]
        kwargs = self._build_kwargs(messages, options)

        response = self._get_client().messages.create(**kwargs)
        description, _ = _parse_blocks(response)

        return VisionResponse(
            description=description,
            model=getattr(response, "model", None) or kwargs["model"],
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
        kwargs = self._build_kwargs(messages, options or {})

        with self._get_client().messages.stream(**kwargs) as stream:
            for text in stream.text_stream:
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
        kwargs = self._build_kwargs(messages, options)
        if tools:
            kwargs["tools"] = [to_claude_tool(t) for t in tools]
            choice = _TOOL_CHOICES.get(options.get("tool_choice") or "")
            if choice is not None:
                choice = dict(choice)
                if options.get("parallel_tool_calls") is False and choice["type"] != "none":
                    choice["disable_parallel_tool_use"] = True
                kwargs["tool_choice"] = choice

        response = self._get_client().messages.create(**kwargs)
        content, tool_calls = _parse_blocks(response)
        return self._to_completion(response, kwargs["model"], content, tool_calls or None)


# ---------------------------------------------------------------------------
# Translation Helpers
# ---------------------------------------------------------------------------

def to_claude_tool(tool: dict[str, Any]) -> dict[str, Any]:
    """Translate an OpenAI function tool into Claude's tool format."""
    if "input_schema" in tool:
        return tool
    function = tool.get("function", tool)
    return {
        "name": function["name"],
        "description": function.get("description", ""),
        "input_schema": function.get("parameters") or {"type": "object", "properties": {}},
    }


def _to_claude_content(content: Any) -> Any:
    """Translate OpenAI-style multimodal parts; plain strings pass through."""
    if not isinstance(content, list):
        return content
    return [_to_claude_part(part) for part in content]


def _to_claude_part(part: dict[str, Any]) -> dict[str, Any]:
    if part.get("type") != "image_url":
        return part

    url = (part.get("image_url") or {}).get("url", "")
    if url.startswith("data:"):
        # data:<media_type>;base64,<data>
        header, _, data = url.partition(",")
        media_type = header[len("data:"):].split(";")[0] or "image/png"
        return {
            "type": "image",
            "source": {"type": "base64", "media_type": media_type, "data": data},
        }
    return {"type": "image", "source": {"type": "url", "url": url}}


def _parse_blocks(response: Any) -> tuple[str, list[dict[str, Any]]]:
    text_parts: list[str] = []
    tool_calls: list[dict[str, Any]] = []

    for block in response.content or []:
        block_type = getattr(block, "type", None)
        if block_type == "text":
            text_parts.append(block.text)
        elif block_type == "tool_use":
            tool_calls.append({
                "id": block.id,
                "type": "function",
                "function": {
                    "name": block.name,
                    "arguments": block.input if isinstance(block.input, dict) else {},
                },
            })

    return "\n".join(text_parts), tool_calls


def _usage(response: Any) -> UsageStatistics:
    usage = getattr(response, "usage", None)
    if usage is None:
        return UsageStatistics()
    return UsageStatistics.from_tokens(
        getattr(usage, "input_tokens", 0) or 0,
        getattr(usage, "output_tokens", 0) or 0,
    )
