"""
Ollama local adapter.

Talks to a local (or self-hosted) Ollama server over its native HTTP
API with httpx. No API key is needed; the adapter is available as soon
as it has a base URL.

Endpoints used:
    POST /api/chat    chat, vision, tools, NDJSON streaming
    POST /api/embed   embeddings
    GET  /api/tags    installed models

Usage:
    provider = OllamaProvider({"base_url": "http://localhost:11434",
                               "default_model": "llama3.1:8b"})
    response = provider.chat_completion([{"role": "user", "content": "Hi"}])
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator, Optional, Union

import httpx

from llmgate.domain.enums import ModelCapability
from llmgate.domain.responses import (
    CompletionResponse,
    EmbeddingResponse,
    UsageStatistics,
    VisionResponse,
)
from llmgate.exceptions import ProviderConnectionError, ProviderResponseError
from llmgate.providers.base import BaseProvider
from llmgate.providers.contracts import StreamingCapable, ToolCapable, VisionCapable

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_EMBEDDING_MODEL = "nomic-embed-text"
IMAGE_FORMATS = ["png", "jpeg", "jpg"]
MAX_IMAGE_SIZE = 20 * 1024 * 1024

# Ollama done_reason -> normalized finish_reason
_DONE_REASONS = {"stop": "stop", "length": "length"}


class OllamaProvider(BaseProvider, VisionCapable, StreamingCapable, ToolCapable):
    """Adapter for a local Ollama server."""

    provider_identifier = "ollama"
    provider_name = "Ollama (Local)"
    default_base_url = "http://localhost:11434"
    fallback_model = "llama3.1:8b"
    features = frozenset({
        ModelCapability.CHAT.value,
        ModelCapability.COMPLETION.value,
        ModelCapability.EMBEDDINGS.value,
        ModelCapability.VISION.value,
        ModelCapability.STREAMING.value,
        ModelCapability.TOOLS.value,
        ModelCapability.JSON_MODE.value,
    })

    def is_available(self) -> bool:
        return bool(self.base_url)

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=float(self.timeout),
                transport=httpx.HTTPTransport(retries=self.max_retries),
            )
        return self._client

    # --- HTTP ---

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = self._get_client().post(path, json=payload)
        except httpx.TransportError as e:
            raise ProviderConnectionError(
                f"Ollama request to {path} failed: {e}",
                details={"provider": self.identifier, "path": path},
            ) from e
        self._raise_for_status(resp, path)
        return resp.json()

    def _raise_for_status(self, resp: httpx.Response, path: str) -> None:
        if resp.status_code < 400:
            return
        details = {"provider": self.identifier, "path": path}
        if resp.status_code >= 500:
            raise ProviderConnectionError(
                f"Ollama server error {resp.status_code} on {path}",
                status_code=resp.status_code,
                details=details,
            )
        raise ProviderResponseError(
            f"Ollama rejected request to {path} with {resp.status_code}",
            status_code=resp.status_code,
            details=details,
        )

    def get_available_models(self) -> dict[str, str]:
        """Models installed on the server (name -> name)."""
        try:
            resp = self._get_client().get("/api/tags")
        except httpx.TransportError as e:
            raise ProviderConnectionError(
                f"Ollama server unreachable: {e}",
                details={"provider": self.identifier},
            ) from e
        self._raise_for_status(resp, "/api/tags")
        models = resp.json().get("models", [])
        return {m["name"]: m["name"] for m in models if m.get("name")}

    # --- Chat ---

    def chat_completion(
        self,
        messages: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> CompletionResponse:
        payload = self._build_payload(messages, options or {})
        data = self._post("/api/chat", payload)
        return self._to_completion(data, payload["model"])

    def _build_payload(
        self,
        messages: list[dict[str, Any]],
        options: dict[str, Any],
        stream: bool = False,
    ) -> dict[str, Any]:
        system_prompt = options.get("system_prompt")
        if system_prompt and not any(m.get("role") == "system" for m in messages):
            messages = [{"role": "system", "content": system_prompt}, *messages]

        temperature = options.get("temperature")
        model_options: dict[str, Any] = {
            "temperature": DEFAULT_TEMPERATURE if temperature is None else temperature,
        }
        if options.get("max_tokens"):
            model_options["num_predict"] = options["max_tokens"]
        if options.get("top_p") is not None:
            model_options["top_p"] = options["top_p"]
        if options.get("stop_sequences"):
            model_options["stop"] = options["stop_sequences"]

        payload: dict[str, Any] = {
            "model": self._model_for(options),
            "messages": messages,
            "stream": stream,
            "options": model_options,
        }
        if options.get("response_format") == "json":
            payload["format"] = "json"
        return payload

    def _to_completion(
        self,
        data: dict[str, Any],
        requested_model: str,
        tool_calls: Optional[list[dict[str, Any]]] = None,
    ) -> CompletionResponse:
        done_reason = data.get("done_reason") or "stop"
        return CompletionResponse(
            content=data.get("message", {}).get("content", ""),
            model=data.get("model") or requested_model,
            usage=_usage(data),
            finish_reason="tool_calls" if tool_calls else _DONE_REASONS.get(done_reason, done_reason),
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
            "model": options.get("model") or DEFAULT_EMBEDDING_MODEL,
            "input": texts,
        }
        if options.get("dimensions"):
            payload["dimensions"] = options["dimensions"]

        data = self._post("/api/embed", payload)

        return EmbeddingResponse(
            embeddings=data.get("embeddings", []),
            model=data.get("model") or payload["model"],
            usage=UsageStatistics.from_tokens(data.get("prompt_eval_count", 0), 0),
            provider=self.identifier,
        )

    # --- Vision ---

    def analyze_image(
        self,
        content: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> VisionResponse:
        options = options or {}
        texts: list[str] = []
        images: list[str] = []
        for part in content:
            if part.get("type") == "text":
                texts.append(part.get("text", ""))
            elif part.get("type") == "image_url":
                images.append(_inline_image(part))

        message = {"role": "user", "content": "\n".join(texts), "images": images}
        payload = self._build_payload([message], options)
        data = self._post("/api/chat", payload)

        return VisionResponse(
            description=data.get("message", {}).get("content", ""),
            model=data.get("model") or payload["model"],
            usage=_usage(data),
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
        payload = self._build_payload(messages, options or {}, stream=True)

        try:
            with self._get_client().stream("POST", "/api/chat", json=payload) as resp:
                self._raise_for_status(resp, "/api/chat")
                for line in resp.iter_lines():
                    if not line.strip():
                        continue
                    data = json.loads(line)
                    text = data.get("message", {}).get("content", "")
                    if text:
                        yield text
                    if data.get("done", False):
                        break
        except httpx.TransportError as e:
            raise ProviderConnectionError(
                f"Ollama stream failed: {e}",
                details={"provider": self.identifier},
            ) from e

    # --- Tools ---

    def chat_completion_with_tools(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> CompletionResponse:
        options = options or {}
        payload = self._build_payload(messages, options)
        # Ollama has no tool_choice; "none" means send no tools
        if tools and options.get("tool_choice") != "none":
            payload["tools"] = tools

        data = self._post("/api/chat", payload)

        tool_calls = []
        for index, call in enumerate(data.get("message", {}).get("tool_calls") or []):
            function = call.get("function", {})
            arguments = function.get("arguments", {})
            if isinstance(arguments, str):
                arguments = json.loads(arguments or "{}")
            tool_calls.append({
                "id": call.get("id") or f"call_{index}",
                "type": "function",
                "function": {"name": function.get("name", ""), "arguments": arguments},
            })

        return self._to_completion(data, payload["model"], tool_calls or None)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _usage(data: dict[str, Any]) -> UsageStatistics:
    return UsageStatistics.from_tokens(
        data.get("prompt_eval_count", 0),
        data.get("eval_count", 0),
        estimated_cost=0.0,  # Local = free
    )


def _inline_image(part: dict[str, Any]) -> str:
    """Extract base64 data from a data: URL image part."""
    url = (part.get("image_url") or {}).get("url", "")
    if not url.startswith("data:"):
        raise ValueError("Ollama only accepts inline base64 images (data: URLs)")
    return url.partition(",")[2]
