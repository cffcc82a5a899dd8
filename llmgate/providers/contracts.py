"""
Capability contracts for provider adapters.

Every adapter implements ProviderAdapter. Vision, streaming and tool
calling are optional: an adapter opts in by inheriting the matching
contract AND listing the capability in its feature set. Dispatch
requires both before it touches the network.

Usage:
    from llmgate.providers.contracts import VisionCapable

    if isinstance(adapter, VisionCapable) and adapter.supports_feature("vision"):
        adapter.analyze_image(content, options)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterator, Optional, Union

from llmgate.domain.enums import ModelCapability
from llmgate.domain.responses import CompletionResponse, EmbeddingResponse, VisionResponse
from llmgate.exceptions import StreamConsumedError, UnsupportedFeatureError


# ---------------------------------------------------------------------------
# Mandatory Contract
# ---------------------------------------------------------------------------

class ProviderAdapter(ABC):
    """Operations every adapter supports."""

    @property
    @abstractmethod
    def identifier(self) -> str:
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def configure(self, config: dict[str, Any]) -> None:
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """True when required credentials/config are present. No network."""

    @abstractmethod
    def supports_feature(self, feature: Union[str, ModelCapability]) -> bool:
        ...

    @abstractmethod
    def chat_completion(
        self,
        messages: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> CompletionResponse:
        ...

    @abstractmethod
    def complete(self, prompt: str, options: Optional[dict[str, Any]] = None) -> CompletionResponse:
        ...

    @abstractmethod
    def embeddings(
        self,
        input: Union[str, list[str]],
        options: Optional[dict[str, Any]] = None,
    ) -> EmbeddingResponse:
        ...

    @abstractmethod
    def get_available_models(self) -> dict[str, str]:
        """Vendor model id -> display name."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        ...


# ---------------------------------------------------------------------------
# Optional Contracts
# ---------------------------------------------------------------------------

class VisionCapable(ABC):
    """Adapter can analyze images."""

    @abstractmethod
    def analyze_image(
        self,
        content: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> VisionResponse:
        """
        Analyze one or more images.

        Args:
            content: Multimodal content parts, e.g.
                [{"type": "text", "text": "..."},
                 {"type": "image_url", "image_url": {"url": "..."}}]
        """

    @abstractmethod
    def supported_image_formats(self) -> list[str]:
        ...

    @abstractmethod
    def max_image_size(self) -> int:
        """Maximum accepted image size in bytes."""


class StreamingCapable(ABC):
    """Adapter can stream chat output incrementally."""

    @abstractmethod
    def stream_chat_completion(
        self,
        messages: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> Iterator[str]:
        """Lazy iterator of text fragments, in arrival order."""


class ToolCapable(ABC):
    """Adapter supports function/tool calling."""

    @abstractmethod
    def chat_completion_with_tools(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> CompletionResponse:
        ...


# ---------------------------------------------------------------------------
# Text Stream
# ---------------------------------------------------------------------------

class TextStream:
    """
    Single-pass stream of text fragments.

    Wraps the lazy iterator returned by an adapter. Nothing is requested
    from the vendor until the first fragment is pulled. Iterating a
    second time raises StreamConsumedError.
    """

    def __init__(self, fragments: Iterator[str], provider: str = ""):
        self._fragments = fragments
        self._started = False
        self.provider = provider

    def __iter__(self) -> Iterator[str]:
        if self._started:
            raise StreamConsumedError(
                "Stream has already been consumed",
                details={"provider": self.provider},
            )
        self._started = True
        return iter(self._fragments)

    @property
    def consumed(self) -> bool:
        return self._started

    def text(self) -> str:
        """Drain the stream and return the joined text."""
        return "".join(self)


# ---------------------------------------------------------------------------
# Capability Checks
# ---------------------------------------------------------------------------

# capability -> (contract the adapter must implement, wording for errors)
_REQUIREMENTS: dict[str, tuple[Optional[type], str]] = {
    ModelCapability.EMBEDDINGS.value: (None, "embeddings"),
    ModelCapability.VISION.value: (VisionCapable, "vision"),
    ModelCapability.STREAMING.value: (StreamingCapable, "streaming"),
    ModelCapability.TOOLS.value: (ToolCapable, "tool calling"),
}


def ensure_capability(adapter: ProviderAdapter, capability: ModelCapability) -> None:
    """
    Raise UnsupportedFeatureError unless the adapter both declares the
    capability and implements its contract.
    """
    contract, wording = _REQUIREMENTS[capability.value]
    declared = adapter.supports_feature(capability)
    implemented = contract is None or isinstance(adapter, contract)
    if declared and implemented:
        return

    raise UnsupportedFeatureError(
        f'Provider "{adapter.identifier}" does not support {wording}',
        capability=capability.value,
        provider_id=adapter.identifier,
    )
