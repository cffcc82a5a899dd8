"""
Provider registry and dispatch manager.

Holds the adapters registered for this process, keyed by identifier,
and dispatches each operation to exactly one of them: the one named by
the `provider` option, or the default. There is no implicit fallback
across providers; a missing capability is an error raised before any
network call.

Usage:
    from llmgate.manager import LLMServiceManager
    from llmgate.providers.ollama_provider import OllamaProvider
    from llmgate.providers.openai_provider import OpenAIProvider

    manager = LLMServiceManager(settings=load_settings())
    manager.register_provider(OpenAIProvider())
    manager.register_provider(OllamaProvider())
    manager.set_default_provider("openai")

    response = manager.chat(
        [{"role": "user", "content": "Summarize this"}],
        ChatOptions.factual(provider="ollama"),
    )
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Union

from llmgate.config.schema import LLMSettings
from llmgate.domain.enums import ModelCapability
from llmgate.domain.options import OptionsLike, options_to_dict
from llmgate.domain.responses import (
    ChatMessage,
    CompletionResponse,
    EmbeddingResponse,
    VisionResponse,
    normalize_messages,
)
from llmgate.exceptions import ProviderError, ProviderNotFoundError
from llmgate.observability.logging_config import request_scope
from llmgate.providers.adapter_registry import ProviderAdapterRegistry
from llmgate.providers.contracts import ProviderAdapter, TextStream, ensure_capability

logger = logging.getLogger(__name__)

MessagesLike = list[Union[ChatMessage, dict[str, Any]]]


class LLMServiceManager:
    """
    Registry of provider adapters plus operation dispatch.

    Args:
        settings: LLMSettings, a raw settings dict, or None. Supplies the
            default provider and per-provider adapter config applied at
            registration time.
        adapter_registry: Adapter factory shared with the configuration
            resolver. A fresh one is created when omitted.
    """

    def __init__(
        self,
        settings: Union[LLMSettings, dict[str, Any], None] = None,
        adapter_registry: Optional[ProviderAdapterRegistry] = None,
    ):
        if settings is None:
            settings = LLMSettings()
        elif isinstance(settings, dict):
            settings = LLMSettings(**settings)
        self._settings = settings
        self._adapter_registry = adapter_registry or ProviderAdapterRegistry()
        self._providers: dict[str, ProviderAdapter] = {}
        self._default_provider: Optional[str] = settings.default_provider

    @property
    def settings(self) -> LLMSettings:
        return self._settings

    @property
    def adapter_registry(self) -> ProviderAdapterRegistry:
        return self._adapter_registry

    # --- Registry ---

    def register_provider(self, provider: ProviderAdapter) -> None:
        """
        Register (or replace) an adapter under its identifier.

        Settings config for the identifier, if any, is applied first. If
        configure() raises, the adapter is not registered.
        """
        identifier = provider.identifier
        config = self._settings.provider_config(identifier)
        if config:
            provider.configure(config)

        self._providers[identifier] = provider
        logger.debug(
            "provider_registered",
            extra={"provider": identifier, "configured": bool(config)},
        )

    def get_provider(self, identifier: Optional[str] = None) -> ProviderAdapter:
        """
        Resolve an adapter by identifier, or the default one.

        Raises:
            ProviderNotFoundError: No identifier and no default, or unknown identifier.
        """
        identifier = identifier or self._default_provider
        if identifier is None:
            raise ProviderNotFoundError(
                "No provider specified and no default provider configured"
            )
        provider = self._providers.get(identifier)
        if provider is None:
            raise ProviderNotFoundError(
                f'Provider "{identifier}" not found',
                provider_id=identifier,
            )
        return provider

    def get_available_providers(self) -> dict[str, ProviderAdapter]:
        return {
            identifier: provider
            for identifier, provider in self._providers.items()
            if provider.is_available()
        }

    def has_available_provider(self) -> bool:
        return bool(self.get_available_providers())

    def get_provider_list(self) -> dict[str, str]:
        """Identifier -> display name for every registered adapter."""
        return {identifier: provider.name for identifier, provider in self._providers.items()}

    def set_default_provider(self, identifier: str) -> None:
        if identifier not in self._providers:
            raise ProviderNotFoundError(
                f'Cannot set default: Provider "{identifier}" not found',
                provider_id=identifier,
            )
        self._default_provider = identifier

    @property
    def default_provider(self) -> Optional[str]:
        return self._default_provider

    def supports_feature(
        self,
        feature: Union[str, ModelCapability],
        provider: Optional[str] = None,
    ) -> bool:
        """False (not an error) when the provider cannot be resolved."""
        try:
            return self.get_provider(provider).supports_feature(feature)
        except ProviderError:
            return False

    def get_provider_configuration(self, identifier: str) -> dict[str, Any]:
        """Settings-declared adapter config for an identifier, or {}."""
        return self._settings.provider_config(identifier)

    def configure_provider(self, identifier: str, config: dict[str, Any]) -> None:
        if identifier not in self._providers:
            raise ProviderNotFoundError(
                f'Provider "{identifier}" not found',
                provider_id=identifier,
            )
        self._providers[identifier].configure(config)

    # --- Dispatch ---

    def _resolve(self, options: OptionsLike) -> tuple[ProviderAdapter, dict[str, Any]]:
        """Pick the adapter from the provider option and strip it."""
        opts = options_to_dict(options)
        provider = self.get_provider(opts.pop("provider", None))
        return provider, opts

    @contextmanager
    def _dispatch(
        self,
        operation: str,
        options: OptionsLike,
        capability: Optional[ModelCapability] = None,
        **fields: Any,
    ) -> Iterator[tuple[ProviderAdapter, dict[str, Any]]]:
        """Resolve and check the adapter inside a request scope."""
        with request_scope():
            provider, opts = self._resolve(options)
            if capability is not None:
                ensure_capability(provider, capability)
            logger.debug(
                f"dispatch_{operation}",
                extra={"operation": operation, "provider": provider.identifier, **fields},
            )
            yield provider, opts

    def chat(
        self,
        messages: MessagesLike,
        options: OptionsLike = None,
    ) -> CompletionResponse:
        with self._dispatch("chat", options) as (provider, opts):
            return provider.chat_completion(normalize_messages(messages), opts)

    def complete(self, prompt: str, options: OptionsLike = None) -> CompletionResponse:
        with self._dispatch("complete", options) as (provider, opts):
            return provider.complete(prompt, opts)

    def embed(
        self,
        input: Union[str, list[str]],
        options: OptionsLike = None,
    ) -> EmbeddingResponse:
        with self._dispatch("embed", options, ModelCapability.EMBEDDINGS) as (provider, opts):
            opts.pop("cache_ttl", None)
            return provider.embeddings(input, opts)

    def vision(
        self,
        content: list[dict[str, Any]],
        options: OptionsLike = None,
    ) -> VisionResponse:
        with self._dispatch("vision", options, ModelCapability.VISION) as (provider, opts):
            return provider.analyze_image(content, opts)

    def stream_chat(
        self,
        messages: MessagesLike,
        options: OptionsLike = None,
    ) -> TextStream:
        """
        Stream a chat completion.

        The capability check runs here, before the stream is returned;
        the vendor request starts on first iteration.
        """
        with self._dispatch("stream_chat", options, ModelCapability.STREAMING) as (provider, opts):
            fragments = provider.stream_chat_completion(normalize_messages(messages), opts)
            return TextStream(fragments, provider=provider.identifier)

    def chat_with_tools(
        self,
        messages: MessagesLike,
        tools: list[dict[str, Any]],
        options: OptionsLike = None,
    ) -> CompletionResponse:
        with self._dispatch(
            "chat_with_tools", options, ModelCapability.TOOLS, tools=len(tools)
        ) as (provider, opts):
            return provider.chat_completion_with_tools(normalize_messages(messages), tools, opts)
