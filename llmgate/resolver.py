"""
Configuration resolver.

Runs operations against a named LLMConfiguration instead of a
registered provider: the configuration is resolved to a model (fixed or
by criteria), the model to a freshly configured adapter, and the
configuration's overrides become the call options.

Usage:
    resolver = ConfigurationResolver(
        adapter_registry=ProviderAdapterRegistry(),
        selection_service=ModelSelectionService(model_repository),
    )
    response = resolver.chat(messages, configuration)
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from llmgate.domain.enums import ModelCapability
from llmgate.domain.records import LLMConfiguration
from llmgate.domain.responses import (
    ChatMessage,
    CompletionResponse,
    EmbeddingResponse,
    VisionResponse,
    normalize_messages,
)
from llmgate.exceptions import ConfigurationHasNoModelError
from llmgate.observability.logging_config import request_scope
from llmgate.providers.adapter_registry import ProviderAdapterRegistry
from llmgate.providers.base import BaseProvider
from llmgate.providers.contracts import TextStream, ensure_capability
from llmgate.selection import ModelSelectionService

logger = logging.getLogger(__name__)

MessagesLike = list[Union[ChatMessage, dict[str, Any]]]


class ConfigurationResolver:
    """Resolves configurations to adapters and runs operations on them."""

    def __init__(
        self,
        adapter_registry: ProviderAdapterRegistry,
        selection_service: ModelSelectionService,
    ):
        self._adapter_registry = adapter_registry
        self._selection_service = selection_service

    def get_adapter(self, configuration: LLMConfiguration) -> BaseProvider:
        """
        Raises:
            ConfigurationHasNoModelError: No model is bound or matches.
            ProviderConfigurationError: The resolved model has no provider.
        """
        model = self._selection_service.resolve_model(configuration)
        if model is None:
            raise ConfigurationHasNoModelError(
                f'Configuration "{configuration.identifier}" has no model assigned',
                configuration_identifier=configuration.identifier,
            )

        adapter = self._adapter_registry.create_adapter_from_model(model)
        logger.debug(
            "configuration_resolved",
            extra={
                "configuration": configuration.identifier,
                "model": model.identifier,
                "provider": adapter.identifier,
            },
        )
        return adapter

    @staticmethod
    def options_for(configuration: LLMConfiguration) -> dict[str, Any]:
        """Call options for a configuration, without the provider meta key."""
        options = configuration.to_options()
        options.pop("provider", None)
        return options

    # --- Operations ---
    # Each operation runs in one request scope, so configuration_resolved
    # and the adapter's own records share a request_id.

    def chat(self, messages: MessagesLike, configuration: LLMConfiguration) -> CompletionResponse:
        with request_scope():
            adapter = self.get_adapter(configuration)
            return adapter.chat_completion(
                normalize_messages(messages), self.options_for(configuration)
            )

    def complete(self, prompt: str, configuration: LLMConfiguration) -> CompletionResponse:
        with request_scope():
            adapter = self.get_adapter(configuration)
            return adapter.complete(prompt, self.options_for(configuration))

    def embed(
        self,
        input: Union[str, list[str]],
        configuration: LLMConfiguration,
    ) -> EmbeddingResponse:
        with request_scope():
            adapter = self.get_adapter(configuration)
            ensure_capability(adapter, ModelCapability.EMBEDDINGS)
            options = self.options_for(configuration)
            # The resolved model is the embedding model unless overridden
            options.setdefault("model", adapter.default_model)
            return adapter.embeddings(input, options)

    def vision(
        self,
        content: list[dict[str, Any]],
        configuration: LLMConfiguration,
    ) -> VisionResponse:
        with request_scope():
            adapter = self.get_adapter(configuration)
            ensure_capability(adapter, ModelCapability.VISION)
            return adapter.analyze_image(content, self.options_for(configuration))

    def stream_chat(self, messages: MessagesLike, configuration: LLMConfiguration) -> TextStream:
        with request_scope():
            adapter = self.get_adapter(configuration)
            ensure_capability(adapter, ModelCapability.STREAMING)
            fragments = adapter.stream_chat_completion(
                normalize_messages(messages), self.options_for(configuration)
            )
            return TextStream(fragments, provider=adapter.identifier)

    def chat_with_tools(
        self,
        messages: MessagesLike,
        tools: list[dict[str, Any]],
        configuration: LLMConfiguration,
        tool_options: Optional[dict[str, Any]] = None,
    ) -> CompletionResponse:
        with request_scope():
            adapter = self.get_adapter(configuration)
            ensure_capability(adapter, ModelCapability.TOOLS)
            options = self.options_for(configuration)
            if tool_options:
                options.update(tool_options)
            return adapter.chat_completion_with_tools(normalize_messages(messages), tools, options)
