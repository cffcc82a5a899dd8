"""
Adapter factory: adapter type -> adapter class.

Builds configured adapters for ProviderRecord / ModelRecord rows handed
in by the persistence collaborator. Custom adapter classes can be
registered per adapter type and take precedence over the built-in map.
Unknown adapter types fall back to the OpenAI-compatible adapter.

Usage:
    registry = ProviderAdapterRegistry()
    adapter = registry.create_adapter_from_model(model_record)
    response = adapter.chat_completion(messages)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from llmgate.domain.enums import AdapterType
from llmgate.domain.records import ModelRecord, ProviderRecord
from llmgate.exceptions import ProviderConfigurationError
from llmgate.providers.anthropic_provider import AnthropicProvider
from llmgate.providers.base import BaseProvider
from llmgate.providers.compatible import (
    GeminiProvider,
    GroqProvider,
    MistralProvider,
    OpenRouterProvider,
)
from llmgate.providers.ollama_provider import OllamaProvider
from llmgate.providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

ADAPTER_CLASS_MAP: dict[str, type[BaseProvider]] = {
    AdapterType.OPENAI.value: OpenAIProvider,
    AdapterType.ANTHROPIC.value: AnthropicProvider,
    AdapterType.GEMINI.value: GeminiProvider,
    AdapterType.OPENROUTER.value: OpenRouterProvider,
    AdapterType.MISTRAL.value: MistralProvider,
    AdapterType.GROQ.value: GroqProvider,
    AdapterType.OLLAMA.value: OllamaProvider,
    # Azure and custom gateways speak the OpenAI API
    AdapterType.AZURE_OPENAI.value: OpenAIProvider,
    AdapterType.CUSTOM.value: OpenAIProvider,
}

ClientFactory = Callable[[ProviderRecord], Any]


class ProviderAdapterRegistry:
    """
    Creates and caches adapters for provider and model records.

    Provider adapters are cached per provider identifier. Model adapters
    are cached per (provider, model) pair, so one provider can host many
    differently configured models without them overwriting each other.

    Args:
        client_factory: Optional callable returning a pre-built SDK/HTTP
            client for a provider record. Used to share clients or to
            inject fakes in tests. When None, adapters build their own.
    """

    def __init__(self, client_factory: Optional[ClientFactory] = None):
        self._client_factory = client_factory
        self._custom_adapters: dict[str, type[BaseProvider]] = {}
        self._adapter_cache: dict[str, BaseProvider] = {}

    # --- Adapter Classes ---

    def register_adapter(self, adapter_type: str, adapter_class: type) -> None:
        if not (isinstance(adapter_class, type) and issubclass(adapter_class, BaseProvider)):
            raise ProviderConfigurationError(
                f"Adapter class {adapter_class!r} must extend BaseProvider",
                details={"adapter_type": adapter_type},
            )
        self._custom_adapters[adapter_type] = adapter_class
        logger.debug(
            "adapter_registered",
            extra={"adapter_type": adapter_type, "adapter_class": adapter_class.__name__},
        )

    def get_adapter_class(self, adapter_type: str) -> type[BaseProvider]:
        if adapter_type in self._custom_adapters:
            return self._custom_adapters[adapter_type]
        if adapter_type in ADAPTER_CLASS_MAP:
            return ADAPTER_CLASS_MAP[adapter_type]

        logger.warning(
            "adapter_type_unknown",
            extra={"adapter_type": adapter_type, "fallback": OpenAIProvider.__name__},
        )
        return OpenAIProvider

    def has_adapter(self, adapter_type: str) -> bool:
        return adapter_type in self._custom_adapters or adapter_type in ADAPTER_CLASS_MAP

    def get_registered_adapters(self) -> dict[str, str]:
        """Adapter type -> label, built-ins first, then custom types."""
        adapters = AdapterType.choices()
        for adapter_type in self._custom_adapters:
            adapters.setdefault(adapter_type, adapter_type)
        return adapters

    # --- Adapter Creation ---

    def create_adapter_from_provider(
        self,
        provider: ProviderRecord,
        use_cache: bool = True,
    ) -> BaseProvider:
        cache_key = provider.identifier
        if use_cache and cache_key in self._adapter_cache:
            return self._adapter_cache[cache_key]

        adapter = self._build(provider, self._provider_config(provider))

        if use_cache:
            self._adapter_cache[cache_key] = adapter
        return adapter

    def create_adapter_from_model(
        self,
        model: ModelRecord,
        use_cache: bool = True,
    ) -> BaseProvider:
        """
        Build an adapter whose default model is this model's vendor id.

        Raises:
            ProviderConfigurationError: If the model has no provider.
        """
        provider = model.provider
        if provider is None:
            raise ProviderConfigurationError(
                f'Model "{model.identifier}" has no associated provider',
                details={"model": model.identifier},
            )

        cache_key = f"{provider.identifier}::{model.identifier}"
        if use_cache and cache_key in self._adapter_cache:
            return self._adapter_cache[cache_key]

        config = self._provider_config(provider)
        if model.model_id:
            config["default_model"] = model.model_id
        adapter = self._build(provider, config)

        if use_cache:
            self._adapter_cache[cache_key] = adapter
        return adapter

    def clear_cache(self, provider_identifier: Optional[str] = None) -> None:
        """Drop cached adapters for one provider (and its models), or all."""
        if provider_identifier is None:
            self._adapter_cache.clear()
            return
        prefix = f"{provider_identifier}::"
        for key in list(self._adapter_cache):
            if key == provider_identifier or key.startswith(prefix):
                del self._adapter_cache[key]

    def test_provider_connection(self, provider: ProviderRecord) -> dict[str, Any]:
        """
        Probe a provider without raising.

        Returns:
            {"success": bool, "message": str, "models"?: dict}
        """
        try:
            adapter = self.create_adapter_from_provider(provider, use_cache=False)
            if not adapter.is_available():
                return {
                    "success": False,
                    "message": "Provider is not available (API key may be missing)",
                }
            return adapter.test_connection()
        except Exception as e:
            logger.warning(
                "provider_connection_failed",
                extra={"provider": provider.identifier, "error": str(e)[:200]},
            )
            return {"success": False, "message": f"Connection failed: {e}"}

    # --- Internal ---

    def _build(self, provider: ProviderRecord, config: dict[str, Any]) -> BaseProvider:
        adapter_class = self.get_adapter_class(provider.adapter_type)
        client = self._client_factory(provider) if self._client_factory else None
        adapter = adapter_class(client=client, identifier=provider.identifier)
        adapter.configure(config)

        logger.debug(
            "adapter_created",
            extra={
                "provider": provider.identifier,
                "adapter_type": provider.adapter_type,
                "adapter_class": adapter_class.__name__,
                "default_model": adapter.default_model,
            },
        )
        return adapter

    @staticmethod
    def _provider_config(provider: ProviderRecord) -> dict[str, Any]:
        config: dict[str, Any] = {
            "api_key": provider.api_key,
            "base_url": provider.effective_endpoint_url,
            "timeout": provider.api_timeout,
            "max_retries": provider.max_retries,
        }
        if provider.organization_id:
            config["organization_id"] = provider.organization_id
        config.update(provider.options)
        return config
