"""
Tests for ProviderAdapterRegistry: adapter classes, record -> adapter
construction, caching and the non-raising connection probe.
"""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from llmgate.domain.records import ModelRecord, ProviderRecord
from llmgate.exceptions import ProviderConfigurationError
from llmgate.providers.adapter_registry import ADAPTER_CLASS_MAP, ProviderAdapterRegistry
from llmgate.providers.anthropic_provider import AnthropicProvider
from llmgate.providers.compatible import GroqProvider
from llmgate.providers.ollama_provider import OllamaProvider
from llmgate.providers.openai_provider import OpenAIProvider


# ===========================================================================
# Fixtures
# ===========================================================================

class CustomProvider(OpenAIProvider):
    provider_identifier = "custom-gw"
    provider_name = "Custom Gateway"


@pytest.fixture
def registry():
    return ProviderAdapterRegistry()


@pytest.fixture
def openai_record():
    return ProviderRecord(
        "openai-prod",
        "openai",
        api_key="sk-test",
        organization_id="org-1",
        api_timeout=45,
        max_retries=1,
        options={"embedding_dimensions": 512},
    )


# ===========================================================================
# Adapter Classes
# ===========================================================================

class TestAdapterClasses:

    def test_builtin_map(self, registry):
        assert registry.get_adapter_class("anthropic") is AnthropicProvider
        assert registry.get_adapter_class("ollama") is OllamaProvider
        assert registry.get_adapter_class("groq") is GroqProvider
        assert registry.get_adapter_class("azure_openai") is OpenAIProvider
        assert len(ADAPTER_CLASS_MAP) == 9

    def test_unknown_type_falls_back_to_openai(self, registry, caplog):
        with caplog.at_level(logging.WARNING, logger="llmgate.providers.adapter_registry"):
            assert registry.get_adapter_class("llamafile") is OpenAIProvider
        assert "adapter_type_unknown" in caplog.text
        assert not registry.has_adapter("llamafile")

    def test_custom_adapter_takes_precedence(self, registry):
        registry.register_adapter("openai", CustomProvider)
        assert registry.get_adapter_class("openai") is CustomProvider

    def test_custom_adapter_type(self, registry):
        registry.register_adapter("gateway", CustomProvider)
        assert registry.has_adapter("gateway")
        adapters = registry.get_registered_adapters()
        assert adapters["gateway"] == "gateway"
        assert adapters["openai"] == "OpenAI"

    def test_rejects_non_adapter_class(self, registry):
        with pytest.raises(ProviderConfigurationError, match="must extend BaseProvider"):
            registry.register_adapter("bad", dict)
        with pytest.raises(ProviderConfigurationError):
            registry.register_adapter("bad", "not a class")


# ===========================================================================
# Creation
# ===========================================================================

class TestCreateFromProvider:

    def test_configures_adapter(self, registry, openai_record):
        adapter = registry.create_adapter_from_provider(openai_record)
        assert isinstance(adapter, OpenAIProvider)
        assert adapter.identifier == "openai-prod"
        assert adapter.api_key == "sk-test"
        assert adapter.base_url == "https://api.openai.com/v1"
        assert adapter.organization_id == "org-1"
        assert adapter.timeout == 45
        assert adapter.max_retries == 1
        assert adapter.extra == {"embedding_dimensions": 512}

    def test_explicit_endpoint(self, registry):
        record = ProviderRecord("ollama-box", "ollama", endpoint_url="http://gpu-box:11434")
        assert registry.create_adapter_from_provider(record).base_url == "http://gpu-box:11434"

    def test_cached_by_identifier(self, registry, openai_record):
        first = registry.create_adapter_from_provider(openai_record)
        assert registry.create_adapter_from_provider(openai_record) is first
        assert registry.create_adapter_from_provider(openai_record, use_cache=False) is not first

    def test_client_factory(self, openai_record):
        client = MagicMock()
        registry = ProviderAdapterRegistry(client_factory=lambda record: client)
        adapter = registry.create_adapter_from_provider(openai_record)
        assert adapter._get_client() is client


class TestCreateFromModel:

    def test_default_model_is_model_id(self, registry, openai_record):
        model = ModelRecord("gpt-4o-mini", model_id="gpt-4o-mini-2024-07-18", provider=openai_record)
        adapter = registry.create_adapter_from_model(model)
        assert adapter.default_model == "gpt-4o-mini-2024-07-18"
        assert adapter.identifier == "openai-prod"

    def test_models_on_one_provider_do_not_collide(self, registry, openai_record):
        mini = registry.create_adapter_from_model(ModelRecord("mini", model_id="gpt-4o-mini", provider=openai_record))
        full = registry.create_adapter_from_model(ModelRecord("full", model_id="gpt-4o", provider=openai_record))
        assert mini is not full
        assert mini.default_model == "gpt-4o-mini"
        assert full.default_model == "gpt-4o"

    def test_empty_model_id_keeps_fallback(self, registry, openai_record):
        adapter = registry.create_adapter_from_model(ModelRecord("m", provider=openai_record))
        assert adapter.default_model == OpenAIProvider.fallback_model

    def test_model_without_provider(self, registry):
        with pytest.raises(ProviderConfigurationError, match='Model "orphan" has no associated provider'):
            registry.create_adapter_from_model(ModelRecord("orphan"))

    def test_clear_cache_for_provider(self, registry, openai_record):
        ollama = ProviderRecord("ollama-local", "ollama")
        model = ModelRecord("m", model_id="gpt-4o", provider=openai_record)
        adapter = registry.create_adapter_from_provider(openai_record)
        model_adapter = registry.create_adapter_from_model(model)
        local = registry.create_adapter_from_provider(ollama)

        registry.clear_cache("openai-prod")

        assert registry.create_adapter_from_provider(openai_record) is not adapter
        assert registry.create_adapter_from_model(model) is not model_adapter
        assert registry.create_adapter_from_provider(ollama) is local

    def test_clear_all(self, registry, openai_record):
        adapter = registry.create_adapter_from_provider(openai_record)
        registry.clear_cache()
        assert registry.create_adapter_from_provider(openai_record) is not adapter


# ===========================================================================
# Connection Probe
# ===========================================================================

class TestConnectionProbe:

    def test_success(self, openai_record):
        client = MagicMock()
        client.models.list.return_value = MagicMock(data=[MagicMock(id="gpt-4o"), MagicMock(id="o3")])
        registry = ProviderAdapterRegistry(client_factory=lambda record: client)

        result = registry.test_provider_connection(openai_record)

        assert result["success"] is True
        assert result["models"] == {"gpt-4o": "gpt-4o", "o3": "o3"}
        assert "Found 2 models" in result["message"]

    def test_missing_api_key(self, registry):
        result = registry.test_provider_connection(ProviderRecord("openai-prod", "openai"))
        assert result == {
            "success": False,
            "message": "Provider is not available (API key may be missing)",
        }

    def test_failure_is_reported_not_raised(self, openai_record):
        client = MagicMock()
        client.models.list.side_effect = RuntimeError("401 Unauthorized")
        registry = ProviderAdapterRegistry(client_factory=lambda record: client)

        result = registry.test_provider_connection(openai_record)

        assert result["success"] is False
        assert "401 Unauthorized" in result["message"]

    def test_probe_does_not_populate_cache(self, openai_record):
        client = MagicMock()
        client.models.list.return_value = MagicMock(data=[])
        registry = ProviderAdapterRegistry(client_factory=lambda record: client)
        registry.test_provider_connection(openai_record)
        assert registry._adapter_cache == {}
