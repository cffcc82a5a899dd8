"""
Tests for the settings schema and YAML loader.
"""

from __future__ import annotations

import textwrap

import pytest
from pydantic import ValidationError

from llmgate.config.loader import CONFIG_ENV_VAR, load_settings, settings_from_env
from llmgate.config.schema import CacheSettings, LLMSettings, ProviderSettings
from llmgate.exceptions import SettingsError


# ===========================================================================
# Fixtures
# ===========================================================================

@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        CONFIG_ENV_VAR,
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
        "OLLAMA_BASE_URL",
        "LLMGATE_DEFAULT_PROVIDER",
    ):
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path, text: str):
    path = tmp_path / "llmgate.yaml"
    path.write_text(textwrap.dedent(text))
    return path


# ===========================================================================
# Schema
# ===========================================================================

class TestProviderSettings:

    def test_explicit_api_key_wins(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        settings = ProviderSettings(api_key="inline", api_key_env="OPENAI_API_KEY")
        assert settings.resolved_api_key() == "inline"

    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        settings = ProviderSettings(api_key_env="OPENAI_API_KEY")
        assert settings.to_adapter_config() == {"api_key": "sk-env"}

    def test_missing_env_key_is_omitted(self):
        settings = ProviderSettings(api_key_env="OPENAI_API_KEY", default_model="gpt-4o")
        assert settings.to_adapter_config() == {"default_model": "gpt-4o"}

    def test_extra_keys_pass_through(self):
        settings = ProviderSettings(base_url="http://gpu-box:11434", keep_alive="5m")
        config = settings.to_adapter_config()
        assert config["base_url"] == "http://gpu-box:11434"
        assert config["keep_alive"] == "5m"

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            ProviderSettings(timeout=0)


class TestLLMSettings:

    def test_defaults(self):
        settings = LLMSettings()
        assert settings.default_provider is None
        assert settings.providers == {}
        assert settings.cache == CacheSettings()

    def test_provider_config_unknown_is_empty(self):
        assert LLMSettings().provider_config("openai") == {}

    def test_cache_ttl_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            CacheSettings(completion_ttl=-1)


# ===========================================================================
# Loader
# ===========================================================================

class TestLoadSettings:

    def test_loads_yaml(self, tmp_path):
        path = _write(tmp_path, """
            default_provider: ollama
            providers:
              ollama:
                base_url: http://localhost:11434
                default_model: llama3.1:8b
              openai:
                api_key: sk-test
                timeout: 60
            cache:
              completion_ttl: 600
        """)
        settings = load_settings(path)

        assert settings.default_provider == "ollama"
        assert settings.provider_config("ollama") == {
            "base_url": "http://localhost:11434",
            "default_model": "llama3.1:8b",
        }
        assert settings.provider_config("openai") == {"api_key": "sk-test", "timeout": 60}
        assert settings.cache.completion_ttl == 600
        assert settings.cache.embeddings_ttl == 86400

    def test_path_from_env_var(self, tmp_path, monkeypatch):
        path = _write(tmp_path, "default_provider: anthropic\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert load_settings().default_provider == "anthropic"

    def test_missing_file(self, tmp_path):
        with pytest.raises(SettingsError, match="not found") as exc_info:
            load_settings(tmp_path / "nope.yaml")
        assert exc_info.value.config_path.endswith("nope.yaml")

    def test_empty_file(self, tmp_path):
        with pytest.raises(SettingsError, match="empty"):
            load_settings(_write(tmp_path, ""))

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(SettingsError, match="not valid YAML"):
            load_settings(_write(tmp_path, "providers: [unclosed\n"))

    def test_not_a_mapping(self, tmp_path):
        with pytest.raises(SettingsError, match="mapping"):
            load_settings(_write(tmp_path, "- openai\n- ollama\n"))

    def test_schema_violation(self, tmp_path):
        path = _write(tmp_path, """
            providers:
              openai:
                max_retries: -3
        """)
        with pytest.raises(SettingsError, match="Invalid settings"):
            load_settings(path)

    def test_no_file_falls_back_to_env(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        monkeypatch.setenv("LLMGATE_DEFAULT_PROVIDER", "anthropic")
        settings = load_settings()
        assert settings.default_provider == "anthropic"
        assert settings.provider_config("anthropic") == {"api_key": "sk-ant"}


class TestSettingsFromEnv:

    def test_nothing_set(self):
        settings = settings_from_env()
        assert settings.providers == {}
        assert settings.default_provider is None

    def test_well_known_variables(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        monkeypatch.setenv("OLLAMA_BASE_URL", "http://ollama:11434")
        settings = settings_from_env()

        assert sorted(settings.providers) == ["ollama", "openai"]
        assert settings.provider_config("openai") == {"api_key": "sk-openai"}
        assert settings.provider_config("ollama") == {"base_url": "http://ollama:11434"}
