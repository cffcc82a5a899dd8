"""
Pydantic settings schema for llmgate.

A settings file declares per-provider adapter configuration, the
default provider and response cache tuning. The dispatch manager reads
provider_config(identifier) when an adapter is registered.

Example llmgate.yaml:

    default_provider: openai
    providers:
      openai:
        api_key_env: OPENAI_API_KEY
        default_model: gpt-4o
      ollama:
        base_url: http://localhost:11434
    cache:
      completion_ttl: 3600
"""

from __future__ import annotations

import os
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------

class ProviderSettings(BaseModel):
    """Adapter configuration for one provider identifier."""

    model_config = ConfigDict(extra="allow")

    api_key: Optional[str] = None
    api_key_env: Optional[str] = Field(
        None, description="Environment variable holding the API key"
    )
    base_url: Optional[str] = None
    default_model: Optional[str] = None
    timeout: Optional[int] = Field(None, ge=1)
    max_retries: Optional[int] = Field(None, ge=0)
    organization_id: Optional[str] = None

    def resolved_api_key(self) -> Optional[str]:
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.environ.get(self.api_key_env) or None
        return None

    def to_adapter_config(self) -> dict[str, Any]:
        """Adapter config dict; unset values are omitted."""
        config = self.model_dump(exclude_none=True, exclude={"api_key", "api_key_env"})
        api_key = self.resolved_api_key()
        if api_key:
            config["api_key"] = api_key
        return config


class CacheSettings(BaseModel):
    """Response cache tuning."""

    enabled: bool = True
    completion_ttl: int = Field(3600, ge=0, description="Seconds; 0 = no expiry")
    embeddings_ttl: int = Field(86400, ge=0, description="Seconds; 0 = no expiry")
    max_entries: int = Field(1000, ge=1)


# ---------------------------------------------------------------------------
# Top-level Settings
# ---------------------------------------------------------------------------

class LLMSettings(BaseModel):
    """Complete llmgate settings."""

    default_provider: Optional[str] = None
    providers: dict[str, ProviderSettings] = Field(default_factory=dict)
    cache: CacheSettings = Field(default_factory=CacheSettings)

    def provider_config(self, identifier: str) -> dict[str, Any]:
        """Adapter config for a provider, or {} when none is declared."""
        settings = self.providers.get(identifier)
        if settings is None:
            return {}
        return settings.to_adapter_config()
