"""
Enumerations shared by records, adapters and the selection engine.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ModelCapability(str, Enum):
    """Features a model or adapter may support."""

    CHAT = "chat"
    COMPLETION = "completion"
    EMBEDDINGS = "embeddings"
    VISION = "vision"
    STREAMING = "streaming"
    TOOLS = "tools"
    JSON_MODE = "json_mode"
    AUDIO = "audio"

    @classmethod
    def values(cls) -> list[str]:
        return [case.value for case in cls]

    @classmethod
    def is_valid(cls, value: str) -> bool:
        return value in cls.values()

    @classmethod
    def try_from(cls, value: str) -> Optional[ModelCapability]:
        try:
            return cls(value)
        except ValueError:
            return None


class SelectionMode(str, Enum):
    """How a configuration picks its model."""

    FIXED = "fixed"        # Bound to exactly one model
    CRITERIA = "criteria"  # Picked at call time by constraint matching

    @property
    def description(self) -> str:
        if self is SelectionMode.FIXED:
            return "Use a specific, pre-configured model"
        return "Select model based on capabilities and requirements"


class AdapterType(str, Enum):
    """Vendor API flavours an adapter can speak."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    OPENROUTER = "openrouter"
    MISTRAL = "mistral"
    GROQ = "groq"
    OLLAMA = "ollama"
    AZURE_OPENAI = "azure_openai"
    CUSTOM = "custom"

    @property
    def label(self) -> str:
        return _ADAPTER_LABELS[self]

    @property
    def default_endpoint(self) -> str:
        return _ADAPTER_ENDPOINTS[self]

    @property
    def requires_api_key(self) -> bool:
        return self is not AdapterType.OLLAMA

    @classmethod
    def try_from(cls, value: str) -> Optional[AdapterType]:
        try:
            return cls(value)
        except ValueError:
            return None

    @classmethod
    def choices(cls) -> dict[str, str]:
        """Adapter type value -> human-readable label."""
        return {case.value: case.label for case in cls}


_ADAPTER_LABELS = {
    AdapterType.OPENAI: "OpenAI",
    AdapterType.ANTHROPIC: "Anthropic (Claude)",
    AdapterType.GEMINI: "Google Gemini",
    AdapterType.OPENROUTER: "OpenRouter",
    AdapterType.MISTRAL: "Mistral AI",
    AdapterType.GROQ: "Groq",
    AdapterType.OLLAMA: "Ollama (Local)",
    AdapterType.AZURE_OPENAI: "Azure OpenAI",
    AdapterType.CUSTOM: "Custom (OpenAI-compatible)",
}

# Azure and custom endpoints are deployment specific
_ADAPTER_ENDPOINTS = {
    AdapterType.OPENAI: "https://api.openai.com/v1",
    AdapterType.ANTHROPIC: "https://api.anthropic.com",
    AdapterType.GEMINI: "https://generativelanguage.googleapis.com/v1beta/openai",
    AdapterType.OPENROUTER: "https://openrouter.ai/api/v1",
    AdapterType.MISTRAL: "https://api.mistral.ai/v1",
    AdapterType.GROQ: "https://api.groq.com/openai/v1",
    AdapterType.OLLAMA: "http://localhost:11434",
    AdapterType.AZURE_OPENAI: "",
    AdapterType.CUSTOM: "",
}
