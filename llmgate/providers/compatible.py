"""
Vendors served through their OpenAI-compatible endpoints.

Each adapter only differs from OpenAIProvider in identity, default
endpoint, default models and the feature set the vendor supports.
"""

from __future__ import annotations

from llmgate.domain.enums import ModelCapability
from llmgate.providers.openai_provider import OpenAIProvider

_CHAT = ModelCapability.CHAT.value
_COMPLETION = ModelCapability.COMPLETION.value
_EMBEDDINGS = ModelCapability.EMBEDDINGS.value
_VISION = ModelCapability.VISION.value
_STREAMING = ModelCapability.STREAMING.value
_TOOLS = ModelCapability.TOOLS.value


class OpenRouterProvider(OpenAIProvider):
    provider_identifier = "openrouter"
    provider_name = "OpenRouter"
    default_base_url = "https://openrouter.ai/api/v1"
    fallback_model = "anthropic/claude-sonnet-4"
    embedding_model = "openai/text-embedding-3-small"
    features = frozenset({_CHAT, _COMPLETION, _EMBEDDINGS, _VISION, _STREAMING, _TOOLS})

    def get_available_models(self) -> dict[str, str]:
        return {
            "anthropic/claude-sonnet-4": "Claude Sonnet 4 (via OpenRouter)",
            "openai/gpt-4o": "GPT-4o (via OpenRouter)",
            "meta-llama/llama-3.3-70b-instruct": "Llama 3.3 70B (via OpenRouter)",
        }


class MistralProvider(OpenAIProvider):
    provider_identifier = "mistral"
    provider_name = "Mistral AI"
    default_base_url = "https://api.mistral.ai/v1"
    fallback_model = "mistral-large-latest"
    embedding_model = "mistral-embed"
    features = frozenset({_CHAT, _COMPLETION, _EMBEDDINGS, _STREAMING, _TOOLS})

    def get_available_models(self) -> dict[str, str]:
        return {
            "mistral-large-latest": "Mistral Large",
            "mistral-small-latest": "Mistral Small (Fast)",
            "codestral-latest": "Codestral (Code)",
        }


class GroqProvider(OpenAIProvider):
    provider_identifier = "groq"
    provider_name = "Groq"
    default_base_url = "https://api.groq.com/openai/v1"
    fallback_model = "llama-3.3-70b-versatile"
    features = frozenset({_CHAT, _COMPLETION, _STREAMING, _TOOLS})

    def get_available_models(self) -> dict[str, str]:
        return {
            "llama-3.3-70b-versatile": "Llama 3.3 70B Versatile",
            "llama-3.1-8b-instant": "Llama 3.1 8B Instant (Fast)",
        }


class GeminiProvider(OpenAIProvider):
    provider_identifier = "gemini"
    provider_name = "Google Gemini"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta/openai"
    fallback_model = "gemini-2.5-flash"
    embedding_model = "text-embedding-004"
    features = frozenset({_CHAT, _COMPLETION, _EMBEDDINGS, _VISION, _STREAMING, _TOOLS})

    def get_available_models(self) -> dict[str, str]:
        return {
            "gemini-2.5-pro": "Gemini 2.5 Pro",
            "gemini-2.5-flash": "Gemini 2.5 Flash (Fast)",
        }
