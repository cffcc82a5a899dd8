"""
Provider adapters: one class per vendor API flavour.

Modules:
- contracts: ProviderAdapter plus the optional Vision/Streaming/Tool contracts
- base: BaseProvider, shared configuration, availability and feature queries
- openai_provider: OpenAI and OpenAI-compatible endpoints (openai SDK)
- compatible: OpenRouter, Mistral, Groq, Gemini via their OpenAI-compatible APIs
- anthropic_provider: Claude (anthropic SDK)
- ollama_provider: local Ollama server (httpx)
- adapter_registry: ProviderAdapterRegistry, adapter type -> class, record -> adapter
"""
