"""
Domain types shared across llmgate.

Modules:
- enums: ModelCapability, SelectionMode, AdapterType
- records: ProviderRecord, ModelRecord, ModelSelectionCriteria, LLMConfiguration
- options: typed per-call options (ChatOptions, ToolOptions, EmbeddingOptions, VisionOptions)
- responses: normalized responses and ChatMessage
"""
