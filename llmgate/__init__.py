"""
llmgate: one interface over many LLM vendor APIs.

Modules:
- manager: LLMServiceManager, provider registry and dispatch
- resolver: ConfigurationResolver, run operations against named configurations
- selection: ModelSelectionService, pick models by capability, context, cost
- providers: vendor adapters, capability contracts, adapter factory
- cache: CacheManager, content-addressed response cache with tag invalidation
- config: settings schema and loader
- observability: structured logging setup
"""

__version__ = "0.1.0"
