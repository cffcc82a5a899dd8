"""
Observability for llmgate: structured logging with request correlation.
"""
