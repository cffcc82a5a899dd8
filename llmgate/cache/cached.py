"""
Cache-through helpers: route dispatch calls through the response cache.

Each helper checks the cache, calls the dispatch manager (or the
configuration resolver) on a miss, stores the normalized payload and
returns a typed response either way. Cached payloads are the
responses' to_dict() form.

Usage:
    from llmgate.cache.cached import cached_chat, cached_embed

    response = cached_chat(cache, manager, messages, ChatOptions.factual())
    vectors = cached_embed(cache, manager, "some text").embeddings
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from llmgate.cache.manager import CacheManager
from llmgate.domain.options import OptionsLike, options_to_dict
from llmgate.domain.records import LLMConfiguration
from llmgate.domain.responses import CompletionResponse, EmbeddingResponse, normalize_messages
from llmgate.manager import LLMServiceManager, MessagesLike
from llmgate.resolver import ConfigurationResolver

logger = logging.getLogger(__name__)


def cached_chat(
    cache: CacheManager,
    manager: LLMServiceManager,
    messages: MessagesLike,
    options: OptionsLike = None,
    *,
    lifetime: Optional[int] = None,
) -> CompletionResponse:
    """
    Chat through the cache.

    The cache is keyed by the resolved provider identifier, so calls
    relying on the default provider share entries with calls naming it.
    `lifetime` defaults to the cache's completion_ttl.
    """
    opts = options_to_dict(options)
    if not cache.enabled:
        return manager.chat(messages, opts)

    provider = manager.get_provider(opts.get("provider")).identifier
    key_options = {k: v for k, v in opts.items() if k != "provider"}
    plain_messages = normalize_messages(messages)

    cached = cache.get_cached_completion(provider, plain_messages, key_options)
    if cached is not None:
        logger.debug("cached_chat_hit", extra={"provider": provider})
        return CompletionResponse.from_dict(cached)

    response = manager.chat(plain_messages, {**key_options, "provider": provider})
    cache.cache_completion(provider, plain_messages, key_options, response.to_dict(), lifetime)
    return response


def cached_embed(
    cache: CacheManager,
    manager: LLMServiceManager,
    input: Union[str, list[str]],
    options: OptionsLike = None,
) -> EmbeddingResponse:
    """
    Embed through the cache.

    The `cache_ttl` option sets the entry lifetime (the cache's
    embeddings_ttl when unset); 0 bypasses the cache entirely.
    """
    opts = options_to_dict(options)
    cache_ttl = opts.pop("cache_ttl", None)
    provider = manager.get_provider(opts.get("provider")).identifier
    key_options: dict[str, Any] = {k: v for k, v in opts.items() if k != "provider"}
    call_options = {**key_options, "provider": provider}

    if not cache.enabled or (cache_ttl is not None and cache_ttl <= 0):
        return manager.embed(input, call_options)

    cached = cache.get_cached_embeddings(provider, input, key_options)
    if cached is not None:
        logger.debug("cached_embed_hit", extra={"provider": provider})
        return EmbeddingResponse.from_dict(cached)

    response = manager.embed(input, call_options)
    cache.cache_embeddings(provider, input, key_options, response.to_dict(), cache_ttl)
    return response


def cached_chat_with_configuration(
    cache: CacheManager,
    resolver: ConfigurationResolver,
    messages: MessagesLike,
    configuration: LLMConfiguration,
    *,
    lifetime: Optional[int] = None,
) -> CompletionResponse:
    """
    Chat with a configuration through the cache.

    Keyed by the resolved adapter's identifier and the effective model,
    so criteria-mode configurations that resolve to a different model
    miss the cache.
    """
    if not cache.enabled:
        return resolver.chat(messages, configuration)

    adapter = resolver.get_adapter(configuration)
    options = resolver.options_for(configuration)
    options.setdefault("model", adapter.default_model)
    plain_messages = normalize_messages(messages)

    cached = cache.get_cached_completion(adapter.identifier, plain_messages, options)
    if cached is not None:
        logger.debug(
            "cached_configuration_hit",
            extra={"configuration": configuration.identifier, "provider": adapter.identifier},
        )
        return CompletionResponse.from_dict(cached)

    response = adapter.chat_completion(plain_messages, options)
    cache.cache_completion(
        adapter.identifier, plain_messages, options, response.to_dict(), lifetime
    )
    return response
