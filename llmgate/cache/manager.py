"""
Response cache manager: content-addressed caching of LLM calls.

Keys are derived from (provider, operation, normalized params): dict
keys are sorted recursively and the `stream` / `user` parameters are
ignored, so semantically identical calls share a key. Every entry is
tagged so it can be invalidated along several dimensions:

    llm, llm_response          every entry
    llm_completion             completions
    llm_embeddings             embeddings
    llm_provider_<id>          per provider
    llm_model_<sanitized>      per model (completions with a model option)

Backend failures never surface to callers: failed reads become misses,
failed writes are dropped, and both are logged at WARNING.

Usage:
    cache = CacheManager(InMemoryCacheBackend())

    cached = cache.get_cached_completion("openai", messages, options)
    if cached is None:
        response = manager.chat(messages, options)
        cache.cache_completion("openai", messages, options, response.to_dict())
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from typing import Any, Iterable, Optional, Union

from llmgate.cache.backends import CacheBackend, InMemoryCacheBackend
from llmgate.config.schema import CacheSettings, LLMSettings

logger = logging.getLogger(__name__)

DEFAULT_TAGS = ("llm", "llm_response")
COMPLETION_TTL = 3600
EMBEDDINGS_TTL = 86400

# Parameters that never change the response content
IGNORED_PARAMS = ("stream", "user")

_TAG_UNSAFE = re.compile(r"[^A-Za-z0-9_]")


def sanitize_tag(value: str) -> str:
    """Replace every character outside [A-Za-z0-9_] with an underscore."""
    return _TAG_UNSAFE.sub("_", value)


def provider_tag(provider: str) -> str:
    return f"llm_provider_{sanitize_tag(provider)}"


def model_tag(model: str) -> str:
    return f"llm_model_{sanitize_tag(model)}"


class CacheManager:
    """
    Tag-aware response cache on top of a CacheBackend.

    Args:
        backend: Storage; an InMemoryCacheBackend when omitted.
        completion_ttl: Default lifetime of completion entries, seconds.
        embeddings_ttl: Default lifetime of embeddings entries, seconds.
        enabled: When False the cache-through helpers call straight
            through to the provider.
    """

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        *,
        completion_ttl: int = COMPLETION_TTL,
        embeddings_ttl: int = EMBEDDINGS_TTL,
        enabled: bool = True,
    ):
        self._backend = backend if backend is not None else InMemoryCacheBackend()
        self.completion_ttl = completion_ttl
        self.embeddings_ttl = embeddings_ttl
        self.enabled = enabled

    @classmethod
    def from_settings(
        cls,
        settings: Union[LLMSettings, CacheSettings],
        backend: Optional[CacheBackend] = None,
    ) -> "CacheManager":
        """Build from the `cache` section of the settings file."""
        cache_settings = settings.cache if isinstance(settings, LLMSettings) else settings
        if backend is None:
            backend = InMemoryCacheBackend(max_entries=cache_settings.max_entries)
        return cls(
            backend,
            completion_ttl=cache_settings.completion_ttl,
            embeddings_ttl=cache_settings.embeddings_ttl,
            enabled=cache_settings.enabled,
        )

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    # --- Key Generation ---

    @staticmethod
    def generate_cache_key(provider: str, operation: str, params: dict[str, Any]) -> str:
        """
        Deterministic key: "<provider>_<operation>_<sha256 of params>".

        Top-level `stream` and `user` are dropped before hashing. Sets are
        hashed as sorted lists so keys are stable across processes.
        """
        normalized = {k: v for k, v in params.items() if k not in IGNORED_PARAMS}
        raw = json.dumps(_canonical(normalized), sort_keys=True, default=str)
        digest = hashlib.sha256(raw.encode()).hexdigest()
        return f"{provider}_{operation}_{digest}"

    # --- Core Operations ---

    def get(self, key: str) -> Optional[dict[str, Any]]:
        """Cached payload, or None when missing, not a dict, or on backend error."""
        try:
            data = self._backend.get(key)
        except Exception as e:
            _log_backend_error("cache_read_failed", key, e)
            return None
        return data if isinstance(data, dict) else None

    def set(
        self,
        key: str,
        data: dict[str, Any],
        lifetime: int = COMPLETION_TTL,
        tags: Iterable[str] = (),
    ) -> bool:
        """Store a payload. Returns False when the backend write failed."""
        all_tags = list(dict.fromkeys([*DEFAULT_TAGS, *tags]))
        try:
            self._backend.set(key, data, tags=all_tags, lifetime=lifetime)
        except Exception as e:
            _log_backend_error("cache_write_failed", key, e)
            return False
        return True

    def has(self, key: str) -> bool:
        try:
            return self._backend.has(key)
        except Exception as e:
            _log_backend_error("cache_read_failed", key, e)
            return False

    def remove(self, key: str) -> None:
        self._backend.remove(key)

    def flush(self) -> None:
        self._backend.flush()
        logger.info("cache_flushed")

    def flush_by_tag(self, tag: str) -> None:
        self._backend.flush_by_tag(tag)

    def flush_by_provider(self, provider: str) -> None:
        self.flush_by_tag(provider_tag(provider))

    def flush_by_model(self, model: str) -> None:
        self.flush_by_tag(model_tag(model))

    # --- Completions ---

    def cache_completion(
        self,
        provider: str,
        messages: list[dict[str, Any]],
        options: dict[str, Any],
        response: dict[str, Any],
        lifetime: Optional[int] = None,
    ) -> str:
        """Store a completion payload. Returns the cache key."""
        if lifetime is None:
            lifetime = self.completion_ttl
        key = self._completion_key(provider, messages, options)

        tags = ["llm_completion", provider_tag(provider)]
        if options.get("model"):
            tags.append(model_tag(str(options["model"])))

        if not self.set(key, response, lifetime, tags):
            return key
        logger.debug(
            "completion_cached",
            extra={"provider": provider, "key": key[:32], "lifetime": lifetime},
        )
        return key

    def get_cached_completion(
        self,
        provider: str,
        messages: list[dict[str, Any]],
        options: dict[str, Any],
    ) -> Optional[dict[str, Any]]:
        return self.get(self._completion_key(provider, messages, options))

    def _completion_key(
        self,
        provider: str,
        messages: list[dict[str, Any]],
        options: dict[str, Any],
    ) -> str:
        return self.generate_cache_key(provider, "completion", {
            "messages": messages,
            "options": _strip_ignored(options),
        })

    # --- Embeddings ---

    def cache_embeddings(
        self,
        provider: str,
        input: Union[str, list[str]],
        options: dict[str, Any],
        response: dict[str, Any],
        lifetime: Optional[int] = None,
    ) -> str:
        """Store an embeddings payload. Returns the cache key."""
        if lifetime is None:
            lifetime = self.embeddings_ttl
        key = self._embeddings_key(provider, input, options)
        if not self.set(key, response, lifetime, ["llm_embeddings", provider_tag(provider)]):
            return key
        logger.debug(
            "embeddings_cached",
            extra={"provider": provider, "key": key[:32], "lifetime": lifetime},
        )
        return key

    def get_cached_embeddings(
        self,
        provider: str,
        input: Union[str, list[str]],
        options: dict[str, Any],
    ) -> Optional[dict[str, Any]]:
        return self.get(self._embeddings_key(provider, input, options))

    def _embeddings_key(
        self,
        provider: str,
        input: Union[str, list[str]],
        options: dict[str, Any],
    ) -> str:
        return self.generate_cache_key(provider, "embeddings", {
            "input": input,
            "options": _strip_ignored(options),
        })


def _strip_ignored(options: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in options.items() if k not in IGNORED_PARAMS}


def _canonical(value: Any) -> Any:
    """Make params hash the same regardless of container ordering."""
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(
            (_canonical(v) for v in value),
            key=lambda v: json.dumps(v, sort_keys=True, default=str),
        )
    return value


def _log_backend_error(event: str, key: str, error: Exception) -> None:
    logger.warning(event, extra={"key": key[:32], "error": str(error)[:200]})
