"""
Response cache.

Modules:
- backends: CacheBackend contract and InMemoryCacheBackend (TTL, LRU, tags)
- manager: CacheManager, key derivation, tagging, invalidation
- cached: cache-through helpers for the dispatch manager and resolver
"""
