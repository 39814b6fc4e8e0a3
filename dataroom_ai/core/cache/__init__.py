from .cache import Cache
from .keys import canonical_json, embedding_key, hash_bytes, hash_text, llm_response_key
from .provider import get_cache, reset_caches
from .types import CacheBackend, CacheGetOrSet, CacheNamespace, CachePolicy

__all__ = [
    "Cache",
    "CacheBackend",
    "CacheGetOrSet",
    "CacheNamespace",
    "CachePolicy",
    "canonical_json",
    "embedding_key",
    "get_cache",
    "hash_bytes",
    "hash_text",
    "llm_response_key",
    "reset_caches",
]
