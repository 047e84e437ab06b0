"""Fact store snapshot and its on-disk cache."""

from .cache import CACHE_VERSION, CachePayload, IndexCache
from .fact_store import Caller, DEFAULT_SEARCH_LIMIT, FactStore

__all__ = ["CACHE_VERSION", "CachePayload", "Caller", "DEFAULT_SEARCH_LIMIT", "FactStore", "IndexCache"]
