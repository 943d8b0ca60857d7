from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from ...knowledge_graph.store import GraphStore
from ..cache import MISSING, TTLCache, cache_key

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RELEVANCE = 0.5


class BaseResolver(ABC):
    """A cached traversal over one family of relationships.

    Every read goes through `_cached`, keyed by the entity id plus the
    read's options. Results are stored as tuples so cached values can be
    shared safely.
    """

    name: str = "base"
    relationship_types: tuple[str, ...] = ()

    def __init__(self, store: GraphStore | None, *, enable_cache: bool = True, cache_ttl: float = 60.0):
        self.store = store
        self.cache = TTLCache(cache_ttl, enabled=enable_cache)

    @abstractmethod
    async def resolve(self, entity_id: str, **options: Any) -> Any: ...

    def get_relevance(self, source_type: str | None, target_type: str | None, generation_target: str | None) -> float:
        return DEFAULT_RELEVANCE

    async def _cached(self, entity_id: str, options: dict[str, Any], load: Callable[[], Awaitable[T]]) -> T:
        key = cache_key(entity_id, {"resolver": self.name, **options})
        hit = self.cache.get(key)
        if hit is not MISSING:
            logger.debug("%s cache hit %s", self.name, key)
            return hit
        logger.debug("%s cache miss %s", self.name, key)
        value = await load()
        self.cache.set(key, value)
        return value

    def clear_cache(self) -> None:
        self.cache.clear()
