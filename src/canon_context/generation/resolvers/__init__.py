"""Cached graph traversals used by the context providers."""

from __future__ import annotations

from dataclasses import dataclass

from ...knowledge_graph.store import GraphStore
from .base import BaseResolver
from .hierarchy import HierarchyResolver
from .involvement import InvolvementResolver
from .relevance import RelevanceResolver, ScoredEntity
from .sibling import SiblingResolver
from .tag import TagResolver


@dataclass(slots=True)
class ResolverSet:
    hierarchy: HierarchyResolver
    tag: TagResolver
    involvement: InvolvementResolver
    sibling: SiblingResolver
    relevance: RelevanceResolver

    @classmethod
    def create(
        cls,
        store: GraphStore,
        *,
        enable_cache: bool = True,
        cache_ttl: float = 60.0,
        relevance_matrix: dict[str, dict[str, float]] | None = None,
    ) -> ResolverSet:
        opts = {"enable_cache": enable_cache, "cache_ttl": cache_ttl}
        tag = TagResolver(store, **opts)
        involvement = InvolvementResolver(store, **opts)
        sibling = SiblingResolver(store, **opts)
        return cls(
            hierarchy=HierarchyResolver(store, **opts),
            tag=tag,
            involvement=involvement,
            sibling=sibling,
            relevance=RelevanceResolver(
                sibling=sibling,
                tag=tag,
                involvement=involvement,
                relevance_matrix=relevance_matrix,
                **opts,
            ),
        )

    def all(self) -> tuple[BaseResolver, ...]:
        return (self.hierarchy, self.tag, self.involvement, self.sibling, self.relevance)

    def by_relationship_type(self, relationship_type: str) -> list[BaseResolver]:
        return [r for r in self.all() if relationship_type in r.relationship_types]

    def clear_all_caches(self) -> None:
        for resolver in self.all():
            resolver.clear_cache()


__all__ = [
    "BaseResolver",
    "HierarchyResolver",
    "InvolvementResolver",
    "RelevanceResolver",
    "ResolverSet",
    "ScoredEntity",
    "SiblingResolver",
    "TagResolver",
]
