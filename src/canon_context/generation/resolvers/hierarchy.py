from __future__ import annotations

from collections.abc import Sequence

from ...knowledge_graph.models import Entity, NodeType
from .base import BaseResolver


class HierarchyResolver(BaseResolver):
    """Containment chain (CONTAINS) from the universe root down."""

    name = "hierarchy"
    relationship_types = ("CONTAINS",)

    async def resolve(self, entity_id: str, *, max_depth: int = 10) -> tuple[Entity, ...]:
        """Ancestor chain, universe first, ending at the entity itself."""

        async def load() -> tuple[Entity, ...]:
            return tuple(await self.store.ancestors(entity_id, max_depth=max_depth))

        return await self._cached(entity_id, {"max_depth": max_depth}, load)

    async def get_children(
        self, entity_id: str, *, target_type: str | None = None, limit: int = 50
    ) -> tuple[Entity, ...]:
        async def load() -> tuple[Entity, ...]:
            return tuple(await self.store.children(entity_id, node_type=target_type, limit=limit))

        return await self._cached(entity_id, {"type": "children", "target_type": target_type, "limit": limit}, load)

    async def get_parent(self, entity_id: str) -> Entity | None:
        async def load() -> Entity | None:
            return await self.store.parent(entity_id)

        return await self._cached(entity_id, {"type": "parent"}, load)

    async def get_universe(self, entity_id: str) -> Entity | None:
        chain = await self.resolve(entity_id)
        if chain and chain[0].node_type == NodeType.UNIVERSE.value:
            return chain[0]
        return None

    async def get_entity(self, entity_id: str) -> Entity | None:
        async def load() -> Entity | None:
            return await self.store.get_entity(entity_id)

        return await self._cached(entity_id, {"type": "entity"}, load)

    async def get_entities(self, entity_ids: Sequence[str]) -> tuple[Entity, ...]:
        """Point lookups in request order; unknown ids are dropped."""
        ids = tuple(dict.fromkeys(i for i in entity_ids if i))
        if not ids:
            return ()

        async def load() -> tuple[Entity, ...]:
            return tuple(await self.store.get_entities(list(ids)))

        return await self._cached(ids[0], {"type": "entities", "ids": list(ids)}, load)

    async def get_entity_counts(self, universe_id: str) -> dict[str, int]:
        async def load() -> tuple[tuple[str, int], ...]:
            return tuple(sorted((await self.store.entity_counts(universe_id)).items()))

        return dict(await self._cached(universe_id, {"type": "entity_counts"}, load))

    def get_relevance(self, source_type, target_type, generation_target) -> float:
        return 0.9
