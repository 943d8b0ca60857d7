from __future__ import annotations

from ...knowledge_graph.models import Entity
from .base import BaseResolver


class SiblingResolver(BaseResolver):
    """Entities sharing a direct CONTAINS parent."""

    name = "sibling"
    relationship_types = ("CONTAINS",)

    async def resolve(
        self, entity_id: str, *, target_type: str | None = None, limit: int = 20
    ) -> tuple[Entity, ...]:
        async def load() -> tuple[Entity, ...]:
            return tuple(await self.store.siblings(entity_id, node_type=target_type, limit=limit))

        return await self._cached(entity_id, {"target_type": target_type, "limit": limit}, load)

    async def get_same_type_siblings(self, entity_id: str, *, limit: int = 10) -> tuple[Entity, ...]:
        async def load() -> tuple[Entity, ...]:
            return tuple(await self.store.siblings(entity_id, same_type=True, limit=limit))

        return await self._cached(entity_id, {"type": "same_type", "limit": limit}, load)

    async def get_sibling_counts(self, entity_id: str) -> dict[str, int]:
        async def load() -> tuple[tuple[str, int], ...]:
            return tuple(sorted((await self.store.sibling_counts(entity_id)).items()))

        return dict(await self._cached(entity_id, {"type": "counts"}, load))

    def get_relevance(self, source_type, target_type, generation_target) -> float:
        # target_type is the sibling's own type
        return 0.8 if target_type and target_type == generation_target else 0.5
