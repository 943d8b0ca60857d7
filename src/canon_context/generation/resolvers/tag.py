from __future__ import annotations

from ...knowledge_graph.models import Entity
from .base import BaseResolver


class TagResolver(BaseResolver):
    """Tags (TAGGED) on entities and across a universe."""

    name = "tag"
    relationship_types = ("TAGGED",)

    async def resolve(self, entity_id: str) -> tuple[Entity, ...]:
        """Tags applied to an entity, by name."""

        async def load() -> tuple[Entity, ...]:
            return tuple(await self.store.entity_tags(entity_id))

        return await self._cached(entity_id, {}, load)

    async def get_universe_tags(self, universe_id: str, *, limit: int | None = None) -> tuple[Entity, ...]:
        """Tags used under a universe, most used first; props carry `entity_count`."""

        async def load() -> tuple[Entity, ...]:
            return tuple(await self.store.scope_tags(universe_id, limit=limit))

        return await self._cached(universe_id, {"type": "universe", "limit": limit}, load)

    async def get_tagged_entities(
        self, tag_id: str, *, limit: int = 20, universe_id: str | None = None
    ) -> tuple[Entity, ...]:
        async def load() -> tuple[Entity, ...]:
            return tuple(await self.store.tagged_entities(tag_id, root_id=universe_id, limit=limit))

        return await self._cached(tag_id, {"type": "tagged", "limit": limit, "universe_id": universe_id}, load)

    async def get_same_tag_entities(self, entity_id: str, *, limit: int = 10) -> tuple[Entity, ...]:
        """Entities sharing at least one tag; props carry `shared_tags`."""

        async def load() -> tuple[Entity, ...]:
            return tuple(await self.store.same_tag_entities(entity_id, limit=limit))

        return await self._cached(entity_id, {"type": "same_tag", "limit": limit}, load)

    async def get_tag_by_id(self, tag_id: str) -> Entity | None:
        async def load() -> Entity | None:
            return await self.store.tag_by_id(tag_id)

        return await self._cached(tag_id, {"type": "by_id"}, load)

    def get_relevance(self, source_type, target_type, generation_target) -> float:
        return 0.8
