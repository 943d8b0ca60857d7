from __future__ import annotations

from ...knowledge_graph.models import Entity, Involvement
from .base import BaseResolver

_TARGET_RELEVANCE = {"event": 0.9, "character": 0.7, "narrative": 0.8}


class InvolvementResolver(BaseResolver):
    """Event participation (INVOLVES) and event locations (OCCURS_AT)."""

    name = "involvement"
    relationship_types = ("INVOLVES", "OCCURS_AT")

    async def resolve(self, entity_id: str) -> Involvement:
        async def load() -> Involvement:
            return await self.store.involvement(entity_id)

        return await self._cached(entity_id, {}, load)

    async def get_event_participants(self, event_id: str) -> tuple[Entity, ...]:
        async def load() -> tuple[Entity, ...]:
            return tuple(await self.store.event_participants(event_id))

        return await self._cached(event_id, {"type": "participants"}, load)

    async def get_event_locations(self, event_id: str) -> tuple[Entity, ...]:
        async def load() -> tuple[Entity, ...]:
            return tuple(await self.store.event_locations(event_id))

        return await self._cached(event_id, {"type": "locations"}, load)

    async def get_co_participants(self, entity_id: str, *, limit: int = 10) -> tuple[Entity, ...]:
        """Entities sharing an event with this one; props carry `shared_events`."""

        async def load() -> tuple[Entity, ...]:
            return tuple(await self.store.co_participants(entity_id, limit=limit))

        return await self._cached(entity_id, {"type": "co_participants", "limit": limit}, load)

    def get_relevance(self, source_type, target_type, generation_target) -> float:
        return _TARGET_RELEVANCE.get(generation_target or "", 0.5)
