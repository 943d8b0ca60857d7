from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from .models import Entity, Involvement, Relation


class GraphStore(Protocol):
    """Read-side traversal primitives over the canon graph.

    Containment is the transitive CONTAINS relation rooted at a universe.
    Result lists are ordered by entity name unless stated otherwise.
    """

    async def close(self) -> None: ...

    async def upsert(self, *, entities: list[Entity], relations: list[Relation]) -> None: ...

    async def get_entity(self, entity_id: str) -> Entity | None: ...

    async def get_entities(self, entity_ids: Sequence[str]) -> list[Entity]:
        """Point lookups in request order; unknown ids are skipped."""
        ...

    async def ancestors(self, entity_id: str, *, max_depth: int = 10) -> list[Entity]:
        """Chain from the universe root down to and including the entity.

        Empty when the entity is missing or sits outside any containment chain.
        """
        ...

    async def children(
        self, entity_id: str, *, node_type: str | None = None, limit: int = 50
    ) -> list[Entity]: ...

    async def parent(self, entity_id: str) -> Entity | None: ...

    async def siblings(
        self,
        entity_id: str,
        *,
        node_type: str | None = None,
        same_type: bool = False,
        limit: int = 20,
    ) -> list[Entity]: ...

    async def sibling_counts(self, entity_id: str) -> dict[str, int]: ...

    async def entity_tags(self, entity_id: str) -> list[Entity]: ...

    async def scope_tags(self, root_id: str, *, limit: int | None = None) -> list[Entity]:
        """Tags used under a root; props carry `entity_count`, ordered by it desc."""
        ...

    async def tagged_entities(
        self, tag_id: str, *, root_id: str | None = None, limit: int = 20
    ) -> list[Entity]: ...

    async def same_tag_entities(self, entity_id: str, *, limit: int = 10) -> list[Entity]:
        """Entities sharing a tag; props carry `shared_tags`, ordered by it desc."""
        ...

    async def tag_by_id(self, tag_id: str) -> Entity | None: ...

    async def involvement(self, entity_id: str) -> Involvement: ...

    async def event_participants(self, event_id: str) -> list[Entity]: ...

    async def event_locations(self, event_id: str) -> list[Entity]: ...

    async def co_participants(self, entity_id: str, *, limit: int = 10) -> list[Entity]:
        """Entities sharing an event; props carry `shared_events`, ordered by it desc."""
        ...

    async def entity_counts(self, root_id: str) -> dict[str, int]:
        """Contained places/characters/items/events/narratives under a root."""
        ...
