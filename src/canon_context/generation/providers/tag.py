from __future__ import annotations

import asyncio

from ...knowledge_graph.models import Entity
from ..models import ContextEntity, ContextRequest, ContextRole, ProviderResult
from .base import BaseProvider

EXAMPLES_PER_TAG = 5


class TagProvider(BaseProvider):
    """Style and tone constraints: tags common in the universe plus tags the caller chose."""

    name = "tag"
    limit_key = "tags"

    async def gather(self, request: ContextRequest) -> ProviderResult:
        tag_ids = list(dict.fromkeys(request.selected_context.tags))
        universe_tags, selected = await asyncio.gather(
            self._universe_tags(request.universe_id), self._selected_tags(tag_ids, request.universe_id)
        )

        entities: list[ContextEntity] = []
        seen: set[str] = set()
        for tag in selected:
            seen.add(tag.id)
            entities.append(ContextEntity(entity=tag, context_role=ContextRole.SELECTED_TAG, depth=0))
        n_universe = 0
        for tag in universe_tags:
            if tag.id in seen:
                continue
            seen.add(tag.id)
            n_universe += 1
            entities.append(ContextEntity(entity=tag, context_role=ContextRole.UNIVERSE_TAG, depth=2))

        entities = entities[: self.limit]
        if not entities:
            return self.result(summary="No tag context")
        return self.result(
            entities, f"Tags: {len(entities)} (universe: {n_universe}, selected: {len(selected)})"
        )

    async def _universe_tags(self, universe_id: str | None) -> tuple[Entity, ...]:
        if not universe_id:
            return ()
        return await self.resolvers.tag.get_universe_tags(universe_id, limit=self.limit // 2)

    async def _selected_tags(self, tag_ids: list[str], universe_id: str | None) -> list[Entity]:
        if not tag_ids:
            return []
        tag_resolver = self.resolvers.tag
        found = [t for t in await asyncio.gather(*(tag_resolver.get_tag_by_id(i) for i in tag_ids)) if t]
        examples = await asyncio.gather(
            *(tag_resolver.get_tagged_entities(t.id, limit=EXAMPLES_PER_TAG, universe_id=universe_id) for t in found)
        )
        return [t.with_props(example_entities=ex) for t, ex in zip(found, examples)]
