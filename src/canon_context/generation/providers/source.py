from __future__ import annotations

import asyncio

from ...knowledge_graph.models import Entity
from ..models import ContextEntity, ContextRequest, ContextRole, ProviderResult
from .base import BaseProvider


class SourceProvider(BaseProvider):
    """The focal entity itself plus the tags applied to it."""

    name = "source"
    limit_key = "source"

    async def gather(self, request: ContextRequest) -> ProviderResult:
        if not request.entity_id and request.source_entity is None:
            return self.result(summary="No source entity")

        entity_id = request.entity_id or request.source_entity.id
        source, tags = await asyncio.gather(self._source(request), self.resolvers.tag.resolve(entity_id))
        tags = tags[: self.config.limit("tags")]

        entities: list[ContextEntity] = []
        if source is not None:
            entities.append(ContextEntity(entity=source.with_tags(tags), context_role=ContextRole.SOURCE))
        entities.extend(self.wrap(tags, ContextRole.SOURCE_TAG, 1))

        if source is None:
            summary = "No source entity"
        else:
            summary = f"Source: {source.name} ({source.node_type or 'entity'}) with {len(tags)} tags"
        return self.result(entities, summary)

    async def _source(self, request: ContextRequest) -> Entity | None:
        if request.source_entity is not None:
            return request.source_entity
        chain = await self.resolvers.hierarchy.resolve(request.entity_id)
        for e in chain:
            if e.id == request.entity_id:
                return e
        return await self.resolvers.hierarchy.get_entity(request.entity_id)
