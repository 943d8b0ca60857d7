from __future__ import annotations

import asyncio

from ...knowledge_graph.models import Entity, NodeType
from ..models import ContextEntity, ContextRequest, ContextRole, ProviderResult
from .base import BaseProvider

# Siblings scanned when matching the caller's selection.
SIBLING_SCAN_LIMIT = 100


class HierarchyProvider(BaseProvider):
    """Containment ancestors of the focal entity, up to the universe."""

    name = "hierarchy"
    limit_key = "hierarchy"

    async def gather(self, request: ContextRequest) -> ProviderResult:
        if not request.entity_id:
            return self.result(summary="No parent hierarchy")

        hierarchy = self.resolvers.hierarchy
        if request.universe_id:
            chain, counts = await asyncio.gather(
                hierarchy.resolve(request.entity_id), hierarchy.get_entity_counts(request.universe_id)
            )
        else:
            chain = await hierarchy.resolve(request.entity_id)
            counts = None

        ancestors = [e for e in chain if e.id != request.entity_id]
        if not ancestors:
            return self.result(summary="No parent hierarchy")

        # ancestors run root-first; depth counts up from the focal entity
        depths = {e.id: len(ancestors) - i for i, e in enumerate(ancestors)}
        if len(ancestors) > self.limit:
            # keep the root plus the nearest ancestors
            keep = max(self.limit - 1, 0)
            ancestors = ancestors[:1] + (ancestors[-keep:] if keep else [])

        root = ancestors[0]
        root_role = ContextRole.ANCESTOR
        if root.node_type == NodeType.UNIVERSE.value:
            root_role = ContextRole.UNIVERSE
            if counts is None or root.id != request.universe_id:
                counts = await hierarchy.get_entity_counts(root.id)
            root = root.with_props(entity_counts=counts)

        entities = [ContextEntity(entity=root, context_role=root_role, depth=depths[root.id])]
        entities.extend(
            ContextEntity(entity=e, context_role=ContextRole.ANCESTOR, depth=depths[e.id]) for e in ancestors[1:]
        )
        return self.result(entities, "Hierarchy: " + " → ".join(e.name for e in ancestors))


class SiblingProvider(BaseProvider):
    """Entities sharing the focal entity's parent, only when the caller picked them."""

    name = "sibling"
    limit_key = "siblings"

    async def gather(self, request: ContextRequest) -> ProviderResult:
        selected = set(request.selected_context.entity_ids)
        if not request.entity_id or not selected:
            return self.result(summary="No siblings selected")

        siblings = await self.resolvers.sibling.resolve(request.entity_id, limit=SIBLING_SCAN_LIMIT)
        picked: list[Entity] = [s for s in siblings if s.id in selected][: self.limit]
        if not picked:
            return self.result(summary="No siblings selected")

        entities: list[ContextEntity] = self.wrap(picked, ContextRole.SIBLING, 1, user_selected=True)
        return self.result(entities, f"Siblings: {len(picked)} selected")
