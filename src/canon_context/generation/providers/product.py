from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ...knowledge_graph.models import Entity, NodeType
from ..models import ContextEntity, ContextRequest, ContextRole, ProviderResult
from .base import BaseProvider


def _children(product: Entity, key: str, node_type: NodeType) -> list[Entity]:
    out = []
    for item in product.get(key) or ():
        if isinstance(item, Entity):
            out.append(item)
        elif isinstance(item, Mapping):
            out.append(Entity.from_record(item, node_type=node_type.value))
    return out


def _adapts(adaptation: Entity, entity_id: str) -> bool:
    target: Any = adaptation.get("entity_id") or adaptation.get("source_entity_id")
    return target == entity_id


class ProductProvider(BaseProvider):
    """Product framing for adaptation and section generation."""

    name = "product"
    limit_key = "product"

    async def gather(self, request: ContextRequest) -> ProviderResult:
        product = request.product
        if product is None and request.product_id:
            product = await self.resolvers.hierarchy.get_entity(request.product_id)
        if product is None:
            return self.result(summary="No product context")

        entities = [ContextEntity(entity=product, context_role=ContextRole.PRODUCT, depth=0)]
        entities += self.wrap(
            _children(product, "attributes", NodeType.ATTRIBUTE)[: self.limit], ContextRole.PRODUCT_ATTRIBUTE, 1
        )
        entities += self.wrap(
            _children(product, "mechanics", NodeType.MECHANIC)[: self.limit], ContextRole.PRODUCT_MECHANIC, 1
        )
        if request.entity_id:
            existing = [a for a in _children(product, "adaptations", NodeType.ADAPTATION) if _adapts(a, request.entity_id)]
            entities += self.wrap(existing[: self.limit], ContextRole.EXISTING_ADAPTATION, 1)

        return self.result(
            entities, f"Product: {product.name} ({len(entities) - 1} attributes/mechanics/adaptations)"
        )
