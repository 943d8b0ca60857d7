from __future__ import annotations

from typing import Any

from ...knowledge_graph.models import Entity
from ..models import SerializeOptions
from .base import DEFAULT_OPTIONS, BaseSerializer


class DefaultSerializer(BaseSerializer):
    """Fallback for node types without a dedicated serializer."""

    supported_types = ("default",)

    def to_markdown(self, entity: Entity, depth: int = 0, options: SerializeOptions = DEFAULT_OPTIONS) -> str:
        kind = self.format_type(entity.node_type or "entity")
        blocks = [
            self.heading(f"{entity.name} ({kind})", 3 + depth),
            self.description(entity, options),
            self.kv_pair("Type", self.format_type(entity.type)),
        ]
        return "\n\n".join(b for b in blocks if b)

    def to_structured(self, entity: Entity, options: SerializeOptions = DEFAULT_OPTIONS) -> dict[str, Any]:
        return {
            "id": entity.id,
            "name": entity.name,
            "node_type": entity.node_type,
            "type": entity.type,
            "description": self.description(entity, options),
        }
