from __future__ import annotations

from typing import Any

from ...knowledge_graph.models import Entity
from ..models import SerializeOptions
from .base import DEFAULT_OPTIONS, BaseSerializer, as_refs


class TagSerializer(BaseSerializer):
    """Style/tone tags: what the tag means plus a few entities carrying it."""

    supported_types = ("tag",)

    def to_markdown(self, entity: Entity, depth: int = 0, options: SerializeOptions = DEFAULT_OPTIONS) -> str:
        label = f" [{self.format_type(entity.type)}]" if entity.type else ""
        lines = [self.heading(f"Tag: {entity.name}{label}", 3 + depth)]
        self.add_description(lines, entity, options)
        self.add_list(
            lines,
            "Examples",
            [f"{e['name']} ({e.get('node_type') or 'entity'})" for e in as_refs(entity.get("example_entities"))[:5]],
        )
        return "\n".join(lines)

    def to_structured(self, entity: Entity, options: SerializeOptions = DEFAULT_OPTIONS) -> dict[str, Any]:
        return {
            "id": entity.id,
            "name": entity.name,
            "node_type": "tag",
            "type": entity.type,
            "description": self.description(entity, options),
            "entity_count": int(entity.get("entity_count") or 0),
            "example_entities": [
                self.id_name(e, "node_type") for e in as_refs(entity.get("example_entities"))
            ],
        }

    def to_inline(self, tag: Entity) -> str:
        """One-line rendering for constraint lists."""
        if tag.description:
            return f"**{tag.name}**: {self.truncate(tag.description, 100)}"
        return f"**{tag.name}**"
