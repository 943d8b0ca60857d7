from __future__ import annotations

from typing import Any

from ...knowledge_graph.models import Entity
from ..models import SerializeOptions
from .base import DEFAULT_OPTIONS, BaseSerializer, as_ref, as_refs

_COUNT_ORDER = ("places", "characters", "items", "events", "narratives")


class UniverseSerializer(BaseSerializer):
    supported_types = ("universe",)

    def to_markdown(self, entity: Entity, depth: int = 0, options: SerializeOptions = DEFAULT_OPTIONS) -> str:
        lines = [self.heading(f"Universe: {entity.name}", 2 + depth)]
        if entity.type:
            lines.append(self.kv_pair("Genre", self.format_type(entity.type)))
        self.add_description(lines, entity, options)

        counts = entity.get("entity_counts") or {}
        parts = [f"{counts[k]} {k}" for k in _COUNT_ORDER if counts.get(k)]
        if parts:
            lines.append("")
            lines.append("**World Contents:**")
            lines.append(" | ".join(parts))

        self.add_tags(lines, entity, "Style Tags")
        return "\n".join(lines)

    def to_structured(self, entity: Entity, options: SerializeOptions = DEFAULT_OPTIONS) -> dict[str, Any]:
        counts = entity.get("entity_counts")
        return {
            "id": entity.id,
            "name": entity.name,
            "node_type": "universe",
            "type": entity.type,
            "description": self.description(entity, options),
            "entity_counts": dict(counts) if counts else None,
            "tags": self.tag_refs(entity),
        }


class PlaceSerializer(BaseSerializer):
    supported_types = ("place",)

    def to_markdown(self, entity: Entity, depth: int = 0, options: SerializeOptions = DEFAULT_OPTIONS) -> str:
        lines = [self.heading(entity.name, 3 + depth)]
        if entity.type:
            lines.append(self.kv_pair("Type", self.format_type(entity.type)))
        parent = as_ref(entity.get("parent_place"))
        if parent:
            lines.append(self.kv_pair("Located in", parent["name"]))
        self.add_description(lines, entity, options)
        self.add_list(lines, "Notable Inhabitants", [c["name"] for c in as_refs(entity.get("inhabitants"))[:5]])
        self.add_list(lines, "Sub-locations", [p["name"] for p in as_refs(entity.get("sub_locations"))[:5]])
        self.add_list(lines, "Notable Events", [e["name"] for e in as_refs(entity.get("events"))[:3]])
        self.add_tags(lines, entity)
        return "\n".join(lines)

    def to_structured(self, entity: Entity, options: SerializeOptions = DEFAULT_OPTIONS) -> dict[str, Any]:
        return {
            "id": entity.id,
            "name": entity.name,
            "node_type": "place",
            "type": entity.type,
            "description": self.description(entity, options),
            "parent_place": self.id_name(as_ref(entity.get("parent_place"))),
            "inhabitants": [self.id_name(c, "type") for c in as_refs(entity.get("inhabitants"))],
            "sub_locations": [self.id_name(p, "type") for p in as_refs(entity.get("sub_locations"))],
            "events": [self.id_name(e) for e in as_refs(entity.get("events"))],
            "tags": self.tag_refs(entity),
        }


class CharacterSerializer(BaseSerializer):
    supported_types = ("character",)

    def to_markdown(self, entity: Entity, depth: int = 0, options: SerializeOptions = DEFAULT_OPTIONS) -> str:
        lines = [self.heading(entity.name, 3 + depth)]
        if entity.type:
            lines.append(self.kv_pair("Role", self.format_type(entity.type)))
        location = as_ref(entity.get("location"))
        if location:
            lines.append(self.kv_pair("Location", location["name"]))
        self.add_description(lines, entity, options)
        self.add_list(lines, "Possessions", [i["name"] for i in as_refs(entity.get("items"))[:5]])
        self.add_list(lines, "Key Events", [e["name"] for e in as_refs(entity.get("events"))[:3]])
        self.add_list(
            lines,
            "Relationships",
            [f"{r['name']} ({r.get('relationship_type') or 'associated'})" for r in as_refs(entity.get("relationships"))[:5]],
        )
        self.add_tags(lines, entity)
        return "\n".join(lines)

    def to_structured(self, entity: Entity, options: SerializeOptions = DEFAULT_OPTIONS) -> dict[str, Any]:
        return {
            "id": entity.id,
            "name": entity.name,
            "node_type": "character",
            "type": entity.type,
            "description": self.description(entity, options),
            "location": self.id_name(as_ref(entity.get("location"))),
            "items": [self.id_name(i, "type") for i in as_refs(entity.get("items"))],
            "events": [self.id_name(e) for e in as_refs(entity.get("events"))],
            "relationships": [
                self.id_name(r, "relationship_type") for r in as_refs(entity.get("relationships"))
            ],
            "tags": self.tag_refs(entity),
        }


class ItemSerializer(BaseSerializer):
    supported_types = ("item",)

    def to_markdown(self, entity: Entity, depth: int = 0, options: SerializeOptions = DEFAULT_OPTIONS) -> str:
        lines = [self.heading(entity.name, 3 + depth)]
        if entity.type:
            lines.append(self.kv_pair("Type", self.format_type(entity.type)))
        owner = as_ref(entity.get("owner"))
        if owner:
            lines.append(self.kv_pair("Owner", owner["name"]))
        origin = as_ref(entity.get("origin"))
        if origin:
            lines.append(self.kv_pair("Origin", origin["name"]))
        self.add_description(lines, entity, options)
        self.add_list(lines, "Appears in Events", [e["name"] for e in as_refs(entity.get("events"))[:3]])
        self.add_tags(lines, entity)
        return "\n".join(lines)

    def to_structured(self, entity: Entity, options: SerializeOptions = DEFAULT_OPTIONS) -> dict[str, Any]:
        return {
            "id": entity.id,
            "name": entity.name,
            "node_type": "item",
            "type": entity.type,
            "description": self.description(entity, options),
            "owner": self.id_name(as_ref(entity.get("owner"))),
            "origin": self.id_name(as_ref(entity.get("origin"))),
            "events": [self.id_name(e) for e in as_refs(entity.get("events"))],
            "tags": self.tag_refs(entity),
        }
