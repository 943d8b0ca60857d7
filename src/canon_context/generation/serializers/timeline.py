from __future__ import annotations

from typing import Any

from ...knowledge_graph.models import Entity
from ..models import SerializeOptions
from .base import DEFAULT_OPTIONS, BaseSerializer, as_ref, as_refs


class EventSerializer(BaseSerializer):
    supported_types = ("event",)

    def to_markdown(self, entity: Entity, depth: int = 0, options: SerializeOptions = DEFAULT_OPTIONS) -> str:
        lines = [self.heading(entity.name, 3 + depth)]
        if entity.type:
            lines.append(self.kv_pair("Type", self.format_type(entity.type)))
        if entity.get("day") is not None:
            lines.append(self.kv_pair("Day", entity.get("day")))
        date_range = " - ".join(d for d in (entity.get("start_date"), entity.get("end_date")) if d)
        if date_range:
            lines.append(self.kv_pair("Date", date_range))
        locations = as_refs(entity.get("locations"))
        if locations:
            lines.append(self.kv_pair("Location", ", ".join(loc["name"] for loc in locations)))
        narrative = as_ref(entity.get("narrative"))
        if narrative:
            lines.append(self.kv_pair("Part of", narrative["name"]))
        self.add_description(lines, entity, options)
        self.add_list(
            lines,
            "Participants",
            [f"{p['name']} ({p.get('node_type') or 'character'})" for p in as_refs(entity.get("participants"))[:8]],
        )
        self.add_list(lines, "Related Events", [e["name"] for e in as_refs(entity.get("related_events"))[:3]])
        self.add_tags(lines, entity)
        return "\n".join(lines)

    def to_structured(self, entity: Entity, options: SerializeOptions = DEFAULT_OPTIONS) -> dict[str, Any]:
        return {
            "id": entity.id,
            "name": entity.name,
            "node_type": "event",
            "type": entity.type,
            "description": self.description(entity, options),
            "day": entity.get("day"),
            "start_date": entity.get("start_date"),
            "end_date": entity.get("end_date"),
            "narrative": self.id_name(as_ref(entity.get("narrative"))),
            "locations": [self.id_name(loc) for loc in as_refs(entity.get("locations"))],
            "participants": [self.id_name(p, "node_type") for p in as_refs(entity.get("participants"))],
            "related_events": [self.id_name(e) for e in as_refs(entity.get("related_events"))],
            "tags": self.tag_refs(entity),
        }


class NarrativeSerializer(BaseSerializer):
    supported_types = ("narrative",)

    def to_markdown(self, entity: Entity, depth: int = 0, options: SerializeOptions = DEFAULT_OPTIONS) -> str:
        lines = [self.heading(entity.name, 3 + depth)]
        if entity.type:
            lines.append(self.kv_pair("Type", self.format_type(entity.type)))
        self.add_description(lines, entity, options)
        self.add_list(
            lines,
            "Events",
            [
                e["name"] + (f" (Day {e['day']})" if e.get("day") is not None else "")
                for e in as_refs(entity.get("events"))[:10]
            ],
        )
        self.add_list(lines, "Key Characters", [c["name"] for c in as_refs(entity.get("characters"))[:6]])
        self.add_list(lines, "Locations", [loc["name"] for loc in as_refs(entity.get("locations"))[:5]])
        self.add_tags(lines, entity)
        return "\n".join(lines)

    def to_structured(self, entity: Entity, options: SerializeOptions = DEFAULT_OPTIONS) -> dict[str, Any]:
        return {
            "id": entity.id,
            "name": entity.name,
            "node_type": "narrative",
            "type": entity.type,
            "description": self.description(entity, options),
            "events": [self.id_name(e, "day") for e in as_refs(entity.get("events"))],
            "characters": [self.id_name(c) for c in as_refs(entity.get("characters"))],
            "locations": [self.id_name(loc) for loc in as_refs(entity.get("locations"))],
            "tags": self.tag_refs(entity),
        }
