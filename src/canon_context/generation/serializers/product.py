from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from ...knowledge_graph.models import Entity, NodeType
from ..models import SerializeOptions
from .base import DEFAULT_OPTIONS, BaseSerializer, as_ref, as_refs

logger = logging.getLogger(__name__)


def _parse_values(raw: Any) -> dict[str, Any]:
    """Attribute/mechanic values arrive as JSON text or as a mapping."""
    if not raw:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("unparseable adaptation values: %r", raw)
        return {}
    return parsed if isinstance(parsed, dict) else {}


class ProductSerializer(BaseSerializer):
    """Products and the nodes hanging off them.

    A product renders its attributes, mechanics and existing adaptations;
    attribute, mechanic and adaptation nodes render on their own when a
    provider emits them individually.
    """

    supported_types = (
        NodeType.PRODUCT.value,
        NodeType.ADAPTATION.value,
        NodeType.ATTRIBUTE.value,
        NodeType.MECHANIC.value,
    )

    def to_markdown(self, entity: Entity, depth: int = 0, options: SerializeOptions = DEFAULT_OPTIONS) -> str:
        if entity.node_type == NodeType.ATTRIBUTE.value:
            return self._attribute_markdown(entity, depth, options)
        if entity.node_type == NodeType.MECHANIC.value:
            return self._mechanic_markdown(entity, depth, options)
        if entity.node_type == NodeType.ADAPTATION.value:
            return self.serialize_adaptation(entity)
        return self._product_markdown(entity, depth, options)

    def to_structured(self, entity: Entity, options: SerializeOptions = DEFAULT_OPTIONS) -> dict[str, Any]:
        if entity.node_type == NodeType.ATTRIBUTE.value:
            return {"node_type": "attribute", **self._attribute(as_ref(entity))}
        if entity.node_type == NodeType.MECHANIC.value:
            return {"node_type": "mechanic", **self._mechanic(as_ref(entity))}
        if entity.node_type == NodeType.ADAPTATION.value:
            return {"node_type": "adaptation", **self._adaptation(as_ref(entity))}
        return {
            "id": entity.id,
            "name": entity.name,
            "node_type": "product",
            "type": entity.type,
            "game_type": entity.get("game_type"),
            "description": self.description(entity, options),
            "attributes": [self._attribute(a) for a in as_refs(entity.get("attributes"))],
            "mechanics": [self._mechanic(m) for m in as_refs(entity.get("mechanics"))],
            "adaptations": [self._adaptation(a) for a in as_refs(entity.get("adaptations"))],
        }

    # --- product ---

    def _product_markdown(self, entity: Entity, depth: int, options: SerializeOptions) -> str:
        lines = [self.heading(entity.name, 3 + depth)]
        if entity.type:
            lines.append(self.kv_pair("Type", self.format_type(entity.type)))
        if entity.get("game_type"):
            lines.append(self.kv_pair("Game Type", self.format_type(entity.get("game_type"))))
        self.add_description(lines, entity, options)
        self.add_list(lines, "Attributes", [self._attribute_line(a) for a in as_refs(entity.get("attributes"))])
        self.add_list(lines, "Mechanics", [self._mechanic_line(m) for m in as_refs(entity.get("mechanics"))])

        adaptations = as_refs(entity.get("adaptations"))
        if adaptations:
            lines.append("")
            lines.append(self.kv_pair("Existing Adaptations", len(adaptations)))
            examples = [a.get("display_name") or a.get("source_name") or a["name"] for a in adaptations[:3]]
            examples = [e for e in examples if e]
            if examples:
                lines.append("Examples: " + ", ".join(examples))
        return "\n".join(lines)

    def _attribute_line(self, attr: dict[str, Any]) -> str:
        text = f"{attr['name']} ({attr.get('value_type') or 'value'})"
        if attr.get("min") is not None or attr.get("max") is not None:
            text += f" [{attr.get('min') or 0}-{attr.get('max') or '∞'}]"
        if attr.get("description"):
            text += f": {self.truncate(attr['description'], 80)}"
        return text

    def _mechanic_line(self, mech: dict[str, Any]) -> str:
        text = mech["name"]
        if mech.get("category"):
            text += f" [{mech['category']}]"
        if mech.get("description"):
            text += f": {self.truncate(mech['description'], 80)}"
        return text

    # --- standalone nodes ---

    def _attribute_markdown(self, entity: Entity, depth: int, options: SerializeOptions) -> str:
        attr = as_ref(entity)
        lines = [self.heading(f"Attribute: {entity.name}", 4 + depth)]
        if attr.get("value_type"):
            lines.append(self.kv_pair("Value Type", attr["value_type"]))
        if attr.get("min") is not None or attr.get("max") is not None:
            lines.append(self.kv_pair("Range", f"{attr.get('min') or 0}-{attr.get('max') or '∞'}"))
        if attr.get("default_value") is not None:
            lines.append(self.kv_pair("Default", attr["default_value"]))
        self.add_description(lines, entity, options)
        return "\n".join(lines)

    def _mechanic_markdown(self, entity: Entity, depth: int, options: SerializeOptions) -> str:
        mech = as_ref(entity)
        lines = [self.heading(f"Mechanic: {entity.name}", 4 + depth)]
        if mech.get("category"):
            lines.append(self.kv_pair("Category", self.format_type(mech["category"])))
        if mech.get("has_value"):
            lines.append(self.kv_pair("Value Type", mech.get("value_type") or "value"))
        self.add_description(lines, entity, options)
        return "\n".join(lines)

    @staticmethod
    def _attribute(attr: dict[str, Any]) -> dict[str, Any]:
        keys = ("id", "name", "description", "value_type", "default_value", "min", "max", "options")
        return {k: attr.get(k) for k in keys}

    @staticmethod
    def _mechanic(mech: dict[str, Any]) -> dict[str, Any]:
        keys = ("id", "name", "description", "category", "has_value", "value_type")
        return {k: mech.get(k) for k in keys}

    @staticmethod
    def _adaptation(adaptation: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": adaptation.get("id"),
            "display_name": adaptation.get("display_name") or adaptation.get("name"),
            "source_entity_id": adaptation.get("source_entity_id"),
            "source_name": adaptation.get("source_name"),
            "source_type": adaptation.get("source_type"),
            "attribute_values": _parse_values(adaptation.get("attribute_values")),
            "mechanic_values": _parse_values(adaptation.get("mechanic_values")),
        }

    def serialize_adaptation(self, adaptation: Entity | Mapping[str, Any]) -> str:
        """Compact block for an entity already adapted into a product."""
        data = as_ref(adaptation)
        lines = [f"**{data.get('display_name') or data.get('source_name') or data['name']}**"]
        if data.get("source_type"):
            lines.append(f"Source: {self.format_type(data['source_type'])}")
        if data.get("flavor_text"):
            lines.append(f"*{data['flavor_text']}*")
        if data.get("role"):
            lines.append(f"Role: {self.format_type(data['role'])}")

        attrs = _parse_values(data.get("attribute_values"))
        if attrs:
            lines.append("Attributes: " + ", ".join(f"{k}: {v}" for k, v in attrs.items()))

        mechs = [
            k if isinstance(v, bool) else f"{k}: {v}"
            for k, v in _parse_values(data.get("mechanic_values")).items()
            if v
        ]
        if mechs:
            lines.append("Mechanics: " + ", ".join(mechs))
        return "\n".join(lines)
