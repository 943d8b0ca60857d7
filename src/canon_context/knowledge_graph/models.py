from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class NodeType(str, Enum):
    """Known node labels, lower-cased."""

    UNIVERSE = "universe"
    PLACE = "place"
    CHARACTER = "character"
    ITEM = "item"
    EVENT = "event"
    NARRATIVE = "narrative"
    TAG = "tag"
    PRODUCT = "product"
    ATTRIBUTE = "attribute"
    MECHANIC = "mechanic"
    ADAPTATION = "adaptation"


class RelationType(str, Enum):
    CONTAINS = "CONTAINS"
    TAGGED = "TAGGED"
    INVOLVES = "INVOLVES"
    OCCURS_AT = "OCCURS_AT"


# Keys that map onto Entity fields rather than props.
NODE_TYPE_KEYS = ("node_type", "nodeType", "_nodeType", "label")
_CORE_KEYS = frozenset({"id", "name", "description", "type", "tags", *NODE_TYPE_KEYS})


@dataclass(frozen=True, slots=True)
class Entity:
    """A canon node as seen by the context pipeline.

    `node_type` is the lower-cased graph label; `type` is the free-text
    subtype users assign (e.g. "tavern", "villain"). Anything else the store
    returns lands in `props`.
    """

    id: str
    name: str
    node_type: str = "entity"
    description: str = ""
    type: str = ""
    props: Mapping[str, Any] = field(default_factory=dict)
    tags: tuple[Entity, ...] = ()

    @classmethod
    def from_record(cls, record: Mapping[str, Any], *, node_type: str | None = None) -> Entity:
        label = node_type
        if label is None:
            for key in NODE_TYPE_KEYS:
                if record.get(key):
                    label = record[key]
                    break
        tags = tuple(
            t if isinstance(t, Entity) else cls.from_record(t, node_type=NodeType.TAG.value)
            for t in (record.get("tags") or ())
            if isinstance(t, (Entity, Mapping))
        )
        return cls(
            id=str(record.get("id") or ""),
            name=str(record.get("name") or ""),
            node_type=str(label or "entity").lower(),
            description=record.get("description") or "",
            type=record.get("type") or "",
            props={k: v for k, v in record.items() if k not in _CORE_KEYS and v is not None},
            tags=tags,
        )

    def get(self, key: str, default: Any = None) -> Any:
        return self.props.get(key, default)

    def with_props(self, **updates: Any) -> Entity:
        return replace(self, props={**self.props, **updates})

    def with_tags(self, tags: tuple[Entity, ...] | list[Entity]) -> Entity:
        return replace(self, tags=tuple(tags))

    def ref(self) -> dict[str, Any]:
        """Compact reference used inside other entities' structured output."""
        return {"id": self.id, "name": self.name, "type": self.type, "node_type": self.node_type}


@dataclass(frozen=True, slots=True)
class Relation:
    """A directed edge between two entities."""

    src_id: str
    dst_id: str
    rel_type: str
    props: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Involvement:
    """Event involvement around one entity.

    For an event: who takes part and where it happens. For anything else:
    the events it takes part in.
    """

    participants: tuple[Entity, ...] = ()
    locations: tuple[Entity, ...] = ()
    events: tuple[Entity, ...] = ()
