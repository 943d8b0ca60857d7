from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any

from ..errors import InvalidContextRequest
from ..knowledge_graph.models import NODE_TYPE_KEYS, Entity


class ContextRole(str, Enum):
    """Why an entity is in the context."""

    SOURCE = "source"
    SOURCE_TAG = "sourceTag"
    ANCESTOR = "ancestor"
    UNIVERSE = "universe"
    SIBLING = "sibling"
    UNIVERSE_TAG = "universeTag"
    SELECTED_TAG = "selectedTag"
    PARTICIPANT = "participant"
    EVENT_LOCATION = "eventLocation"
    RELATED_EVENT = "relatedEvent"
    CO_PARTICIPANT = "coParticipant"
    USER_SELECTED = "userSelected"
    PRODUCT = "product"
    PRODUCT_ATTRIBUTE = "productAttribute"
    PRODUCT_MECHANIC = "productMechanic"
    EXISTING_ADAPTATION = "existingAdaptation"


class ContextFormat(str, Enum):
    MARKDOWN = "markdown"
    STRUCTURED = "structured"
    DOCUMENT = "document"


@dataclass(frozen=True, slots=True)
class ContextEntity:
    """An entity plus the annotations one assembly attaches to it."""

    entity: Entity
    context_role: ContextRole
    depth: int = 0
    relevance_score: float | None = None
    provider: str | None = None
    provider_priority: int = 0
    user_selected: bool = False
    selection_order: int | None = None

    @property
    def id(self) -> str:
        return self.entity.id

    @property
    def node_type(self) -> str:
        return self.entity.node_type

    def stamped(self, provider: str, priority: int) -> ContextEntity:
        return replace(self, provider=provider, provider_priority=priority)

    def scored(self, score: float) -> ContextEntity:
        return replace(self, relevance_score=score)


@dataclass(frozen=True, slots=True)
class ProviderResult:
    provider: str
    priority: int
    entities: tuple[ContextEntity, ...] = ()
    summary: str = ""
    failed: bool = False

    @property
    def count(self) -> int:
        return len(self.entities)


@dataclass(frozen=True, slots=True)
class ProviderSummary:
    provider: str
    count: int
    summary: str
    failed: bool = False


@dataclass(frozen=True, slots=True)
class SerializeOptions:
    max_description_length: int | None = None


@dataclass(frozen=True, slots=True)
class SerializedEntity:
    """One entity rendered in one output format.

    `content` is a string for markdown and document output, a dict for
    structured output.
    """

    id: str
    node_type: str
    format: ContextFormat
    content: Any
    metadata: dict[str, Any] = field(default_factory=dict)
    context_role: ContextRole | None = None
    relevance_score: float | None = None
    provider: str | None = None
    depth: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "node_type": self.node_type,
            "format": self.format.value,
            "content": self.content,
            "metadata": self.metadata,
            "context_role": self.context_role.value if self.context_role else None,
            "relevance_score": self.relevance_score,
            "provider": self.provider,
            "depth": self.depth,
        }


@dataclass(frozen=True, slots=True)
class AssembledContext:
    entities: tuple[SerializedEntity, ...]
    combined_content: str
    providers: tuple[ProviderSummary, ...]
    summary: dict[str, Any]
    metadata: dict[str, Any]

    def by_role(self, *roles: ContextRole) -> list[SerializedEntity]:
        return [e for e in self.entities if e.context_role in roles]

    def to_dict(self) -> dict[str, Any]:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "combined_content": self.combined_content,
            "providers": [asdict(p) for p in self.providers],
            "summary": dict(self.summary),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True, slots=True)
class SelectedContext:
    """Caller choices: entities (ids or already-fetched entities) and tag ids."""

    entities: tuple[Entity | str, ...] = ()
    tags: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> SelectedContext:
        data = data or {}
        entities: list[Entity | str] = []
        for item in data.get("entities") or ():
            if isinstance(item, Entity):
                entities.append(item)
            elif isinstance(item, Mapping):
                if item.get("name") or any(item.get(k) for k in NODE_TYPE_KEYS):
                    entities.append(Entity.from_record(item))
                elif item.get("id"):
                    # bare reference: fetched later, unknown ids drop out
                    entities.append(str(item["id"]))
            elif item:
                entities.append(str(item))
        return cls(entities=tuple(entities), tags=tuple(str(t) for t in data.get("tags") or () if t))

    @property
    def entity_ids(self) -> list[str]:
        return [e.id if isinstance(e, Entity) else e for e in self.entities]


@dataclass(frozen=True, slots=True)
class ContextRequest:
    """Input to one assembly.

    `source_entity` is filled in by the assembler once the focal entity is
    resolved so providers do not refetch it.
    """

    entity_id: str
    target_type: str
    universe_id: str | None = None
    selected_context: SelectedContext = field(default_factory=SelectedContext)
    product: Entity | None = None
    product_id: str | None = None
    additional_context_ids: tuple[str, ...] = ()
    source_entity: Entity | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ContextRequest:
        product = data.get("product")
        if isinstance(product, Mapping):
            product = Entity.from_record(product, node_type=product.get("node_type") or "product")
        return cls(
            entity_id=data.get("entity_id") or "",
            target_type=data.get("target_type") or "",
            universe_id=data.get("universe_id"),
            selected_context=SelectedContext.from_mapping(data.get("selected_context")),
            product=product,
            product_id=data.get("product_id"),
            additional_context_ids=tuple(data.get("additional_context_ids") or ()),
        )

    def validated(self) -> ContextRequest:
        if not self.entity_id:
            raise InvalidContextRequest("entity_id is required")
        if not self.target_type or not self.target_type.strip():
            raise InvalidContextRequest("target_type is required")
        return replace(self, target_type=self.target_type.strip().lower())

    def with_source(self, entity: Entity, universe_id: str | None) -> ContextRequest:
        return replace(self, source_entity=entity, universe_id=self.universe_id or universe_id)
