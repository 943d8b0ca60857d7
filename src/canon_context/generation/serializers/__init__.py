"""Per-node-type renderers for assembled context."""

from __future__ import annotations

from ...knowledge_graph.models import Entity
from ..models import ContextFormat, SerializedEntity, SerializeOptions
from .base import BaseSerializer
from .default import DefaultSerializer
from .product import ProductSerializer
from .tag import TagSerializer
from .timeline import EventSerializer, NarrativeSerializer
from .world import CharacterSerializer, ItemSerializer, PlaceSerializer, UniverseSerializer


class SerializerRegistry:
    """Node type -> serializer, with a generic fallback."""

    def __init__(self, default: BaseSerializer | None = None):
        self._serializers: dict[str, BaseSerializer] = {}
        self.default = default or DefaultSerializer()

    def register(self, serializer: BaseSerializer) -> None:
        for node_type in serializer.supported_types:
            self._serializers[node_type.lower()] = serializer

    def get(self, node_type: str | None) -> BaseSerializer:
        if not node_type:
            return self.default
        return self._serializers.get(node_type.lower(), self.default)

    def serialize(
        self,
        entity: Entity,
        *,
        format: ContextFormat = ContextFormat.MARKDOWN,
        options: SerializeOptions | None = None,
        depth: int = 0,
        relevance_score: float | None = None,
    ) -> SerializedEntity:
        return self.get(entity.node_type).serialize(
            entity, format=format, options=options, depth=depth, relevance_score=relevance_score
        )

    def registered_types(self) -> list[str]:
        return list(self._serializers)


def create_serializer_registry() -> SerializerRegistry:
    registry = SerializerRegistry()
    for serializer in (
        UniverseSerializer(),
        PlaceSerializer(),
        CharacterSerializer(),
        ItemSerializer(),
        EventSerializer(),
        NarrativeSerializer(),
        TagSerializer(),
        ProductSerializer(),
    ):
        registry.register(serializer)
    return registry


__all__ = [
    "BaseSerializer",
    "CharacterSerializer",
    "DefaultSerializer",
    "EventSerializer",
    "ItemSerializer",
    "NarrativeSerializer",
    "PlaceSerializer",
    "ProductSerializer",
    "SerializerRegistry",
    "TagSerializer",
    "UniverseSerializer",
    "create_serializer_registry",
]
