from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from ...knowledge_graph.models import Entity
from ..models import ContextFormat, SerializedEntity, SerializeOptions

_WS = re.compile(r"\s+")

DEFAULT_OPTIONS = SerializeOptions()


def as_ref(value: Any) -> dict[str, Any] | None:
    """Normalize a related-entity snapshot (Entity or mapping) to a plain dict."""
    if value is None:
        return None
    if isinstance(value, Entity):
        return {**value.props, **value.ref(), "description": value.description}
    if isinstance(value, Mapping):
        ref = dict(value)
        ref.setdefault("id", None)
        ref.setdefault("name", "")
        ref.setdefault("node_type", ref.get("_nodeType") or ref.get("nodeType"))
        return ref
    return {"id": None, "name": str(value)}


def as_refs(values: Any) -> list[dict[str, Any]]:
    if not values:
        return []
    if isinstance(values, (Entity, Mapping, str)):
        values = [values]
    return [r for r in (as_ref(v) for v in values) if r]


class BaseSerializer(ABC):
    """Renders one family of node types as markdown, structured dicts or documents.

    Subclasses read relation snapshots from `entity.props` and omit any
    section whose data is absent.
    """

    supported_types: tuple[str, ...] = ()

    def serialize(
        self,
        entity: Entity,
        *,
        format: ContextFormat = ContextFormat.MARKDOWN,
        options: SerializeOptions | None = None,
        depth: int = 0,
        relevance_score: float | None = None,
    ) -> SerializedEntity:
        options = options or DEFAULT_OPTIONS
        fmt = ContextFormat(format)
        metadata = self.build_metadata(entity, depth=depth, relevance_score=relevance_score)
        if fmt is ContextFormat.STRUCTURED:
            content: Any = self.to_structured(entity, options)
        elif fmt is ContextFormat.DOCUMENT:
            doc = self.to_document(entity, options)
            content, metadata = doc["page_content"], {**metadata, **doc["metadata"]}
        else:
            content = self.to_markdown(entity, depth, options)
        return SerializedEntity(
            id=entity.id,
            node_type=entity.node_type or self.supported_types[0],
            format=fmt,
            content=content,
            metadata=metadata,
            depth=depth,
        )

    def build_metadata(
        self, entity: Entity, *, depth: int = 0, relevance_score: float | None = None
    ) -> dict[str, Any]:
        return {
            "node_type": entity.node_type or self.supported_types[0],
            "name": entity.name,
            "depth": depth,
            "relevance_score": 1.0 if relevance_score is None else relevance_score,
            "tags": [t.name for t in entity.tags],
        }

    @abstractmethod
    def to_markdown(self, entity: Entity, depth: int = 0, options: SerializeOptions = DEFAULT_OPTIONS) -> str: ...

    @abstractmethod
    def to_structured(self, entity: Entity, options: SerializeOptions = DEFAULT_OPTIONS) -> dict[str, Any]: ...

    def to_document(self, entity: Entity, options: SerializeOptions = DEFAULT_OPTIONS) -> dict[str, Any]:
        return {
            "page_content": self.to_markdown(entity, 0, options),
            "metadata": self.build_metadata(entity),
        }

    # --- helpers ---

    @staticmethod
    def indent(text: str, depth: int) -> str:
        prefix = "  " * depth
        return "\n".join(prefix + line for line in text.split("\n"))

    @staticmethod
    def heading(text: str, level: int = 2) -> str:
        return f"{'#' * min(max(level, 1), 6)} {text}"

    @staticmethod
    def truncate(text: str | None, max_length: int = 200) -> str:
        if not text or len(text) <= max_length:
            return text or ""
        return text[: max_length - 3] + "..."

    @staticmethod
    def bullet_list(items: Iterable[str], depth: int = 0) -> str:
        prefix = "  " * depth
        return "\n".join(f"{prefix}- {item}" for item in items)

    @staticmethod
    def clean_description(text: str | None) -> str:
        if not text:
            return ""
        return _WS.sub(" ", text).strip()

    @staticmethod
    def format_type(value: str | None) -> str:
        if not value:
            return ""
        return re.sub(r"\b\w", lambda m: m.group(0).upper(), str(value).replace("_", " "))

    @staticmethod
    def kv_pair(key: str, value: Any) -> str:
        if value is None or value == "":
            return ""
        return f"**{key}:** {value}"

    def description(self, entity: Entity, options: SerializeOptions) -> str:
        if options.max_description_length:
            return self.truncate(entity.description, options.max_description_length)
        return entity.description

    def add_description(self, lines: list[str], entity: Entity, options: SerializeOptions) -> None:
        if entity.description:
            lines.append("")
            lines.append(self.description(entity, options))

    def add_list(self, lines: list[str], title: str, items: list[str]) -> None:
        if items:
            lines.append("")
            lines.append(f"**{title}:**")
            lines.append(self.bullet_list(items))

    def add_tags(self, lines: list[str], entity: Entity, label: str = "Tags") -> None:
        if entity.tags:
            lines.append("")
            lines.append(self.kv_pair(label, ", ".join(t.name for t in entity.tags)))

    @staticmethod
    def tag_refs(entity: Entity) -> list[dict[str, Any]]:
        return [{"id": t.id, "name": t.name, "type": t.type} for t in entity.tags]

    @staticmethod
    def id_name(ref: dict[str, Any] | None, *extra: str) -> dict[str, Any] | None:
        if ref is None:
            return None
        out = {"id": ref.get("id"), "name": ref.get("name")}
        for key in extra:
            out[key] = ref.get(key)
        return out
