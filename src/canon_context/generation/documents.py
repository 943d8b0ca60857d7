from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .models import AssembledContext, ContextRole, SerializedEntity

# Rough chars-per-token used to turn a token budget into a character budget.
CHARS_PER_TOKEN = 4
# A truncated tail shorter than this is dropped instead.
MIN_TAIL_CHARS = 100


@dataclass(frozen=True, slots=True)
class ContextDocument:
    """Page content plus metadata, the shape retrieval/prompt tooling expects."""

    page_content: str
    metadata: dict[str, Any] = field(default_factory=dict)


def _text(item: SerializedEntity) -> str:
    if isinstance(item.content, str):
        return item.content
    if item.content is None:
        return ""
    return json.dumps(item.content, ensure_ascii=False, default=str)


def entity_to_document(item: SerializedEntity) -> ContextDocument:
    return ContextDocument(
        page_content=_text(item),
        metadata={
            "entity_id": item.id,
            "entity_type": item.node_type,
            "name": item.metadata.get("name"),
            "context_role": item.context_role.value if item.context_role else None,
        },
    )


def to_documents(context: AssembledContext) -> list[ContextDocument]:
    return [
        ContextDocument(
            page_content=_text(item),
            metadata={
                "entity_id": item.id,
                "entity_type": item.node_type,
                "name": item.metadata.get("name"),
                "context_role": item.context_role.value if item.context_role else None,
                "relevance_score": item.relevance_score,
                "provider": item.provider,
                "tags": list(item.metadata.get("tags") or []),
            },
        )
        for item in context.entities
    ]


def to_combined_document(context: AssembledContext, *, max_tokens: int = 4000, prioritize: bool = True) -> ContextDocument:
    """Concatenate entity content under a token budget, most relevant first."""
    max_chars = max_tokens * CHARS_PER_TOKEN
    items = list(context.entities)
    if prioritize:
        items.sort(key=lambda e: -(e.relevance_score or 0))

    parts: list[str] = []
    used = 0
    for item in items:
        text = _text(item)
        if used + len(text) > max_chars:
            remaining = max_chars - used
            if remaining > MIN_TAIL_CHARS:
                parts.append(text[:remaining] + "...")
            break
        parts.append(text)
        used += len(text)

    return ContextDocument(
        page_content="\n\n".join(parts),
        metadata={
            "entity_count": len(context.entities),
            "included_count": len(parts),
            "truncated": len(parts) < len(context.entities),
            "target_type": context.summary.get("target_type"),
            "timestamp": context.metadata.get("timestamp"),
        },
    )


def to_documents_by_type(context: AssembledContext) -> dict[str, list[ContextDocument]]:
    grouped: dict[str, list[ContextDocument]] = {}
    for item in context.entities:
        grouped.setdefault(item.node_type or "unknown", []).append(entity_to_document(item))
    return grouped


_ROLE_GROUPS = {
    ContextRole.SOURCE: "source",
    ContextRole.SOURCE_TAG: "source",
    ContextRole.ANCESTOR: "hierarchy",
    ContextRole.UNIVERSE: "hierarchy",
    ContextRole.UNIVERSE_TAG: "tags",
    ContextRole.SELECTED_TAG: "tags",
    ContextRole.SIBLING: "relationships",
    ContextRole.PARTICIPANT: "relationships",
    ContextRole.CO_PARTICIPANT: "relationships",
}


def to_documents_by_role(context: AssembledContext) -> dict[str, list[ContextDocument]]:
    grouped: dict[str, list[ContextDocument]] = {
        "source": [],
        "hierarchy": [],
        "tags": [],
        "relationships": [],
        "custom": [],
    }
    for item in context.entities:
        group = _ROLE_GROUPS.get(item.context_role, "custom") if item.context_role else "custom"
        grouped[group].append(entity_to_document(item))
    return grouped
