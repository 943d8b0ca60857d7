from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from ..errors import AssemblyTimeoutError, EntityNotFoundError, InvalidContextRequest
from ..knowledge_graph.models import Entity, NodeType
from ..knowledge_graph.store import GraphStore
from .config import ContextConfig
from .models import (
    AssembledContext,
    ContextEntity,
    ContextFormat,
    ContextRequest,
    ContextRole,
    ProviderResult,
    ProviderSummary,
    SerializedEntity,
    SerializeOptions,
)
from .providers import ProviderRegistry, create_provider_registry
from .resolvers import ResolverSet
from .serializers import SerializerRegistry, create_serializer_registry

logger = logging.getLogger(__name__)

SECTION_ORDER = ("source", "hierarchy", "tags", "siblings", "involvement", "product", "custom")

SECTION_HEADINGS = {
    "source": "# Source Entity",
    "hierarchy": "# World Hierarchy",
    "tags": "# Style & Tone Tags",
    "siblings": "# Related Entities",
    "involvement": "# Event Involvement",
    "product": "# Product Context",
    "custom": "# Additional Context",
}

# Sections whose entries render without a relationship label.
_UNLABELLED_SECTIONS = frozenset({"tags", "product"})

_ROLE_SECTIONS = {
    ContextRole.SOURCE: "source",
    ContextRole.SOURCE_TAG: "source",
    ContextRole.ANCESTOR: "hierarchy",
    ContextRole.UNIVERSE: "hierarchy",
    ContextRole.UNIVERSE_TAG: "tags",
    ContextRole.SELECTED_TAG: "tags",
    ContextRole.SIBLING: "siblings",
    ContextRole.PARTICIPANT: "involvement",
    ContextRole.EVENT_LOCATION: "involvement",
    ContextRole.RELATED_EVENT: "involvement",
    ContextRole.CO_PARTICIPANT: "involvement",
    ContextRole.PRODUCT: "product",
    ContextRole.PRODUCT_ATTRIBUTE: "product",
    ContextRole.PRODUCT_MECHANIC: "product",
    ContextRole.EXISTING_ADAPTATION: "product",
}

_ROLE_LABELS = {
    ContextRole.SOURCE: "Source {type}",
    ContextRole.SOURCE_TAG: "Source Tag",
    ContextRole.ANCESTOR: "Parent {type}",
    ContextRole.UNIVERSE: "Universe",
    ContextRole.SIBLING: "Sibling {type}",
    ContextRole.PARTICIPANT: "Participant {type}",
    ContextRole.EVENT_LOCATION: "Event Location",
    ContextRole.RELATED_EVENT: "Related Event",
    ContextRole.CO_PARTICIPANT: "Co-Participant {type}",
    ContextRole.UNIVERSE_TAG: "Universe Tag",
    ContextRole.SELECTED_TAG: "Selected Tag",
    ContextRole.USER_SELECTED: "Additional {type}",
}


def format_node_type(node_type: str | None) -> str:
    if not node_type:
        return "Entity"
    return node_type[:1].upper() + node_type[1:]


def relationship_label(role: ContextRole | None, node_type: str | None) -> str:
    kind = format_node_type(node_type)
    template = _ROLE_LABELS.get(role) if role else None
    return template.format(type=kind) if template else kind


def group_by_section(serialized: Iterable[SerializedEntity]) -> dict[str, list[SerializedEntity]]:
    sections: dict[str, list[SerializedEntity]] = {name: [] for name in SECTION_ORDER}
    for item in serialized:
        section = _ROLE_SECTIONS.get(item.context_role) if item.context_role else None
        if section is None:
            section = "tags" if item.node_type == NodeType.TAG.value else "custom"
        sections[section].append(item)
    return sections


def format_sections(sections: dict[str, list[SerializedEntity]]) -> str:
    lines: list[str] = []
    for name in SECTION_ORDER:
        items = sections.get(name) or []
        if not items:
            continue
        lines.append(SECTION_HEADINGS[name] + "\n")
        for item in items:
            if name not in _UNLABELLED_SECTIONS:
                lines.append(f"> **{relationship_label(item.context_role, item.node_type)}**\n")
            lines.append(str(item.content))
            lines.append("")
    return "\n".join(lines).strip()


def _legacy_entity(item: SerializedEntity | None) -> dict[str, Any] | None:
    if item is None:
        return None
    data = item.content if isinstance(item.content, dict) else {}
    return {
        "id": item.id or data.get("id"),
        "name": data.get("name") or item.metadata.get("name") or "Unknown",
        "description": data.get("description") or "",
        "type": data.get("type") or "",
        "node_type": item.node_type or data.get("node_type") or "entity",
    }


def _plain_entity(e: Entity) -> dict[str, Any]:
    return {"id": e.id, "name": e.name, "description": e.description, "type": e.type, "node_type": e.node_type}


class ContextAssembler:
    """Builds prompt context for generating a `target_type` entity around a focal entity.

    One call to `assemble` resolves the focal entity, fans out to every
    relevant provider concurrently, then merges, scores, limits and
    serializes what they found. Resolver caches are the only state kept
    between calls.
    """

    def __init__(
        self,
        store: GraphStore,
        config: ContextConfig | None = None,
        *,
        resolvers: ResolverSet | None = None,
        serializers: SerializerRegistry | None = None,
        providers: ProviderRegistry | None = None,
    ):
        self.store = store
        self.config = config or ContextConfig()
        self.resolvers = resolvers or ResolverSet.create(
            store,
            enable_cache=self.config.enable_caching,
            cache_ttl=self.config.cache_ttl,
            relevance_matrix=self.config.relevance_matrix,
        )
        self.serializers = serializers or create_serializer_registry()
        self.providers = providers or create_provider_registry(self.resolvers, self.config)

    async def assemble(
        self,
        request: ContextRequest,
        format: ContextFormat | str = ContextFormat.MARKDOWN,
        *,
        timeout: float | None = None,
    ) -> AssembledContext:
        try:
            fmt = ContextFormat(format)
        except ValueError as e:
            raise InvalidContextRequest(f"Unknown context format: {format!r}") from e
        request = request.validated()
        timeout = self.config.provider_timeout if timeout is None else timeout

        try:
            async with asyncio.timeout(timeout):
                request = await self._resolve_source(request)
                results = await self.providers.gather_all(request, fail_fast=self.config.fail_fast_providers)
        except TimeoutError as e:
            logger.warning("context assembly for %s timed out after %ss", request.entity_id, timeout)
            raise AssemblyTimeoutError(timeout) from e

        merged = self.merge_and_dedupe(results)
        scored = self.score_by_relevance(merged, request.target_type)
        limited = self.apply_limits(scored)
        serialized = self.serialize_entities(limited, fmt)
        out = self.build_output(serialized, results, request, fmt)
        logger.info(
            "assembled %d entities from %d providers for %s -> %s",
            len(serialized),
            len(results),
            request.entity_id,
            request.target_type,
        )
        return out

    async def _resolve_source(self, request: ContextRequest) -> ContextRequest:
        hierarchy = self.resolvers.hierarchy
        chain = await hierarchy.resolve(request.entity_id)
        source = next((e for e in chain if e.id == request.entity_id), None)
        if source is None:
            source = await hierarchy.get_entity(request.entity_id)
        if source is None:
            raise EntityNotFoundError(request.entity_id)
        universe_id = chain[0].id if chain and chain[0].node_type == NodeType.UNIVERSE.value else None
        return request.with_source(source, universe_id)

    async def assemble_entity_context(self, request: ContextRequest) -> dict[str, Any]:
        """Flat view of the structured context for older callers."""
        result = await self.assemble(request, ContextFormat.STRUCTURED)
        req = request.validated()
        siblings, suggested = await asyncio.gather(
            self.resolvers.sibling.resolve(req.entity_id, limit=20),
            self.resolvers.relevance.get_suggested_context(req.entity_id, req.target_type),
        )

        source = next(iter(result.by_role(ContextRole.SOURCE)), None)
        universe = next(iter(result.by_role(ContextRole.UNIVERSE)), None)
        tags = [
            e
            for e in result.entities
            if e.node_type == NodeType.TAG.value or (e.context_role and e.context_role.value.endswith("Tag"))
        ]
        available_tags = []
        for t in tags:
            data = t.content if isinstance(t.content, dict) else {}
            available_tags.append(
                {
                    "id": t.id,
                    "name": data.get("name") or t.metadata.get("name"),
                    "description": data.get("description"),
                    "type": data.get("type"),
                    "entity_count": data.get("entity_count") or 0,
                }
            )

        return {
            "source_entity": _legacy_entity(source),
            "parent_chain": [_legacy_entity(e) for e in result.by_role(ContextRole.ANCESTOR, ContextRole.UNIVERSE)],
            "universe": _legacy_entity(universe),
            "sibling_entities": [_plain_entity(s) for s in siblings],
            "source_tag_ids": [t.id for t in result.by_role(ContextRole.SOURCE_TAG) if t.id],
            "available_tags": available_tags,
            "additional_context": [_legacy_entity(e) for e in result.by_role(ContextRole.USER_SELECTED)],
            "suggested_context": [
                {**_plain_entity(s.entity), "relevance_score": s.score, "origin": s.origin} for s in suggested
            ],
            "summary": {"entity_count": result.summary["entity_count"], "tag_count": len(tags)},
        }

    def merge_and_dedupe(self, results: Iterable[ProviderResult]) -> list[ContextEntity]:
        """First occurrence in priority order wins."""
        seen: set[str] = set()
        merged: list[ContextEntity] = []
        for result in sorted(results, key=lambda r: -r.priority):
            for ce in result.entities:
                if not ce.id or ce.id in seen:
                    continue
                seen.add(ce.id)
                merged.append(ce.stamped(result.provider, result.priority))
        return merged

    def score_by_relevance(self, entities: Iterable[ContextEntity], target_type: str) -> list[ContextEntity]:
        scored = []
        for ce in entities:
            score = 1.0 if ce.user_selected else self.config.relevance(target_type, ce.node_type)
            if ce.depth:
                score *= max(0.5, 1 - ce.depth * 0.1)
            scored.append(ce.scored(min(1.0, max(0.0, score))))
        return sorted(scored, key=lambda ce: (-ce.relevance_score, -ce.provider_priority))

    def apply_limits(self, entities: Iterable[ContextEntity]) -> list[ContextEntity]:
        kept = [ce for ce in entities if ce.relevance_score >= self.config.min_relevance_score]
        return kept[: self.config.max_total_context]

    def serialize_entities(
        self, entities: Iterable[ContextEntity], format: ContextFormat = ContextFormat.MARKDOWN
    ) -> list[SerializedEntity]:
        options = SerializeOptions(max_description_length=self.config.max_description_length)
        out = []
        for ce in entities:
            item = self.serializers.serialize(
                ce.entity, format=format, options=options, relevance_score=ce.relevance_score
            )
            out.append(
                replace(
                    item,
                    metadata={**item.metadata, "depth": ce.depth},
                    context_role=ce.context_role,
                    relevance_score=ce.relevance_score,
                    provider=ce.provider,
                    depth=ce.depth,
                )
            )
        return out

    def build_output(
        self,
        serialized: list[SerializedEntity],
        results: list[ProviderResult],
        request: ContextRequest,
        format: ContextFormat,
    ) -> AssembledContext:
        combined = ""
        if format is ContextFormat.MARKDOWN:
            combined = format_sections(group_by_section(serialized))
        return AssembledContext(
            entities=tuple(serialized),
            combined_content=combined,
            providers=tuple(
                ProviderSummary(provider=r.provider, count=r.count, summary=r.summary, failed=r.failed)
                for r in results
            ),
            summary={
                "entity_count": len(serialized),
                "provider_count": len(results),
                "target_type": request.target_type,
                "format": format.value,
            },
            metadata={
                "entity_id": request.entity_id,
                "universe_id": request.universe_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    def clear_caches(self) -> None:
        self.resolvers.clear_all_caches()
