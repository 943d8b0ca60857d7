"""Document retrievers over the context assembler.

Each retriever turns one assembly into a list of `ContextDocument`s for
retrieval-style callers (prompt builders, chains) that ask for documents by
query rather than building a `ContextRequest` themselves.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from ..knowledge_graph.models import Entity
from .assembler import ContextAssembler
from .documents import ContextDocument, to_documents
from .models import AssembledContext, ContextFormat, ContextRequest, SelectedContext

logger = logging.getLogger(__name__)

_TARGET_TYPE_RE = re.compile(r"\b(character|place|item|event|narrative|universe)\b", re.IGNORECASE)
_UUID_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)

DEFAULT_TARGET_TYPE = "character"


def parse_query(query: str) -> dict[str, str]:
    """Pull a target type and an entity id (first UUID) out of free text."""
    params: dict[str, str] = {}
    m = _TARGET_TYPE_RE.search(query or "")
    if m:
        params["target_type"] = m.group(1).lower()
    m = _UUID_RE.search(query or "")
    if m:
        params["entity_id"] = m.group(0)
    return params


class WorldbuildingRetriever:
    """Assembles context for whatever the query mentions, falling back to defaults."""

    def __init__(
        self,
        assembler: ContextAssembler,
        *,
        entity_id: str | None = None,
        universe_id: str | None = None,
        limit: int = 10,
        min_relevance: float = 0.3,
    ):
        self.assembler = assembler
        self.entity_id = entity_id
        self.universe_id = universe_id
        self.limit = limit
        self.min_relevance = min_relevance

    async def get_relevant_documents(self, query: str) -> list[ContextDocument]:
        params = parse_query(query)
        request = ContextRequest(
            entity_id=params.get("entity_id") or self.entity_id or "",
            target_type=params.get("target_type") or DEFAULT_TARGET_TYPE,
            universe_id=self.universe_id,
        )
        context = await self.assembler.assemble(request, ContextFormat.MARKDOWN)
        docs = [d for d in to_documents(context) if (d.metadata.get("relevance_score") or 0) >= self.min_relevance]
        return docs[: self.limit]


class EntityContextRetriever:
    """Context for one fixed entity, assembled once and filtered by query keywords."""

    def __init__(
        self,
        assembler: ContextAssembler,
        entity_id: str,
        target_type: str,
        *,
        selected_context: SelectedContext | None = None,
    ):
        self.assembler = assembler
        self.entity_id = entity_id
        self.target_type = target_type
        self.selected_context = selected_context or SelectedContext()
        self._context: AssembledContext | None = None

    async def get_relevant_documents(self, query: str = "") -> list[ContextDocument]:
        if self._context is None:
            self._context = await self.assembler.assemble(
                ContextRequest(
                    entity_id=self.entity_id,
                    target_type=self.target_type,
                    selected_context=self.selected_context,
                ),
                ContextFormat.MARKDOWN,
            )
        docs = to_documents(self._context)
        keywords = [kw for kw in (query or "").lower().split() if kw]
        if not keywords:
            return docs
        return [d for d in docs if any(kw in d.page_content.lower() for kw in keywords)]

    def clear_cache(self) -> None:
        self._context = None


class ProductContextRetriever:
    """Adaptation context for turning an entity into a product item."""

    def __init__(self, assembler: ContextAssembler, entity_id: str, product: Entity | dict[str, Any]):
        self.assembler = assembler
        self.entity_id = entity_id
        if not isinstance(product, Entity):
            product = Entity.from_record(product, node_type=product.get("node_type") or "product")
        self.product = product

    async def get_relevant_documents(self, query: str = "") -> list[ContextDocument]:
        context = await self.assembler.assemble(
            ContextRequest(
                entity_id=self.entity_id,
                target_type="adaptation",
                product=self.product,
                product_id=self.product.id or None,
            ),
            ContextFormat.MARKDOWN,
        )
        logger.debug("product retriever %s -> %d entities", self.product.id, len(context.entities))
        return to_documents(context)
