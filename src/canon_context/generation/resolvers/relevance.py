from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass

from ...knowledge_graph.models import Entity
from ..config import PROVIDER_LIMITS, RELEVANCE_MATRIX, get_relevance_score
from .base import BaseResolver
from .involvement import InvolvementResolver
from .sibling import SiblingResolver
from .tag import TagResolver

# Which generation targets each provider serves; "*" means all.
PROVIDER_RELEVANCE: dict[str, tuple[str, ...]] = {
    "source": ("*",),
    "hierarchy": ("*",),
    "tag": ("*",),
    "sibling": ("character", "item", "place", "event"),
    "involvement": ("event", "character", "narrative"),
    "product": ("adaptation", "section", "product"),
    "custom": ("*",),
}


@dataclass(frozen=True, slots=True)
class ScoredEntity:
    entity: Entity
    score: float
    depth: int = 0
    origin: str = ""


class RelevanceResolver(BaseResolver):
    """Scores entities against a generation target.

    Issues no graph queries of its own; suggestions are drawn from the
    sibling, tag and involvement resolvers.
    """

    name = "relevance"

    def __init__(
        self,
        *,
        sibling: SiblingResolver | None = None,
        tag: TagResolver | None = None,
        involvement: InvolvementResolver | None = None,
        relevance_matrix: dict[str, dict[str, float]] | None = None,
        enable_cache: bool = True,
        cache_ttl: float = 60.0,
    ):
        super().__init__(None, enable_cache=enable_cache, cache_ttl=cache_ttl)
        self.sibling = sibling
        self.tag = tag
        self.involvement = involvement
        self.relevance_matrix = relevance_matrix or RELEVANCE_MATRIX

    async def resolve(self, entity_id: str, *, generation_target: str, limit: int | None = None):
        return await self.get_suggested_context(entity_id, generation_target, limit=limit)

    def score_entity(
        self,
        entity: Entity,
        generation_target: str,
        *,
        depth: int = 0,
        is_user_selected: bool = False,
        shared_tags: int = 0,
    ) -> float:
        if is_user_selected:
            return 1.0
        base = get_relevance_score(generation_target, entity.node_type, self.relevance_matrix)
        depth_factor = max(0.0, 1 - depth * 0.1)
        tag_bonus = min(shared_tags * 0.05, 0.2)
        return min(1.0, base * depth_factor + tag_bonus)

    def filter_by_relevance(
        self,
        entities: Iterable[tuple[Entity, int]],
        generation_target: str,
        *,
        min_score: float = 0.3,
        limit: int | None = None,
    ) -> list[ScoredEntity]:
        """Score `(entity, depth)` pairs, drop those under `min_score`, best first."""
        scored = [
            ScoredEntity(
                entity=e,
                depth=depth,
                score=self.score_entity(
                    e, generation_target, depth=depth, shared_tags=int(e.get("shared_tags") or 0)
                ),
            )
            for e, depth in entities
        ]
        kept = sorted((s for s in scored if s.score >= min_score), key=lambda s: -s.score)
        return kept[:limit] if limit else kept

    async def get_suggested_context(
        self, entity_id: str, generation_target: str, *, limit: int | None = None
    ) -> tuple[ScoredEntity, ...]:
        limit = limit or PROVIDER_LIMITS.get("custom", 10)

        async def load() -> tuple[ScoredEntity, ...]:
            siblings, same_tag, co_participants = await asyncio.gather(
                self.sibling.get_same_type_siblings(entity_id, limit=5) if self.sibling else _empty(),
                self.tag.get_same_tag_entities(entity_id, limit=5) if self.tag else _empty(),
                self.involvement.get_co_participants(entity_id, limit=3) if self.involvement else _empty(),
            )
            candidates: dict[str, tuple[Entity, int, str]] = {}
            for origin, depth, group in (
                ("sibling", 1, siblings),
                ("sharedTag", 2, same_tag),
                ("coParticipant", 2, co_participants),
            ):
                for e in group:
                    candidates.setdefault(e.id, (e, depth, origin))
            origins = {eid: origin for eid, (_, _, origin) in candidates.items()}
            ranked = self.filter_by_relevance(
                [(e, depth) for e, depth, _ in candidates.values()], generation_target, limit=limit
            )
            return tuple(
                ScoredEntity(entity=s.entity, score=s.score, depth=s.depth, origin=origins[s.entity.id])
                for s in ranked
            )

        return await self._cached(
            entity_id, {"type": "suggested", "generation_target": generation_target, "limit": limit}, load
        )

    def should_include_provider(self, provider_name: str, generation_target: str) -> bool:
        targets = PROVIDER_RELEVANCE.get(provider_name, ())
        return "*" in targets or generation_target in targets


async def _empty() -> tuple[Entity, ...]:
    return ()
