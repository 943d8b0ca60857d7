from __future__ import annotations

from collections import Counter

from ...knowledge_graph.models import Entity
from ..models import ContextEntity, ContextRequest, ContextRole, ProviderResult
from .base import BaseProvider


class CustomProvider(BaseProvider):
    """Entities the caller explicitly asked to include."""

    name = "custom"
    limit_key = "custom"

    async def gather(self, request: ContextRequest) -> ProviderResult:
        wanted: list[Entity | str] = [*request.selected_context.entities, *request.additional_context_ids]
        if not wanted:
            return self.result(summary="No user-selected entities")

        ids = [w for w in wanted if isinstance(w, str)]
        fetched = {e.id: e for e in await self.resolvers.hierarchy.get_entities(ids)} if ids else {}

        picked: list[Entity] = []
        seen: set[str] = set()
        for w in wanted:
            entity = w if isinstance(w, Entity) else fetched.get(w)
            # unknown ids drop out here
            if entity is None or entity.id in seen:
                continue
            seen.add(entity.id)
            picked.append(entity)
        picked = picked[: self.limit]

        entities = [
            ContextEntity(
                entity=e,
                context_role=ContextRole.USER_SELECTED,
                depth=0,
                user_selected=True,
                selection_order=i,
            )
            for i, e in enumerate(picked)
        ]
        if not entities:
            return self.result(summary="No user-selected entities")

        by_type = Counter(e.node_type or e.type or "unknown" for e in picked)
        parts = ", ".join(f"{n} {t}{'s' if n > 1 else ''}" for t, n in by_type.items())
        return self.result(entities, f"User-selected: {parts}")
