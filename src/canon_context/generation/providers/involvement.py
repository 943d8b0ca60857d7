from __future__ import annotations

from ...knowledge_graph.models import NodeType
from ..models import ContextEntity, ContextRequest, ContextRole, ProviderResult
from .base import BaseProvider

MAX_EVENT_LOCATIONS = 2


class InvolvementProvider(BaseProvider):
    """Event participation around the focal entity.

    An event contributes its participants and where it happens; anything
    else contributes the events it takes part in and who it shares them with.
    """

    name = "involvement"
    limit_key = "involvement"

    async def gather(self, request: ContextRequest) -> ProviderResult:
        if not request.entity_id:
            return self.result(summary="No involvement context")

        resolver = self.resolvers.involvement
        involvement = await resolver.resolve(request.entity_id)
        source_type = request.source_entity.node_type if request.source_entity else None

        entities: list[ContextEntity] = []
        if source_type == NodeType.EVENT.value:
            entities += self.wrap(involvement.participants[: self.limit], ContextRole.PARTICIPANT, 1)
            entities += self.wrap(involvement.locations[:MAX_EVENT_LOCATIONS], ContextRole.EVENT_LOCATION, 1)
        else:
            entities += self.wrap(involvement.events[: self.limit], ContextRole.RELATED_EVENT, 1)
            co = await resolver.get_co_participants(request.entity_id, limit=self.limit // 2)
            entities += self.wrap(co, ContextRole.CO_PARTICIPANT, 2)

        if not entities:
            return self.result(summary="No involvement context")
        return self.result(
            entities,
            f"Involvement: {len(entities)} related entities "
            f"({len(involvement.events)} events, {len(involvement.participants)} participants)",
        )
