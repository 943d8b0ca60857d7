from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from ...knowledge_graph.models import Entity
from ..config import ContextConfig
from ..models import ContextEntity, ContextRequest, ContextRole, ProviderResult
from ..resolvers import ResolverSet


class BaseProvider(ABC):
    """One independent source of context for an assembly.

    Providers read through the shared resolvers and return fresh
    ContextEntity wrappers; they never see each other's output.
    """

    name: str = "base"
    limit_key: str = "custom"

    def __init__(self, resolvers: ResolverSet, config: ContextConfig | None = None):
        self.resolvers = resolvers
        self.config = config or ContextConfig()

    @property
    def priority(self) -> int:
        return self.config.priority(self.name)

    @property
    def limit(self) -> int:
        return self.config.limit(self.limit_key)

    def is_relevant(self, target_type: str) -> bool:
        return self.resolvers.relevance.should_include_provider(self.name, (target_type or "").lower())

    @abstractmethod
    async def gather(self, request: ContextRequest) -> ProviderResult: ...

    def result(self, entities: Iterable[ContextEntity] = (), summary: str = "") -> ProviderResult:
        return ProviderResult(
            provider=self.name,
            priority=self.priority,
            entities=tuple(entities),
            summary=summary,
        )

    @staticmethod
    def wrap(
        entities: Iterable[Entity],
        role: ContextRole,
        depth: int,
        *,
        user_selected: bool = False,
    ) -> list[ContextEntity]:
        return [
            ContextEntity(entity=e, context_role=role, depth=depth, user_selected=user_selected)
            for e in entities
        ]
