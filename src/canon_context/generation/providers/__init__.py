"""Context providers and the registry that fans out to them."""

from __future__ import annotations

import asyncio
import logging
import time

from ...errors import ProviderError
from ..config import ContextConfig
from ..models import ContextRequest, ProviderResult
from ..resolvers import ResolverSet
from .base import BaseProvider
from .custom import CustomProvider
from .involvement import InvolvementProvider
from .product import ProductProvider
from .source import SourceProvider
from .structure import HierarchyProvider, SiblingProvider
from .tag import TagProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    def __init__(self) -> None:
        self._providers: dict[str, BaseProvider] = {}

    def register(self, provider: BaseProvider) -> None:
        self._providers[provider.name] = provider

    def get(self, name: str) -> BaseProvider | None:
        return self._providers.get(name)

    def sorted(self) -> list[BaseProvider]:
        # stable: equal priorities keep registration order
        return sorted(self._providers.values(), key=lambda p: -p.priority)

    def relevant(self, target_type: str) -> list[BaseProvider]:
        return [p for p in self.sorted() if p.is_relevant(target_type)]

    async def gather_all(self, request: ContextRequest, *, fail_fast: bool = False) -> list[ProviderResult]:
        """Run every relevant provider concurrently; results in priority order.

        A provider that raises is logged and recorded as failed with no
        entities, unless `fail_fast` is set, in which case the remaining
        providers are cancelled and ProviderError is raised.
        """
        providers = self.relevant(request.target_type)
        tasks = [asyncio.create_task(self._run(p, request, fail_fast)) for p in providers]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for t in tasks:
                t.cancel()
            raise

    async def _run(self, provider: BaseProvider, request: ContextRequest, fail_fast: bool) -> ProviderResult:
        started = time.perf_counter()
        try:
            result = await provider.gather(request)
        except Exception as e:
            if fail_fast:
                raise ProviderError(provider.name, e) from e
            logger.warning("provider %s failed; continuing without it", provider.name, exc_info=True)
            return ProviderResult(
                provider=provider.name,
                priority=provider.priority,
                summary=f"Provider failed: {type(e).__name__}: {e}",
                failed=True,
            )
        logger.debug(
            "provider %s gathered %d entities in %.1fms",
            provider.name,
            result.count,
            (time.perf_counter() - started) * 1000,
        )
        return result


def create_provider_registry(resolvers: ResolverSet, config: ContextConfig | None = None) -> ProviderRegistry:
    registry = ProviderRegistry()
    for cls in (
        SourceProvider,
        HierarchyProvider,
        SiblingProvider,
        TagProvider,
        InvolvementProvider,
        ProductProvider,
        CustomProvider,
    ):
        registry.register(cls(resolvers, config))
    return registry


__all__ = [
    "BaseProvider",
    "CustomProvider",
    "HierarchyProvider",
    "InvolvementProvider",
    "ProductProvider",
    "ProviderRegistry",
    "SiblingProvider",
    "SourceProvider",
    "TagProvider",
    "create_provider_registry",
]
