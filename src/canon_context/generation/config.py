from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..settings import CanonContextSettings

# RELEVANCE_MATRIX[generation_target][context_node_type] -> 0..1
RELEVANCE_MATRIX: dict[str, dict[str, float]] = {
    "character": {
        "universe": 0.4,
        "place": 0.9,
        "character": 0.7,
        "item": 0.5,
        "event": 0.6,
        "narrative": 0.4,
        "tag": 0.8,
        "product": 0.3,
    },
    "place": {
        "universe": 0.5,
        "place": 0.8,
        "character": 0.6,
        "item": 0.4,
        "event": 0.7,
        "narrative": 0.5,
        "tag": 0.8,
        "product": 0.3,
    },
    "item": {
        "universe": 0.3,
        "place": 0.5,
        "character": 0.7,
        "item": 0.6,
        "event": 0.5,
        "narrative": 0.3,
        "tag": 0.6,
        "product": 0.3,
    },
    "event": {
        "universe": 0.4,
        "place": 0.9,
        "character": 0.9,
        "item": 0.6,
        "event": 0.8,
        "narrative": 0.9,
        "tag": 0.7,
        "product": 0.3,
    },
    "narrative": {
        "universe": 0.5,
        "place": 0.7,
        "character": 0.8,
        "item": 0.4,
        "event": 0.9,
        "narrative": 0.6,
        "tag": 0.8,
        "product": 0.3,
    },
    "tag": {
        "universe": 0.6,
        "place": 0.3,
        "character": 0.3,
        "item": 0.3,
        "event": 0.3,
        "narrative": 0.3,
        "tag": 0.8,
        "product": 0.2,
    },
    "adaptation": {
        "universe": 0.5,
        "place": 0.5,
        "character": 0.8,
        "item": 0.8,
        "event": 0.6,
        "narrative": 0.5,
        "tag": 0.6,
        "product": 0.9,
    },
    "section": {
        "universe": 0.4,
        "place": 0.7,
        "character": 0.7,
        "item": 0.5,
        "event": 0.6,
        "narrative": 0.6,
        "tag": 0.5,
        "product": 0.9,
    },
}

# Max entities each provider may contribute.
PROVIDER_LIMITS: dict[str, int] = {
    "source": 1,
    "hierarchy": 5,
    "siblings": 10,
    "tags": 15,
    "involvement": 8,
    "product": 5,
    "custom": 10,
}

# Higher runs earlier in merge order and wins ties when sorting.
PROVIDER_PRIORITIES: dict[str, int] = {
    "source": 100,
    "hierarchy": 90,
    "tag": 80,
    "sibling": 70,
    "involvement": 60,
    "product": 55,
    "custom": 50,
}

RELATIONSHIP_PRIORITIES: dict[str, float] = {
    "CONTAINS": 1.0,
    "INVOLVES": 0.8,
    "OCCURS_AT": 0.8,
    "TAGGED": 0.6,
    "BASED_ON": 0.7,
    "HAS_ATTRIBUTE": 0.5,
    "HAS_MECHANIC": 0.5,
    "ADAPTS": 0.7,
}

PRODUCT_TARGET_TYPES: tuple[str, ...] = ("adaptation", "section", "product")

DEFAULT_PROVIDER_LIMIT = 10
DEFAULT_RELEVANCE = 0.5


def requires_product_context(target_type: str | None) -> bool:
    return (target_type or "").lower() in PRODUCT_TARGET_TYPES


def get_relevance_score(
    target_type: str | None,
    node_type: str | None,
    matrix: dict[str, dict[str, float]] | None = None,
) -> float:
    """Base relevance of a `node_type` entity when generating `target_type`."""
    row = (matrix or RELEVANCE_MATRIX).get((target_type or "").lower())
    if not row:
        return DEFAULT_RELEVANCE
    return row.get((node_type or "").lower(), DEFAULT_RELEVANCE)


def get_provider_limit(provider_name: str, limits: dict[str, int] | None = None) -> int:
    return (limits or PROVIDER_LIMITS).get(provider_name, DEFAULT_PROVIDER_LIMIT)


@dataclass(slots=True)
class ContextConfig:
    """Tunables for one assembler instance."""

    relevance_matrix: dict[str, dict[str, float]] = field(
        default_factory=lambda: {target: dict(row) for target, row in RELEVANCE_MATRIX.items()}
    )
    provider_limits: dict[str, int] = field(default_factory=lambda: dict(PROVIDER_LIMITS))
    provider_priorities: dict[str, int] = field(default_factory=lambda: dict(PROVIDER_PRIORITIES))
    relationship_priorities: dict[str, float] = field(default_factory=lambda: dict(RELATIONSHIP_PRIORITIES))
    enable_caching: bool = True
    cache_ttl: float = 60.0
    min_relevance_score: float = 0.3
    max_total_context: int = 50
    max_description_length: int | None = None
    provider_timeout: float | None = None
    fail_fast_providers: bool = False

    @classmethod
    def from_settings(cls, s: CanonContextSettings) -> ContextConfig:
        return cls(
            enable_caching=s.enable_caching,
            cache_ttl=s.cache_ttl_seconds,
            min_relevance_score=s.min_relevance_score,
            max_total_context=s.max_total_context,
            max_description_length=s.max_description_length,
            provider_timeout=s.provider_timeout_seconds,
            fail_fast_providers=s.fail_fast_providers,
        )

    def limit(self, provider_name: str) -> int:
        return get_provider_limit(provider_name, self.provider_limits)

    def priority(self, provider_name: str) -> int:
        return self.provider_priorities.get(provider_name, 0)

    def relevance(self, target_type: str | None, node_type: str | None) -> float:
        return get_relevance_score(target_type, node_type, self.relevance_matrix)
