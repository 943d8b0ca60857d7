"""Context assembly for canon generation.

Resolvers walk the graph (cached), providers turn walks into candidate
context, the assembler merges/scores/limits it, and serializers render it.
"""

from .assembler import ContextAssembler
from .config import (
    PRODUCT_TARGET_TYPES,
    PROVIDER_LIMITS,
    PROVIDER_PRIORITIES,
    RELATIONSHIP_PRIORITIES,
    RELEVANCE_MATRIX,
    ContextConfig,
    get_provider_limit,
    get_relevance_score,
    requires_product_context,
)
from .models import (
    AssembledContext,
    ContextEntity,
    ContextFormat,
    ContextRequest,
    ContextRole,
    ProviderResult,
    ProviderSummary,
    SelectedContext,
    SerializedEntity,
    SerializeOptions,
)

__all__ = [
    "AssembledContext",
    "ContextAssembler",
    "ContextConfig",
    "ContextEntity",
    "ContextFormat",
    "ContextRequest",
    "ContextRole",
    "PRODUCT_TARGET_TYPES",
    "PROVIDER_LIMITS",
    "PROVIDER_PRIORITIES",
    "ProviderResult",
    "ProviderSummary",
    "RELATIONSHIP_PRIORITIES",
    "RELEVANCE_MATRIX",
    "SelectedContext",
    "SerializedEntity",
    "SerializeOptions",
    "get_provider_limit",
    "get_relevance_score",
    "requires_product_context",
]
