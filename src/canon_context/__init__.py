"""Canon Context.

Context assembly for canon (worldbuilding) generation: gathers the graph
neighbourhood of a focal entity, ranks it for a target entity type and
renders it as prompt material.
"""

__version__ = "0.1.0"

from .errors import (
    AssemblyTimeoutError,
    ContextAssemblyError,
    EntityNotFoundError,
    GraphStoreUnavailable,
    InvalidContextRequest,
    ProviderError,
)

__all__ = [
    "__version__",
    "AssemblyTimeoutError",
    "ContextAssemblyError",
    "EntityNotFoundError",
    "GraphStoreUnavailable",
    "InvalidContextRequest",
    "ProviderError",
]
