"""Canon graph: entity model and traversal stores.

Core idea:
- canon entities (universe, places, characters, ...) live in a property graph
- containment (CONTAINS) forms a tree rooted at a universe
- tags (TAGGED) and events (INVOLVES / OCCURS_AT) cut across the tree

This package provides:
- dataclass models
- a store protocol
- Neo4j and in-memory (networkx) stores
"""

from .memory_store import InMemoryGraphStore
from .models import Entity, Involvement, NodeType, Relation, RelationType
from .neo4j_store import Neo4jConfig, Neo4jGraphStore
from .store import GraphStore

__all__ = [
    "Entity",
    "GraphStore",
    "InMemoryGraphStore",
    "Involvement",
    "Neo4jConfig",
    "Neo4jGraphStore",
    "NodeType",
    "Relation",
    "RelationType",
]
