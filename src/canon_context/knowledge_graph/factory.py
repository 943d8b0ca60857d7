from __future__ import annotations

import logging
import os

from ..errors import GraphStoreUnavailable
from ..settings import CanonContextSettings
from .memory_store import InMemoryGraphStore
from .neo4j_store import Neo4jConfig, Neo4jGraphStore
from .store import GraphStore

logger = logging.getLogger(__name__)


def build_graph_store(s: CanonContextSettings, *, graph_file: str | None = None) -> GraphStore:
    """Pick the store from configuration.

    An explicit fixture file wins, then Neo4j settings (or the plain NEO4J_*
    env vars), then the configured fixture file.
    """
    if graph_file:
        return InMemoryGraphStore.from_file(graph_file)

    uri = s.neo4j_uri or os.getenv("NEO4J_URI")
    user = s.neo4j_user or os.getenv("NEO4J_USER")
    password = s.neo4j_password or os.getenv("NEO4J_PASSWORD")
    database = s.neo4j_database or os.getenv("NEO4J_DATABASE") or "neo4j"
    if uri and user and password:
        logger.info("Using Neo4j graph store at %s (db=%s)", uri, database)
        return Neo4jGraphStore(Neo4jConfig(uri=uri, user=user, password=password, database=database))

    if s.graph_file:
        return InMemoryGraphStore.from_file(s.graph_file)

    raise GraphStoreUnavailable(
        "No graph store configured. Set CANON_CONTEXT_NEO4J_URI/USER/PASSWORD "
        "(or NEO4J_* env vars), or CANON_CONTEXT_GRAPH_FILE."
    )
