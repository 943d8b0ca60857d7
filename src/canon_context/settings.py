from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CanonContextSettings(BaseSettings):
    """Unified configuration for Canon Context.

    Environment variables are prefixed with CANON_CONTEXT_.
    """

    model_config = SettingsConfigDict(env_prefix="CANON_CONTEXT_", extra="ignore")

    # --- Core ---
    log_level: str = Field(default="INFO", description="Python logging level")

    # --- Graph DB (Neo4j) ---
    neo4j_uri: str | None = None
    neo4j_user: str | None = None
    neo4j_password: str | None = None
    neo4j_database: str = "neo4j"

    # --- Fixture graph (in-memory store) ---
    graph_file: str | None = Field(
        default=None,
        description="JSON graph fixture; used when Neo4j is not configured",
    )

    # --- Assembly ---
    enable_caching: bool = True
    cache_ttl_seconds: float = Field(default=60.0, ge=0)
    min_relevance_score: float = Field(default=0.3, ge=0, le=1)
    max_total_context: int = Field(default=50, ge=1)
    max_description_length: int | None = Field(default=None, ge=4)
    provider_timeout_seconds: float | None = Field(
        default=None, description="Deadline for one assembly's provider fan-out"
    )
    fail_fast_providers: bool = Field(
        default=False, description="Abort the assembly when any provider fails"
    )

    # --- HTTP ---
    bind_host: str = "0.0.0.0"
    bind_port: int = 8090
    api_key: str | None = Field(default=None, description="If set, require X-API-Key")


settings = CanonContextSettings()
