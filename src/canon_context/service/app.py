from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..errors import (
    AssemblyTimeoutError,
    ContextAssemblyError,
    EntityNotFoundError,
    GraphStoreUnavailable,
    InvalidContextRequest,
    ProviderError,
)
from ..generation import ContextAssembler, ContextConfig, ContextFormat, ContextRequest
from ..knowledge_graph.factory import build_graph_store
from ..settings import settings
from .auth import require_api_key

logger = logging.getLogger(__name__)

_ERROR_STATUS: dict[type[ContextAssemblyError], int] = {
    EntityNotFoundError: 404,
    InvalidContextRequest: 422,
    ProviderError: 502,
    GraphStoreUnavailable: 503,
    AssemblyTimeoutError: 504,
}


class SelectedContextIn(BaseModel):
    entities: list[str | dict[str, Any]] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class ContextRequestIn(BaseModel):
    entity_id: str
    target_type: str
    universe_id: str | None = None
    selected_context: SelectedContextIn = Field(default_factory=SelectedContextIn)
    product: dict[str, Any] | None = None
    product_id: str | None = None
    additional_context_ids: list[str] = Field(default_factory=list)

    def to_request(self) -> ContextRequest:
        return ContextRequest.from_mapping(self.model_dump())


class AssembleIn(ContextRequestIn):
    format: ContextFormat = ContextFormat.MARKDOWN
    timeout: float | None = Field(default=None, gt=0)


@lru_cache(maxsize=1)
def _default_assembler() -> ContextAssembler:
    store = build_graph_store(settings)
    return ContextAssembler(store, ContextConfig.from_settings(settings))


def create_app(assembler: ContextAssembler | None = None) -> FastAPI:
    app = FastAPI(title="Canon Context", version=__version__)

    def get_assembler() -> ContextAssembler:
        return assembler or _default_assembler()

    @app.exception_handler(ContextAssemblyError)
    async def _context_error(request: Request, exc: ContextAssemblyError):
        code = next((c for t, c in _ERROR_STATUS.items() if isinstance(exc, t)), 500)
        if code >= 500:
            logger.warning("context request failed: %s", exc)
        return JSONResponse(status_code=code, content={"detail": str(exc), "error": type(exc).__name__})

    @app.get("/health")
    async def health():
        return {"ok": True, "host": os.uname().nodename, "version": __version__}

    @app.post("/v1/context/assemble")
    async def assemble(
        payload: AssembleIn,
        _auth: None = Depends(require_api_key),
        ctx: ContextAssembler = Depends(get_assembler),
    ):
        result = await ctx.assemble(payload.to_request(), payload.format, timeout=payload.timeout)
        return result.to_dict()

    @app.post("/v1/context/entity")
    async def entity_context(
        payload: ContextRequestIn,
        _auth: None = Depends(require_api_key),
        ctx: ContextAssembler = Depends(get_assembler),
    ):
        return await ctx.assemble_entity_context(payload.to_request())

    @app.post("/v1/context/cache/clear")
    async def clear_cache(
        _auth: None = Depends(require_api_key),
        ctx: ContextAssembler = Depends(get_assembler),
    ):
        ctx.clear_caches()
        return {"ok": True}

    return app
