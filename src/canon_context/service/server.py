from __future__ import annotations

import asyncio
import logging

import uvicorn

from ..generation import ContextAssembler, ContextConfig
from ..knowledge_graph.factory import build_graph_store
from ..settings import settings
from .app import create_app

logger = logging.getLogger(__name__)


async def _main(*, host: str | None = None, port: int | None = None, graph_file: str | None = None) -> None:
    store = build_graph_store(settings, graph_file=graph_file)
    app = create_app(ContextAssembler(store, ContextConfig.from_settings(settings)))

    config = uvicorn.Config(
        app,
        host=host or settings.bind_host,
        port=port or settings.bind_port,
        log_level=(settings.log_level or "info").lower(),
        loop="uvloop",
        http="httptools",
    )
    server = uvicorn.Server(config)

    try:
        await server.serve()
    finally:
        await store.close()


def main(*, host: str | None = None, port: int | None = None, graph_file: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (settings.log_level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(_main(host=host, port=port, graph_file=graph_file))


if __name__ == "__main__":
    main()
