from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from canon_context.errors import ContextAssemblyError
from canon_context.settings import settings

console = Console()


def _configure_logging() -> None:
    level = (settings.log_level or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _request(args: argparse.Namespace):
    from canon_context.generation import ContextRequest, SelectedContext

    return ContextRequest(
        entity_id=args.entity_id,
        target_type=args.target_type,
        universe_id=args.universe_id,
        selected_context=SelectedContext(entities=tuple(args.select or ()), tags=tuple(args.tag or ())),
        product_id=args.product_id,
        additional_context_ids=tuple(args.extra or ()),
    )


async def _with_assembler(args: argparse.Namespace, run):
    from canon_context.generation import ContextAssembler, ContextConfig
    from canon_context.knowledge_graph.factory import build_graph_store

    store = build_graph_store(settings, graph_file=args.graph_file)
    try:
        return await run(ContextAssembler(store, ContextConfig.from_settings(settings)))
    finally:
        await store.close()


def cmd_version() -> int:
    from canon_context import __version__

    print(__version__)
    return 0


def cmd_assemble(args: argparse.Namespace) -> int:
    _configure_logging()
    try:
        result = asyncio.run(
            _with_assembler(args, lambda a: a.assemble(_request(args), args.format, timeout=args.timeout))
        )
    except ContextAssemblyError as e:
        console.print(f"[red]{type(e).__name__}: {e}[/red]")
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))
        return 0

    table = Table(title=f"Providers for {args.entity_id} -> {result.summary['target_type']}")
    table.add_column("Provider", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Summary")
    for p in result.providers:
        style = "red" if p.failed else None
        table.add_row(p.provider, str(p.count), p.summary, style=style)
    console.print(table)

    if result.combined_content:
        console.print(Panel(Markdown(result.combined_content), title="Context"))
    else:
        for e in result.entities:
            console.print(f"[bold]{e.metadata.get('name')}[/bold] ({e.node_type}, {e.context_role.value})")
            console.print(e.content)
    console.print(f"[green]{result.summary['entity_count']} entities[/green]")
    return 0


def cmd_entity_context(args: argparse.Namespace) -> int:
    _configure_logging()
    try:
        view = asyncio.run(_with_assembler(args, lambda a: a.assemble_entity_context(_request(args))))
    except ContextAssemblyError as e:
        console.print(f"[red]{type(e).__name__}: {e}[/red]")
        return 1
    json.dump(view, sys.stdout, indent=2, ensure_ascii=False, default=str)
    print()
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from canon_context.service.server import main as serve

    serve(host=args.host, port=args.port, graph_file=args.graph_file)
    return 0


def _add_request_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("entity_id", help="Focal entity id")
    p.add_argument("target_type", help="Entity type being generated (character, place, ...)")
    p.add_argument("--universe-id", default=None)
    p.add_argument("--select", action="append", help="Selected entity id (repeatable)")
    p.add_argument("--tag", action="append", help="Selected tag id (repeatable)")
    p.add_argument("--extra", action="append", help="Additional context entity id (repeatable)")
    p.add_argument("--product-id", default=None)
    p.add_argument("--graph-file", default=None, help="JSON graph fixture instead of Neo4j")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="canon-context")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version").set_defaults(func=lambda _a: cmd_version())

    asm = sub.add_parser("assemble", help="Assemble generation context for an entity")
    _add_request_args(asm)
    asm.add_argument("--format", choices=["markdown", "structured", "document"], default="markdown")
    asm.add_argument("--timeout", type=float, default=None, help="Seconds before giving up")
    asm.add_argument("--json", action="store_true", help="Print the full result as JSON")
    asm.set_defaults(func=cmd_assemble)

    ent = sub.add_parser("entity-context", help="Print the flat entity-context view as JSON")
    _add_request_args(ent)
    ent.set_defaults(func=cmd_entity_context)

    srv = sub.add_parser("serve", help="Run the HTTP service")
    srv.add_argument("--host", default=None)
    srv.add_argument("--port", type=int, default=None)
    srv.add_argument("--graph-file", default=None)
    srv.set_defaults(func=cmd_serve)

    return p


def app(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    rc = args.func(args)
    raise SystemExit(rc)


if __name__ == "__main__":
    app()
