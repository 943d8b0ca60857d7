from __future__ import annotations

import json
import logging
from collections import Counter, deque
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

import networkx as nx

from .models import Entity, Involvement, NodeType, Relation, RelationType

logger = logging.getLogger(__name__)

_COUNT_KEYS = {
    NodeType.PLACE.value: "places",
    NodeType.CHARACTER.value: "characters",
    NodeType.ITEM.value: "items",
    NodeType.EVENT.value: "events",
    NodeType.NARRATIVE.value: "narratives",
}


def _by_name(entities: Iterable[Entity]) -> list[Entity]:
    return sorted(entities, key=lambda e: (e.name, e.id))


class InMemoryGraphStore:
    """networkx-backed graph store.

    Mirrors the Neo4j store's traversal semantics on a MultiDiGraph whose edge
    keys are relationship types. Used for tests, fixtures and offline CLI runs.
    """

    def __init__(self) -> None:
        self._graph = nx.MultiDiGraph()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InMemoryGraphStore:
        """Build from `{"entities": [...], "relations": [{"src", "dst", "type"}]}`."""
        store = cls()
        store._add(
            [Entity.from_record(r) for r in data.get("entities") or ()],
            [
                Relation(src_id=r["src"], dst_id=r["dst"], rel_type=r["type"], props=dict(r.get("props") or {}))
                for r in data.get("relations") or ()
            ],
        )
        return store

    @classmethod
    def from_file(cls, path: str | Path) -> InMemoryGraphStore:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        store = cls.from_dict(data)
        logger.info("Loaded graph fixture %s (%d nodes)", path, store._graph.number_of_nodes())
        return store

    async def close(self) -> None:
        return None

    async def upsert(self, *, entities: list[Entity], relations: list[Relation]) -> None:
        self._add(entities, relations)

    def _add(self, entities: Sequence[Entity], relations: Sequence[Relation]) -> None:
        for e in entities:
            self._graph.add_node(e.id, entity=e)
        for r in relations:
            rel = RelationType(r.rel_type).value
            for node_id in (r.src_id, r.dst_id):
                if node_id not in self._graph:
                    raise KeyError(f"Relation endpoint not loaded: {node_id}")
            self._graph.add_edge(r.src_id, r.dst_id, key=rel, **(r.props or {}))

    # --- adjacency helpers ---

    def _entity(self, node_id: str) -> Entity | None:
        if node_id not in self._graph:
            return None
        return self._graph.nodes[node_id]["entity"]

    def _out(self, node_id: str, rel: RelationType) -> list[str]:
        if node_id not in self._graph:
            return []
        return [v for _, v, k in self._graph.out_edges(node_id, keys=True) if k == rel.value]

    def _in(self, node_id: str, rel: RelationType) -> list[str]:
        if node_id not in self._graph:
            return []
        return [u for u, _, k in self._graph.in_edges(node_id, keys=True) if k == rel.value]

    def _entities(self, ids: Iterable[str]) -> list[Entity]:
        out = []
        for i in dict.fromkeys(ids):
            e = self._entity(i)
            if e is not None:
                out.append(e)
        return out

    def _descendants(self, root_id: str, *, include_root: bool) -> set[str]:
        if root_id not in self._graph:
            return set()
        seen = {root_id}
        queue = deque([root_id])
        while queue:
            cur = queue.popleft()
            for child in self._out(cur, RelationType.CONTAINS):
                if child not in seen:
                    seen.add(child)
                    queue.append(child)
        if not include_root:
            seen.discard(root_id)
        return seen

    # --- point lookups ---

    async def get_entity(self, entity_id: str) -> Entity | None:
        return self._entity(entity_id)

    async def get_entities(self, entity_ids: Sequence[str]) -> list[Entity]:
        return self._entities(i for i in entity_ids if i)

    async def tag_by_id(self, tag_id: str) -> Entity | None:
        e = self._entity(tag_id)
        return e if e is not None and e.node_type == NodeType.TAG.value else None

    # --- containment ---

    async def ancestors(self, entity_id: str, *, max_depth: int = 10) -> list[Entity]:
        if entity_id not in self._graph:
            return []
        # BFS upward; the first universe reached gives the shortest chain.
        prev: dict[str, str | None] = {entity_id: None}
        frontier = [entity_id]
        for depth in range(max(0, max_depth) + 1):
            hit = next(
                (n for n in sorted(frontier) if self._entity(n).node_type == NodeType.UNIVERSE.value),
                None,
            )
            if hit is not None:
                chain = []
                cur: str | None = hit
                while cur is not None:
                    chain.append(self._entity(cur))
                    cur = prev[cur]
                return chain
            if depth == max_depth:
                break
            nxt = []
            for n in sorted(frontier):
                for p in self._in(n, RelationType.CONTAINS):
                    if p not in prev:
                        prev[p] = n
                        nxt.append(p)
            if not nxt:
                break
            frontier = nxt
        return []

    async def children(self, entity_id: str, *, node_type: str | None = None, limit: int = 50) -> list[Entity]:
        kids = self._entities(self._out(entity_id, RelationType.CONTAINS))
        if node_type:
            kids = [k for k in kids if k.node_type == node_type]
        return _by_name(kids)[:limit]

    async def parent(self, entity_id: str) -> Entity | None:
        parents = self._entities(sorted(self._in(entity_id, RelationType.CONTAINS)))
        return parents[0] if parents else None

    def _sibling_entities(self, entity_id: str) -> list[Entity]:
        ids: dict[str, None] = {}
        for p in self._in(entity_id, RelationType.CONTAINS):
            for c in self._out(p, RelationType.CONTAINS):
                if c != entity_id:
                    ids[c] = None
        return self._entities(ids)

    async def siblings(
        self,
        entity_id: str,
        *,
        node_type: str | None = None,
        same_type: bool = False,
        limit: int = 20,
    ) -> list[Entity]:
        me = self._entity(entity_id)
        if me is None:
            return []
        sibs = self._sibling_entities(entity_id)
        if node_type:
            sibs = [s for s in sibs if s.node_type == node_type]
        if same_type:
            sibs = [s for s in sibs if s.node_type == me.node_type]
        return _by_name(sibs)[:limit]

    async def sibling_counts(self, entity_id: str) -> dict[str, int]:
        return dict(Counter(s.node_type for s in self._sibling_entities(entity_id)))

    async def entity_counts(self, root_id: str) -> dict[str, int]:
        counts = {key: 0 for key in _COUNT_KEYS.values()}
        for e in self._entities(self._descendants(root_id, include_root=False)):
            key = _COUNT_KEYS.get(e.node_type)
            if key:
                counts[key] += 1
        return counts

    # --- tagging ---

    async def entity_tags(self, entity_id: str) -> list[Entity]:
        return _by_name(self._entities(self._out(entity_id, RelationType.TAGGED)))

    async def scope_tags(self, root_id: str, *, limit: int | None = None) -> list[Entity]:
        usage: Counter[str] = Counter()
        for node_id in self._descendants(root_id, include_root=True):
            for tag_id in set(self._out(node_id, RelationType.TAGGED)):
                usage[tag_id] += 1
        tags = [t.with_props(entity_count=usage[t.id]) for t in self._entities(usage)]
        tags.sort(key=lambda t: (-t.props["entity_count"], t.name, t.id))
        return tags[:limit] if limit else tags

    async def tagged_entities(self, tag_id: str, *, root_id: str | None = None, limit: int = 20) -> list[Entity]:
        ids = self._in(tag_id, RelationType.TAGGED)
        if root_id is not None:
            scope = self._descendants(root_id, include_root=True)
            ids = [i for i in ids if i in scope]
        return _by_name(self._entities(ids))[:limit]

    async def same_tag_entities(self, entity_id: str, *, limit: int = 10) -> list[Entity]:
        shared: Counter[str] = Counter()
        for tag_id in set(self._out(entity_id, RelationType.TAGGED)):
            for other in set(self._in(tag_id, RelationType.TAGGED)):
                if other != entity_id:
                    shared[other] += 1
        related = [e.with_props(shared_tags=shared[e.id]) for e in self._entities(shared)]
        related.sort(key=lambda e: (-e.props["shared_tags"], e.name, e.id))
        return related[:limit]

    # --- involvement ---

    def _events_of(self, entity_id: str) -> list[Entity]:
        events = self._entities(self._in(entity_id, RelationType.INVOLVES))
        return [e for e in events if e.node_type == NodeType.EVENT.value]

    async def event_participants(self, event_id: str) -> list[Entity]:
        return _by_name(self._entities(self._out(event_id, RelationType.INVOLVES)))

    async def event_locations(self, event_id: str) -> list[Entity]:
        locs = self._entities(self._out(event_id, RelationType.OCCURS_AT))
        return _by_name(loc for loc in locs if loc.node_type == NodeType.PLACE.value)

    async def involvement(self, entity_id: str) -> Involvement:
        entity = self._entity(entity_id)
        if entity is None:
            return Involvement()
        if entity.node_type == NodeType.EVENT.value:
            return Involvement(
                participants=tuple(await self.event_participants(entity_id)),
                locations=tuple(await self.event_locations(entity_id)),
            )
        return Involvement(events=tuple(_by_name(self._events_of(entity_id))))

    async def co_participants(self, entity_id: str, *, limit: int = 10) -> list[Entity]:
        shared: Counter[str] = Counter()
        for ev in self._events_of(entity_id):
            for other in set(self._out(ev.id, RelationType.INVOLVES)):
                if other != entity_id:
                    shared[other] += 1
        related = [e.with_props(shared_events=shared[e.id]) for e in self._entities(shared)]
        related.sort(key=lambda e: (-e.props["shared_events"], e.name, e.id))
        return related[:limit]
