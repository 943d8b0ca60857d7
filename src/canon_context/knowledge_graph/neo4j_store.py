from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .models import Entity, Involvement, NodeType, Relation, RelationType
from .retry import transient_retry

logger = logging.getLogger(__name__)

# Map projection of a node into an Entity record.
_NODE = "{{.*, _nodeType: toLower(labels({v})[0])}}"

_COUNT_KEYS = {
    NodeType.PLACE.value: "places",
    NodeType.CHARACTER.value: "characters",
    NodeType.ITEM.value: "items",
    NodeType.EVENT.value: "events",
    NodeType.NARRATIVE.value: "narratives",
}


def _node(v: str) -> str:
    return v + " " + _NODE.format(v=v)


def _storable(value: Any) -> bool:
    if isinstance(value, (str, int, float, bool)):
        return True
    if isinstance(value, (list, tuple)):
        return all(isinstance(v, (str, int, float, bool)) for v in value)
    return False


def batched(items: list, n: int):
    for i in range(0, len(items), n):
        yield items[i : i + n]


@dataclass(slots=True)
class Neo4jConfig:
    uri: str
    user: str
    password: str
    database: str = "neo4j"
    # ingestion performance
    batch_size: int = 500
    max_depth_cap: int = 25


class Neo4jGraphStore:
    """Neo4j-backed graph store.

    Read queries are plain Cypher over the async driver; transient driver
    errors are retried. Labels and relationship types cannot be parameterized,
    so writes are whitelisted against NodeType / RelationType.

    Dependency: neo4j>=5.
    """

    def __init__(self, cfg: Neo4jConfig):
        self.cfg = cfg
        from neo4j import AsyncGraphDatabase

        # Driver is safe to share across tasks; sessions are lightweight.
        self._driver = AsyncGraphDatabase.driver(cfg.uri, auth=(cfg.user, cfg.password))

    async def close(self) -> None:
        await self._driver.close()

    async def ensure_schema(self) -> None:
        stmts = [
            f"CREATE CONSTRAINT {t.value}_id IF NOT EXISTS FOR (n:{t.value.capitalize()}) REQUIRE n.id IS UNIQUE"
            for t in NodeType
        ]
        stmts.append("CREATE INDEX tag_name IF NOT EXISTS FOR (n:Tag) ON (n.name)")
        async with self._driver.session(database=self.cfg.database) as s:
            for q in stmts:
                await s.run(q)

    async def upsert(self, *, entities: list[Entity], relations: list[Relation]) -> None:
        if not entities and not relations:
            return

        by_label: dict[str, list[dict[str, Any]]] = {}
        for e in entities:
            label = NodeType(e.node_type).value.capitalize()
            props = {k: v for k, v in e.props.items() if _storable(v)}
            props.update(name=e.name, description=e.description, type=e.type)
            by_label.setdefault(label, []).append({"id": e.id, "props": props})

        by_type: dict[str, list[dict[str, Any]]] = {}
        for r in relations:
            rel = RelationType(r.rel_type).value
            by_type.setdefault(rel, []).append({"src": r.src_id, "dst": r.dst_id, "props": r.props or {}})

        async with self._driver.session(database=self.cfg.database) as s:
            for label, rows in by_label.items():
                q = f"UNWIND $rows AS row MERGE (n:{label} {{id: row.id}}) SET n += row.props"
                for batch in batched(rows, self.cfg.batch_size):
                    await s.run(q, {"rows": batch})
            for rel, rows in by_type.items():
                q = (
                    "UNWIND $rows AS row MATCH (a {id: row.src}) MATCH (b {id: row.dst}) "
                    f"MERGE (a)-[r:{rel}]->(b) SET r += row.props"
                )
                for batch in batched(rows, self.cfg.batch_size):
                    await s.run(q, {"rows": batch})

    @transient_retry()
    async def query(self, cypher: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        async with self._driver.session(database=self.cfg.database) as s:
            res = await s.run(cypher, params or {})
            return await res.data()

    async def _nodes(self, cypher: str, params: dict[str, Any]) -> list[Entity]:
        rows = await self.query(cypher, params)
        return [Entity.from_record(r["node"]) for r in rows if r.get("node")]

    async def _one(self, cypher: str, params: dict[str, Any]) -> Entity | None:
        nodes = await self._nodes(cypher, params)
        return nodes[0] if nodes else None

    # --- point lookups ---

    async def get_entity(self, entity_id: str) -> Entity | None:
        return await self._one(f"MATCH (n {{id: $id}}) RETURN {_node('n')} AS node LIMIT 1", {"id": entity_id})

    async def get_entities(self, entity_ids: Sequence[str]) -> list[Entity]:
        ids = [i for i in entity_ids if i]
        if not ids:
            return []
        found = await self._nodes(
            f"UNWIND $ids AS eid MATCH (n {{id: eid}}) RETURN {_node('n')} AS node", {"ids": ids}
        )
        by_id = {e.id: e for e in found}
        return [by_id[i] for i in dict.fromkeys(ids) if i in by_id]

    async def tag_by_id(self, tag_id: str) -> Entity | None:
        return await self._one(f"MATCH (t:Tag {{id: $id}}) RETURN {_node('t')} AS node LIMIT 1", {"id": tag_id})

    # --- containment ---

    async def ancestors(self, entity_id: str, *, max_depth: int = 10) -> list[Entity]:
        depth = max(0, min(int(max_depth), self.cfg.max_depth_cap))
        q = f"""
        MATCH (e {{id: $id}})
        OPTIONAL MATCH path = (u:Universe)-[:CONTAINS*0..{depth}]->(e)
        WITH path ORDER BY length(path) LIMIT 1
        RETURN [n IN nodes(path) | {_node('n')}] AS chain
        """
        rows = await self.query(q, {"id": entity_id})
        if not rows or not rows[0].get("chain"):
            return []
        return [Entity.from_record(n) for n in rows[0]["chain"]]

    async def children(self, entity_id: str, *, node_type: str | None = None, limit: int = 50) -> list[Entity]:
        q = f"""
        MATCH (p {{id: $id}})-[:CONTAINS]->(c)
        WHERE $node_type IS NULL OR toLower(labels(c)[0]) = $node_type
        RETURN {_node('c')} AS node
        ORDER BY c.name
        LIMIT $limit
        """
        return await self._nodes(q, {"id": entity_id, "node_type": node_type, "limit": int(limit)})

    async def parent(self, entity_id: str) -> Entity | None:
        return await self._one(
            f"MATCH (p)-[:CONTAINS]->(e {{id: $id}}) RETURN {_node('p')} AS node LIMIT 1", {"id": entity_id}
        )

    async def siblings(
        self,
        entity_id: str,
        *,
        node_type: str | None = None,
        same_type: bool = False,
        limit: int = 20,
    ) -> list[Entity]:
        q = f"""
        MATCH (p)-[:CONTAINS]->(e {{id: $id}})
        MATCH (p)-[:CONTAINS]->(s)
        WHERE s.id <> $id
          AND ($node_type IS NULL OR toLower(labels(s)[0]) = $node_type)
          AND (NOT $same_type OR labels(s)[0] = labels(e)[0])
        RETURN DISTINCT {_node('s')} AS node
        ORDER BY node.name
        LIMIT $limit
        """
        params = {"id": entity_id, "node_type": node_type, "same_type": same_type, "limit": int(limit)}
        return await self._nodes(q, params)

    async def sibling_counts(self, entity_id: str) -> dict[str, int]:
        q = """
        MATCH (p)-[:CONTAINS]->(e {id: $id})
        MATCH (p)-[:CONTAINS]->(s)
        WHERE s.id <> $id
        WITH toLower(labels(s)[0]) AS sib_type, count(DISTINCT s) AS n
        RETURN sib_type, n
        """
        rows = await self.query(q, {"id": entity_id})
        return {r["sib_type"]: int(r["n"]) for r in rows}

    async def entity_counts(self, root_id: str) -> dict[str, int]:
        q = """
        MATCH (u {id: $id})-[:CONTAINS*1..]->(n)
        WITH toLower(labels(n)[0]) AS label, count(DISTINCT n) AS total
        RETURN label, total
        """
        rows = await self.query(q, {"id": root_id})
        counts = {key: 0 for key in _COUNT_KEYS.values()}
        for r in rows:
            key = _COUNT_KEYS.get(r["label"])
            if key:
                counts[key] = int(r["total"])
        return counts

    # --- tagging ---

    async def entity_tags(self, entity_id: str) -> list[Entity]:
        q = f"MATCH (e {{id: $id}})-[:TAGGED]->(t:Tag) RETURN {_node('t')} AS node ORDER BY t.name"
        return await self._nodes(q, {"id": entity_id})

    async def scope_tags(self, root_id: str, *, limit: int | None = None) -> list[Entity]:
        q = """
        MATCH (u {id: $id})-[:CONTAINS*0..]->(e)-[:TAGGED]->(t:Tag)
        WITH t, count(DISTINCT e) AS entity_count
        RETURN t {.*, _nodeType: 'tag', entity_count: entity_count} AS node
        ORDER BY entity_count DESC, t.name
        LIMIT $limit
        """
        return await self._nodes(q, {"id": root_id, "limit": int(limit or 1000)})

    async def tagged_entities(self, tag_id: str, *, root_id: str | None = None, limit: int = 20) -> list[Entity]:
        q = f"""
        MATCH (e)-[:TAGGED]->(t:Tag {{id: $tag_id}})
        WHERE $root_id IS NULL OR EXISTS {{ MATCH ({{id: $root_id}})-[:CONTAINS*0..]->(e) }}
        RETURN {_node('e')} AS node
        ORDER BY e.name
        LIMIT $limit
        """
        return await self._nodes(q, {"tag_id": tag_id, "root_id": root_id, "limit": int(limit)})

    async def same_tag_entities(self, entity_id: str, *, limit: int = 10) -> list[Entity]:
        q = """
        MATCH (s {id: $id})-[:TAGGED]->(t:Tag)<-[:TAGGED]-(r)
        WHERE r.id <> $id
        WITH r, count(DISTINCT t) AS shared_tags
        RETURN r {.*, _nodeType: toLower(labels(r)[0]), shared_tags: shared_tags} AS node
        ORDER BY shared_tags DESC, r.name
        LIMIT $limit
        """
        return await self._nodes(q, {"id": entity_id, "limit": int(limit)})

    # --- involvement ---

    async def event_participants(self, event_id: str) -> list[Entity]:
        q = f"MATCH (e:Event {{id: $id}})-[:INVOLVES]->(p) RETURN DISTINCT {_node('p')} AS node ORDER BY node.name"
        return await self._nodes(q, {"id": event_id})

    async def event_locations(self, event_id: str) -> list[Entity]:
        q = f"MATCH (e:Event {{id: $id}})-[:OCCURS_AT]->(l:Place) RETURN DISTINCT {_node('l')} AS node ORDER BY node.name"
        return await self._nodes(q, {"id": event_id})

    async def _events_of(self, entity_id: str) -> list[Entity]:
        q = f"MATCH (ev:Event)-[:INVOLVES]->({{id: $id}}) RETURN DISTINCT {_node('ev')} AS node ORDER BY node.name"
        return await self._nodes(q, {"id": entity_id})

    async def involvement(self, entity_id: str) -> Involvement:
        entity = await self.get_entity(entity_id)
        if entity is None:
            return Involvement()
        if entity.node_type == NodeType.EVENT.value:
            participants, locations = await asyncio.gather(
                self.event_participants(entity_id), self.event_locations(entity_id)
            )
            return Involvement(participants=tuple(participants), locations=tuple(locations))
        return Involvement(events=tuple(await self._events_of(entity_id)))

    async def co_participants(self, entity_id: str, *, limit: int = 10) -> list[Entity]:
        q = """
        MATCH (s {id: $id})<-[:INVOLVES]-(ev:Event)-[:INVOLVES]->(c)
        WHERE c.id <> $id
        WITH c, count(DISTINCT ev) AS shared_events
        RETURN c {.*, _nodeType: toLower(labels(c)[0]), shared_events: shared_events} AS node
        ORDER BY shared_events DESC, c.name
        LIMIT $limit
        """
        return await self._nodes(q, {"id": entity_id, "limit": int(limit)})
