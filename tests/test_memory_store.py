import pytest

from canon_context.knowledge_graph import Entity, InMemoryGraphStore, Relation


@pytest.mark.asyncio
async def test_ancestors_run_from_universe_to_entity(store):
    chain = await store.ancestors("c1")
    assert [e.id for e in chain] == ["u1", "p1", "c1"]
    assert chain[0].node_type == "universe"


@pytest.mark.asyncio
async def test_ancestors_respect_max_depth_and_missing_ids(store):
    assert await store.ancestors("c1", max_depth=1) == []
    assert await store.ancestors("nope") == []
    assert [e.id for e in await store.ancestors("u1")] == ["u1"]


@pytest.mark.asyncio
async def test_children_and_parent(store):
    kids = await store.children("p1", node_type="item")
    assert [k.name for k in kids] == ["Ember Blade", "Iron Crown"]
    assert (await store.parent("c1")).id == "p1"
    assert await store.parent("u1") is None


@pytest.mark.asyncio
async def test_siblings_are_sorted_and_filterable(store):
    sibs = await store.siblings("c1")
    assert [s.id for s in sibs] == ["c2", "c3", "c4", "i1", "i2"]
    same = await store.siblings("c1", same_type=True)
    assert [s.id for s in same] == ["c2", "c3", "c4"]
    assert await store.sibling_counts("c1") == {"character": 3, "item": 2}


@pytest.mark.asyncio
async def test_scope_tags_count_usage(store):
    tags = await store.scope_tags("u1")
    assert [(t.name, t.get("entity_count")) for t in tags] == [("grimdark", 2), ("heroic", 2), ("political", 1)]
    assert len(await store.scope_tags("u1", limit=1)) == 1


@pytest.mark.asyncio
async def test_tagged_and_same_tag_entities(store):
    tagged = await store.tagged_entities("t2", root_id="u1")
    assert [e.id for e in tagged] == ["c1", "i1"]
    assert await store.tagged_entities("t2", root_id="p2") == []

    related = await store.same_tag_entities("c1")
    assert {e.id: e.get("shared_tags") for e in related} == {"c2": 1, "i1": 1}


@pytest.mark.asyncio
async def test_involvement_for_event_and_character(store):
    ev = await store.involvement("e1")
    assert [p.id for p in ev.participants] == ["c1", "c5"]
    assert [loc.id for loc in ev.locations] == ["p1"]
    assert ev.events == ()

    ch = await store.involvement("c1")
    assert [e.id for e in ch.events] == ["e1"]

    co = await store.co_participants("c1")
    assert [(c.id, c.get("shared_events")) for c in co] == [("c5", 1)]


@pytest.mark.asyncio
async def test_entity_counts(store):
    assert await store.entity_counts("u1") == {
        "places": 2,
        "characters": 5,
        "items": 2,
        "events": 2,
        "narratives": 1,
    }


@pytest.mark.asyncio
async def test_get_entities_keeps_request_order_and_drops_unknown(store):
    found = await store.get_entities(["c3", "missing", "c1", "c3"])
    assert [e.id for e in found] == ["c3", "c1"]


@pytest.mark.asyncio
async def test_upsert_rejects_dangling_relation():
    s = InMemoryGraphStore()
    await s.upsert(entities=[Entity(id="a", name="A", node_type="place")], relations=[])
    with pytest.raises(KeyError):
        await s.upsert(entities=[], relations=[Relation("a", "b", "CONTAINS")])


def test_from_record_collects_props_and_tags():
    e = Entity.from_record(
        {"id": "x", "name": "X", "_nodeType": "Event", "day": 2, "tags": [{"id": "t", "name": "t"}], "skip": None}
    )
    assert e.node_type == "event"
    assert e.get("day") == 2
    assert "skip" not in e.props
    assert e.tags[0].node_type == "tag"
