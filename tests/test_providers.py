import pytest

from canon_context.generation import ContextConfig, ContextRequest, ContextRole, SelectedContext
from canon_context.generation.providers import (
    CustomProvider,
    HierarchyProvider,
    InvolvementProvider,
    ProductProvider,
    SiblingProvider,
    SourceProvider,
    TagProvider,
    create_provider_registry,
)
from canon_context.generation.resolvers import ResolverSet
from canon_context.knowledge_graph import Entity, InMemoryGraphStore


@pytest.fixture
def resolvers(store):
    return ResolverSet.create(store)


def _request(**kw):
    kw.setdefault("entity_id", "c1")
    kw.setdefault("target_type", "character")
    kw.setdefault("universe_id", "u1")
    return ContextRequest(**kw)


def _roles(result):
    return [(ce.id, ce.context_role) for ce in result.entities]


@pytest.mark.asyncio
async def test_source_provider_attaches_tags(resolvers):
    result = await SourceProvider(resolvers).gather(_request())
    assert _roles(result) == [
        ("c1", ContextRole.SOURCE),
        ("t1", ContextRole.SOURCE_TAG),
        ("t2", ContextRole.SOURCE_TAG),
    ]
    assert [t.name for t in result.entities[0].entity.tags] == ["grimdark", "heroic"]
    assert result.summary == "Source: Aldric (character) with 2 tags"


@pytest.mark.asyncio
async def test_source_provider_unknown_entity(resolvers):
    result = await SourceProvider(resolvers).gather(_request(entity_id="zz"))
    assert result.count == 0
    assert result.summary == "No source entity"


@pytest.mark.asyncio
async def test_hierarchy_provider(resolvers):
    result = await HierarchyProvider(resolvers).gather(_request())
    assert _roles(result) == [("u1", ContextRole.UNIVERSE), ("p1", ContextRole.ANCESTOR)]
    universe, parent = result.entities
    assert universe.depth == 2
    assert parent.depth == 1
    assert universe.entity.get("entity_counts")["characters"] == 5
    assert result.summary == "Hierarchy: Aetheria → Ironhold"


@pytest.mark.asyncio
async def test_hierarchy_provider_keeps_root_and_nearest_over_limit():
    store = InMemoryGraphStore.from_dict(
        {
            "entities": [
                {"id": "u", "name": "U", "node_type": "universe"},
                {"id": "r", "name": "R", "node_type": "place"},
                {"id": "t", "name": "T", "node_type": "place"},
                {"id": "d", "name": "D", "node_type": "place"},
                {"id": "c", "name": "C", "node_type": "character"},
            ],
            "relations": [
                {"src": "u", "dst": "r", "type": "CONTAINS"},
                {"src": "r", "dst": "t", "type": "CONTAINS"},
                {"src": "t", "dst": "d", "type": "CONTAINS"},
                {"src": "d", "dst": "c", "type": "CONTAINS"},
            ],
        }
    )
    config = ContextConfig(provider_limits={"hierarchy": 2})
    result = await HierarchyProvider(ResolverSet.create(store), config).gather(_request(entity_id="c", universe_id=None))
    assert [(ce.id, ce.depth) for ce in result.entities] == [("u", 4), ("d", 1)]
    assert result.entities[0].context_role is ContextRole.UNIVERSE


@pytest.mark.asyncio
async def test_hierarchy_counts_follow_the_chain_root():
    store = InMemoryGraphStore.from_dict(
        {
            "entities": [
                {"id": "u", "name": "U", "node_type": "universe"},
                {"id": "v", "name": "V", "node_type": "universe"},
                {"id": "r", "name": "R", "node_type": "place"},
                {"id": "s", "name": "S", "node_type": "place"},
                {"id": "s2", "name": "S2", "node_type": "place"},
                {"id": "c", "name": "C", "node_type": "character"},
            ],
            "relations": [
                {"src": "u", "dst": "r", "type": "CONTAINS"},
                {"src": "r", "dst": "c", "type": "CONTAINS"},
                {"src": "v", "dst": "s", "type": "CONTAINS"},
                {"src": "v", "dst": "s2", "type": "CONTAINS"},
            ],
        }
    )
    # caller names the wrong universe; counts must still describe the root shown
    result = await HierarchyProvider(ResolverSet.create(store)).gather(_request(entity_id="c", universe_id="v"))
    root = result.entities[0]
    assert root.id == "u"
    counts = root.entity.get("entity_counts")
    assert counts.get("characters") == 1
    assert counts.get("places") == 1


@pytest.mark.asyncio
async def test_hierarchy_provider_without_parents(resolvers):
    result = await HierarchyProvider(resolvers).gather(_request(entity_id="u1"))
    assert result.count == 0
    assert result.summary == "No parent hierarchy"


@pytest.mark.asyncio
async def test_siblings_require_selection(resolvers):
    result = await SiblingProvider(resolvers).gather(_request())
    assert result.count == 0
    assert result.summary == "No siblings selected"


@pytest.mark.asyncio
async def test_siblings_only_selected_ones(resolvers):
    selected = SelectedContext(entities=("c3", "c5", "i2"))
    result = await SiblingProvider(resolvers).gather(_request(selected_context=selected))
    # c5 lives elsewhere and is not a sibling
    assert [ce.id for ce in result.entities] == ["c3", "i2"]
    assert all(ce.user_selected and ce.depth == 1 for ce in result.entities)
    assert result.summary == "Siblings: 2 selected"


@pytest.mark.asyncio
async def test_tag_provider_selected_first(resolvers):
    result = await TagProvider(resolvers).gather(_request(selected_context=SelectedContext(tags=("t3", "nope"))))
    assert _roles(result) == [
        ("t3", ContextRole.SELECTED_TAG),
        ("t1", ContextRole.UNIVERSE_TAG),
        ("t2", ContextRole.UNIVERSE_TAG),
    ]
    examples = result.entities[0].entity.get("example_entities")
    assert [e.id for e in examples] == ["p1"]
    assert result.summary == "Tags: 3 (universe: 2, selected: 1)"


@pytest.mark.asyncio
async def test_tag_provider_without_universe_or_selection(resolvers):
    result = await TagProvider(resolvers).gather(_request(universe_id=None))
    assert result.count == 0
    assert result.summary == "No tag context"


@pytest.mark.asyncio
async def test_involvement_for_event(resolvers, store):
    event = await store.get_entity("e1")
    result = await InvolvementProvider(resolvers).gather(
        _request(entity_id="e1", target_type="event", source_entity=event)
    )
    assert _roles(result) == [
        ("c1", ContextRole.PARTICIPANT),
        ("c5", ContextRole.PARTICIPANT),
        ("p1", ContextRole.EVENT_LOCATION),
    ]


@pytest.mark.asyncio
async def test_involvement_for_character(resolvers, store):
    result = await InvolvementProvider(resolvers).gather(_request(source_entity=await store.get_entity("c1")))
    assert _roles(result) == [("e1", ContextRole.RELATED_EVENT), ("c5", ContextRole.CO_PARTICIPANT)]
    assert [ce.depth for ce in result.entities] == [1, 2]


@pytest.mark.asyncio
async def test_involvement_none(resolvers, store):
    result = await InvolvementProvider(resolvers).gather(_request(entity_id="i2"))
    assert result.count == 0
    assert result.summary == "No involvement context"


PRODUCT = {
    "id": "pr1",
    "name": "Realm Cards",
    "node_type": "product",
    "attributes": [{"id": "at1", "name": "strength"}],
    "mechanics": [{"id": "m1", "name": "flying"}],
    "adaptations": [
        {"id": "a1", "name": "Aldric card", "entity_id": "c1"},
        {"id": "a2", "name": "Bryn card", "source_entity_id": "c2"},
    ],
}


@pytest.mark.asyncio
async def test_product_provider_inline(resolvers):
    product = Entity.from_record(PRODUCT)
    result = await ProductProvider(resolvers).gather(_request(target_type="adaptation", product=product))
    assert _roles(result) == [
        ("pr1", ContextRole.PRODUCT),
        ("at1", ContextRole.PRODUCT_ATTRIBUTE),
        ("m1", ContextRole.PRODUCT_MECHANIC),
        ("a1", ContextRole.EXISTING_ADAPTATION),
    ]
    assert result.entities[1].entity.node_type == "attribute"
    assert result.summary == "Product: Realm Cards (3 attributes/mechanics/adaptations)"


@pytest.mark.asyncio
async def test_product_provider_by_id(graph_data):
    graph_data["entities"].append(PRODUCT)
    resolvers = ResolverSet.create(InMemoryGraphStore.from_dict(graph_data))
    result = await ProductProvider(resolvers).gather(_request(entity_id="c2", target_type="section", product_id="pr1"))
    assert [ce.id for ce in result.entities] == ["pr1", "at1", "m1", "a2"]


@pytest.mark.asyncio
async def test_product_provider_without_product(resolvers):
    result = await ProductProvider(resolvers).gather(_request(target_type="adaptation"))
    assert result.summary == "No product context"


@pytest.mark.asyncio
async def test_custom_provider(resolvers):
    inline = Entity(id="x1", name="Prophecy", node_type="lore")
    selected = SelectedContext(entities=("c3", "zz", inline, "c3"))
    result = await CustomProvider(resolvers).gather(
        _request(selected_context=selected, additional_context_ids=("c4",))
    )
    assert [(ce.id, ce.selection_order) for ce in result.entities] == [("c3", 0), ("x1", 1), ("c4", 2)]
    assert all(ce.user_selected and ce.context_role is ContextRole.USER_SELECTED for ce in result.entities)
    assert result.summary == "User-selected: 2 characters, 1 lore"


@pytest.mark.asyncio
async def test_custom_provider_nothing_selected(resolvers):
    result = await CustomProvider(resolvers).gather(_request())
    assert result.summary == "No user-selected entities"


def test_registry_filters_and_orders(resolvers):
    registry = create_provider_registry(resolvers)
    assert [p.name for p in registry.sorted()] == [
        "source",
        "hierarchy",
        "tag",
        "sibling",
        "involvement",
        "product",
        "custom",
    ]
    assert [p.name for p in registry.relevant("tag")] == ["source", "hierarchy", "tag", "custom"]
    assert "product" in [p.name for p in registry.relevant("Adaptation")]
    assert registry.get("sibling").limit == 10
