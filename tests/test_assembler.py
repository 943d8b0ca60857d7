import asyncio

import pytest

from canon_context.errors import (
    AssemblyTimeoutError,
    EntityNotFoundError,
    InvalidContextRequest,
    ProviderError,
)
from canon_context.generation import (
    ContextAssembler,
    ContextConfig,
    ContextEntity,
    ContextFormat,
    ContextRequest,
    ContextRole,
    ProviderResult,
    SelectedContext,
)
from canon_context.knowledge_graph import Entity, InMemoryGraphStore


class FailingInvolvementStore(InMemoryGraphStore):
    async def involvement(self, entity_id):
        raise RuntimeError("graph went away")


class SlowTagStore(InMemoryGraphStore):
    async def entity_tags(self, entity_id):
        await asyncio.sleep(1)
        return await super().entity_tags(entity_id)


def _character_request(**kw):
    kw.setdefault("selected_context", SelectedContext(entities=("c3",)))
    return ContextRequest(entity_id="c1", target_type="character", **kw)


def _ids(result):
    return [e.id for e in result.entities]


@pytest.mark.asyncio
async def test_character_in_place_with_one_selected_sibling(assembler):
    result = await assembler.assemble(_character_request())

    assert set(_ids(result)) == {"c1", "t1", "t2", "p1", "u1", "c3", "t3", "e1", "c5"}
    # unselected siblings and items stay out
    for excluded in ("c2", "c4", "i1", "i2"):
        assert excluded not in _ids(result)

    roles = {e.id: e.context_role for e in result.entities}
    assert roles["c1"] is ContextRole.SOURCE
    assert roles["p1"] is ContextRole.ANCESTOR
    assert roles["u1"] is ContextRole.UNIVERSE
    assert roles["c3"] is ContextRole.SIBLING
    assert roles["t1"] is ContextRole.SOURCE_TAG

    assert result.summary["entity_count"] == len(result.entities)
    assert result.summary["target_type"] == "character"
    assert result.metadata["universe_id"] == "u1"

    md = result.combined_content
    assert md.index("# Source Entity") < md.index("# World Hierarchy") < md.index("# Related Entities")
    assert "> **Sibling Character**" in md
    assert "> **Parent Place**" in md
    assert "2 places | 5 characters | 2 items | 2 events | 1 narratives" in md


@pytest.mark.asyncio
async def test_tag_target_skips_product_and_involvement(assembler):
    result = await assembler.assemble(ContextRequest(entity_id="c1", target_type="tag"))
    names = [p.provider for p in result.providers]
    assert "product" not in names
    assert "involvement" not in names
    assert "sibling" not in names
    assert names == ["source", "hierarchy", "tag", "custom"]


@pytest.mark.asyncio
async def test_providers_summary_lists_every_relevant_provider(assembler):
    result = await assembler.assemble(ContextRequest(entity_id="c1", target_type="character"))
    summaries = {p.provider: p for p in result.providers}
    assert summaries["sibling"].count == 0
    assert summaries["sibling"].summary == "No siblings selected"
    assert summaries["custom"].summary == "No user-selected entities"
    assert not any(p.failed for p in result.providers)
    assert not result.by_role(ContextRole.SIBLING)


@pytest.mark.asyncio
async def test_entities_are_unique_and_sorted(assembler):
    result = await assembler.assemble(_character_request(additional_context_ids=("c3", "c1")))
    ids = _ids(result)
    assert len(ids) == len(set(ids))
    scores = [e.relevance_score for e in result.entities]
    assert scores == sorted(scores, reverse=True)
    assert all(0.0 <= s <= 1.0 for s in scores)


@pytest.mark.asyncio
async def test_scores_respect_minimum(store):
    assembler = ContextAssembler(store, ContextConfig(min_relevance_score=0.6))
    result = await assembler.assemble(_character_request())
    assert all(e.relevance_score >= 0.6 for e in result.entities)
    assert "u1" not in _ids(result)


@pytest.mark.asyncio
async def test_total_context_is_capped(store):
    assembler = ContextAssembler(store, ContextConfig(max_total_context=3))
    result = await assembler.assemble(_character_request())
    assert len(result.entities) == 3
    assert result.entities[0].id == "c3"


@pytest.mark.asyncio
async def test_assembly_is_deterministic(store, assembler):
    first = await assembler.assemble(_character_request())
    cached = await assembler.assemble(_character_request())
    fresh = await ContextAssembler(store).assemble(_character_request())
    assert _ids(first) == _ids(cached) == _ids(fresh)
    assert first.combined_content == fresh.combined_content


@pytest.mark.asyncio
async def test_structured_format(assembler):
    result = await assembler.assemble(_character_request(), "structured")
    assert result.combined_content == ""
    source = result.by_role(ContextRole.SOURCE)[0]
    assert source.content["name"] == "Aldric"
    assert [t["id"] for t in source.content["tags"]] == ["t1", "t2"]
    universe = result.by_role(ContextRole.UNIVERSE)[0]
    assert universe.content["entity_counts"]["places"] == 2


@pytest.mark.asyncio
async def test_product_context_for_adaptation(assembler):
    product = Entity(
        id="pr1",
        name="Realm Cards",
        node_type="product",
        props={"attributes": [{"id": "at1", "name": "strength"}]},
    )
    result = await assembler.assemble(ContextRequest(entity_id="c1", target_type="adaptation", product=product))
    assert "product" in [p.provider for p in result.providers]
    assert [e.id for e in result.by_role(ContextRole.PRODUCT)] == ["pr1"]
    assert "# Product Context" in result.combined_content


@pytest.mark.asyncio
async def test_unknown_entity(assembler):
    with pytest.raises(EntityNotFoundError):
        await assembler.assemble(ContextRequest(entity_id="zz", target_type="character"))


@pytest.mark.asyncio
async def test_invalid_requests(assembler):
    with pytest.raises(InvalidContextRequest):
        await assembler.assemble(ContextRequest(entity_id="c1", target_type="  "))
    with pytest.raises(InvalidContextRequest):
        await assembler.assemble(ContextRequest(entity_id="", target_type="character"))
    with pytest.raises(InvalidContextRequest):
        await assembler.assemble(_character_request(), "xml")


@pytest.mark.asyncio
async def test_target_type_is_normalized(assembler):
    result = await assembler.assemble(ContextRequest(entity_id="c1", target_type=" Character "))
    assert result.summary["target_type"] == "character"


@pytest.mark.asyncio
async def test_failing_provider_is_isolated(graph_data):
    assembler = ContextAssembler(FailingInvolvementStore.from_dict(graph_data))
    result = await assembler.assemble(_character_request())
    failed = [p for p in result.providers if p.failed]
    assert [p.provider for p in failed] == ["involvement"]
    assert failed[0].count == 0
    assert failed[0].summary.startswith("Provider failed: RuntimeError")
    assert {"c1", "p1", "c3"} <= set(_ids(result))
    assert "e1" not in _ids(result)


@pytest.mark.asyncio
async def test_fail_fast_raises(graph_data):
    assembler = ContextAssembler(
        FailingInvolvementStore.from_dict(graph_data), ContextConfig(fail_fast_providers=True)
    )
    with pytest.raises(ProviderError) as exc:
        await assembler.assemble(_character_request())
    assert exc.value.provider == "involvement"


@pytest.mark.asyncio
async def test_timeout(graph_data):
    assembler = ContextAssembler(SlowTagStore.from_dict(graph_data))
    with pytest.raises(AssemblyTimeoutError) as exc:
        await assembler.assemble(_character_request(), timeout=0.05)
    assert isinstance(exc.value, TimeoutError)


def _ce(entity_id, role=ContextRole.ANCESTOR, node_type="place", **kw):
    return ContextEntity(entity=Entity(id=entity_id, name=entity_id, node_type=node_type), context_role=role, **kw)


def test_merge_keeps_highest_priority_copy(assembler):
    low = ProviderResult(provider="custom", priority=50, entities=(_ce("x", ContextRole.USER_SELECTED),))
    high = ProviderResult(provider="sibling", priority=70, entities=(_ce("x", ContextRole.SIBLING), _ce("y")))
    merged = assembler.merge_and_dedupe([low, high])
    assert [(ce.id, ce.provider, ce.context_role) for ce in merged] == [
        ("x", "sibling", ContextRole.SIBLING),
        ("y", "sibling", ContextRole.ANCESTOR),
    ]


def test_depth_reduces_score(assembler):
    scored = assembler.score_by_relevance([_ce("far", depth=3), _ce("near", depth=1), _ce("deep", depth=10)], "character")
    by_id = {ce.id: ce.relevance_score for ce in scored}
    assert by_id["near"] == pytest.approx(0.81)
    assert by_id["far"] == pytest.approx(0.63)
    # depth penalty bottoms out at half
    assert by_id["deep"] == pytest.approx(0.45)
    assert [ce.id for ce in scored] == ["near", "far", "deep"]


def test_user_selected_scores_full(assembler):
    scored = assembler.score_by_relevance(
        [_ce("n", ContextRole.USER_SELECTED, node_type="narrative", user_selected=True)], "item"
    )
    assert scored[0].relevance_score == 1.0


def test_ties_break_on_provider_priority(assembler):
    a = _ce("a").stamped("custom", 50)
    b = _ce("b").stamped("hierarchy", 90)
    assert [ce.id for ce in assembler.score_by_relevance([a, b], "character")] == ["b", "a"]


@pytest.mark.asyncio
async def test_entity_context_view(assembler):
    view = await assembler.assemble_entity_context(_character_request())
    assert view["source_entity"]["name"] == "Aldric"
    assert view["universe"]["id"] == "u1"
    assert {e["id"] for e in view["parent_chain"]} == {"p1", "u1"}
    assert {s["id"] for s in view["sibling_entities"]} == {"c2", "c3", "c4", "i1", "i2"}
    assert set(view["source_tag_ids"]) == {"t1", "t2"}
    assert {t["id"] for t in view["available_tags"]} == {"t1", "t2", "t3"}
    assert view["summary"]["tag_count"] == 3
    assert view["additional_context"] == []
    assert view["suggested_context"]


@pytest.mark.asyncio
async def test_clear_caches(assembler):
    await assembler.assemble(_character_request())
    assert len(assembler.resolvers.hierarchy.cache) > 0
    assembler.clear_caches()
    assert len(assembler.resolvers.hierarchy.cache) == 0


def test_selected_refs_stay_ids_until_fetched():
    selected = SelectedContext.from_mapping(
        {"entities": [{"id": "zz"}, {"id": "e2"}, {"id": "x9", "name": "Inline", "node_type": "item"}]}
    )
    assert selected.entities[:2] == ("zz", "e2")
    assert isinstance(selected.entities[2], Entity)


@pytest.mark.asyncio
async def test_selected_refs_resolve_against_the_graph(assembler):
    request = ContextRequest.from_mapping(
        {
            "entity_id": "c1",
            "target_type": "character",
            "selected_context": {"entities": [{"id": "zz"}, {"id": "e2"}]},
        }
    )
    result = await assembler.assemble(request)

    assert "zz" not in _ids(result)
    accord = next(e for e in result.entities if e.id == "e2")
    assert accord.context_role is ContextRole.USER_SELECTED
    assert accord.metadata["name"] == "Harbor Accord"
    assert all(e.node_type != "entity" for e in result.entities)
