import pytest

from canon_context.generation import ContextRequest, SelectedContext
from canon_context.generation.documents import (
    to_combined_document,
    to_documents,
    to_documents_by_role,
    to_documents_by_type,
)


@pytest.fixture
def request_():
    return ContextRequest(entity_id="c1", target_type="character", selected_context=SelectedContext(entities=("c3",)))


@pytest.mark.asyncio
async def test_one_document_per_entity(assembler, request_):
    result = await assembler.assemble(request_)
    docs = to_documents(result)
    assert len(docs) == len(result.entities)
    first = docs[0]
    assert first.metadata["entity_id"] == result.entities[0].id
    assert first.metadata["provider"] == result.entities[0].provider
    assert first.page_content == result.entities[0].content


@pytest.mark.asyncio
async def test_structured_content_becomes_json(assembler, request_):
    result = await assembler.assemble(request_, "structured")
    docs = to_documents(result)
    assert docs[0].page_content.startswith("{")


@pytest.mark.asyncio
async def test_combined_document_respects_budget(assembler, request_):
    result = await assembler.assemble(request_)
    full = to_combined_document(result)
    assert full.metadata["included_count"] == len(result.entities)
    assert full.metadata["truncated"] is False

    small = to_combined_document(result, max_tokens=60)
    assert len(small.page_content) <= 60 * 4 + len("...") + 2 * len(result.entities)
    assert small.metadata["truncated"] is True
    assert small.metadata["target_type"] == "character"


@pytest.mark.asyncio
async def test_grouping(assembler, request_):
    result = await assembler.assemble(request_)
    by_type = to_documents_by_type(result)
    assert {d.metadata["entity_id"] for d in by_type["tag"]} == {"t1", "t2", "t3"}

    by_role = to_documents_by_role(result)
    assert {d.metadata["entity_id"] for d in by_role["source"]} == {"c1", "t1", "t2"}
    assert {d.metadata["entity_id"] for d in by_role["hierarchy"]} == {"p1", "u1"}
    assert {d.metadata["entity_id"] for d in by_role["relationships"]} == {"c3", "c5"}
    # related events have no dedicated group
    assert {d.metadata["entity_id"] for d in by_role["custom"]} == {"e1"}
