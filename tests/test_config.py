from canon_context.generation.config import (
    PROVIDER_LIMITS,
    RELEVANCE_MATRIX,
    ContextConfig,
    get_provider_limit,
    get_relevance_score,
    requires_product_context,
)
from canon_context.settings import CanonContextSettings


def test_relevance_lookup_and_defaults():
    assert get_relevance_score("character", "place") == 0.9
    assert get_relevance_score("Character", "PLACE") == 0.9
    assert get_relevance_score("character", "spaceship") == 0.5
    assert get_relevance_score("spaceship", "place") == 0.5
    assert get_relevance_score(None, None) == 0.5


def test_provider_limits():
    assert get_provider_limit("hierarchy") == 5
    assert get_provider_limit("unknown") == 10
    assert get_provider_limit("tags", {"tags": 2}) == 2


def test_product_targets():
    assert requires_product_context("adaptation")
    assert requires_product_context("Section")
    assert not requires_product_context("character")
    assert not requires_product_context(None)


def test_config_copies_tables():
    a = ContextConfig()
    a.provider_limits["hierarchy"] = 1
    assert PROVIDER_LIMITS["hierarchy"] == 5
    assert ContextConfig().limit("hierarchy") == 5
    a.relevance_matrix["character"]["place"] = 0.01
    assert RELEVANCE_MATRIX["character"]["place"] == 0.9
    assert ContextConfig().relevance("character", "place") == 0.9


def test_config_from_settings(monkeypatch):
    monkeypatch.setenv("CANON_CONTEXT_MIN_RELEVANCE_SCORE", "0.5")
    monkeypatch.setenv("CANON_CONTEXT_MAX_TOTAL_CONTEXT", "7")
    monkeypatch.setenv("CANON_CONTEXT_FAIL_FAST_PROVIDERS", "true")
    cfg = ContextConfig.from_settings(CanonContextSettings())
    assert cfg.min_relevance_score == 0.5
    assert cfg.max_total_context == 7
    assert cfg.fail_fast_providers is True
    assert cfg.priority("source") == 100
    assert cfg.priority("nope") == 0
