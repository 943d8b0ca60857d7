"""
Shared fixtures: a small canon graph loaded into the in-memory store.

    Aetheria (universe)
    ├── Ironhold (place)
    │   ├── Aldric (character, focal)   tags: grimdark, heroic
    │   ├── Bryn, Cora, Dain (characters)
    │   └── Ember Blade, Iron Crown (items)
    ├── Greywater (place)
    │   └── Elara (character)
    ├── Siege of Ironhold (event: Aldric + Elara, at Ironhold)
    ├── Harbor Accord (event: Elara, at Greywater)
    └── The Long Winter (narrative)
"""

import copy

import pytest

from canon_context.generation import ContextAssembler, ContextConfig
from canon_context.knowledge_graph import InMemoryGraphStore


GRAPH = {
    "entities": [
        {
            "id": "u1",
            "name": "Aetheria",
            "node_type": "universe",
            "type": "high_fantasy",
            "description": "A world of  ruined empires and\nrising kingdoms.",
        },
        {"id": "p1", "name": "Ironhold", "node_type": "place", "type": "fortress_city", "description": "A walled city."},
        {"id": "p2", "name": "Greywater", "node_type": "place", "type": "port", "description": "A fog-bound port."},
        {"id": "c1", "name": "Aldric", "node_type": "character", "type": "knight", "description": "An oathsworn knight."},
        {"id": "c2", "name": "Bryn", "node_type": "character", "type": "smith"},
        {"id": "c3", "name": "Cora", "node_type": "character", "type": "spy", "description": "Sees everything."},
        {"id": "c4", "name": "Dain", "node_type": "character", "type": "guard"},
        {"id": "c5", "name": "Elara", "node_type": "character", "type": "captain"},
        {"id": "i1", "name": "Ember Blade", "node_type": "item", "type": "weapon"},
        {"id": "i2", "name": "Iron Crown", "node_type": "item", "type": "regalia"},
        {"id": "e1", "name": "Siege of Ironhold", "node_type": "event", "type": "battle", "day": 3},
        {"id": "e2", "name": "Harbor Accord", "node_type": "event", "type": "treaty", "day": 5},
        {"id": "n1", "name": "The Long Winter", "node_type": "narrative", "type": "arc"},
        {"id": "t1", "name": "grimdark", "node_type": "tag", "type": "tone", "description": "Bleak and morally grey."},
        {"id": "t2", "name": "heroic", "node_type": "tag", "type": "style", "description": "Courage against odds."},
        {"id": "t3", "name": "political", "node_type": "tag", "type": "theme"},
    ],
    "relations": [
        {"src": "u1", "dst": "p1", "type": "CONTAINS"},
        {"src": "u1", "dst": "p2", "type": "CONTAINS"},
        {"src": "u1", "dst": "e1", "type": "CONTAINS"},
        {"src": "u1", "dst": "e2", "type": "CONTAINS"},
        {"src": "u1", "dst": "n1", "type": "CONTAINS"},
        {"src": "p1", "dst": "c1", "type": "CONTAINS"},
        {"src": "p1", "dst": "c2", "type": "CONTAINS"},
        {"src": "p1", "dst": "c3", "type": "CONTAINS"},
        {"src": "p1", "dst": "c4", "type": "CONTAINS"},
        {"src": "p1", "dst": "i1", "type": "CONTAINS"},
        {"src": "p1", "dst": "i2", "type": "CONTAINS"},
        {"src": "p2", "dst": "c5", "type": "CONTAINS"},
        {"src": "c1", "dst": "t1", "type": "TAGGED"},
        {"src": "c1", "dst": "t2", "type": "TAGGED"},
        {"src": "c2", "dst": "t1", "type": "TAGGED"},
        {"src": "p1", "dst": "t3", "type": "TAGGED"},
        {"src": "i1", "dst": "t2", "type": "TAGGED"},
        {"src": "e1", "dst": "c1", "type": "INVOLVES"},
        {"src": "e1", "dst": "c5", "type": "INVOLVES"},
        {"src": "e1", "dst": "p1", "type": "OCCURS_AT"},
        {"src": "e2", "dst": "c5", "type": "INVOLVES"},
        {"src": "e2", "dst": "p2", "type": "OCCURS_AT"},
    ],
}


@pytest.fixture
def graph_data():
    return copy.deepcopy(GRAPH)


@pytest.fixture
def store(graph_data):
    return InMemoryGraphStore.from_dict(graph_data)


@pytest.fixture
def assembler(store):
    return ContextAssembler(store, ContextConfig())
