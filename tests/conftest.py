"""Pytest configuration and shared fixtures."""
import pytest

from trailstate import Network, ProvenanceGraph, make_initial_state


@pytest.fixture
def path_network():
    """A - B - C connected by edges ab and bc."""
    return Network.from_dict({
        "nodes": [{"id": "A"}, {"id": "B"}, {"id": "C"}],
        "edges": [
            {"id": "ab", "source": "A", "target": "B"},
            {"id": "bc", "source": "B", "target": "C"},
        ],
    })


@pytest.fixture
def star_network():
    """n2 at the center of n1 and n3, with names for search and positions for dragging."""
    return Network.from_dict({
        "nodes": [
            {"id": "n1", "name": "Test Testerson", "x": 0.0, "y": 0.0},
            {"id": "n2", "name": "Jimmy Test", "x": 10.0, "y": 0.0},
            {"id": "n3", "name": "Third Node", "x": 20.0, "y": 0.0},
        ],
        "links": [
            {"id": "e12", "source": "n1", "target": "n2"},
            {"id": "e23", "source": "n2", "target": "n3"},
        ],
    })


@pytest.fixture
def initial_state():
    """Minimal root state with the fields every state carries."""
    return {
        "selected": {},
        "user_selected_edges": [],
        "search": [],
        "event": "startedProvenance",
    }


@pytest.fixture
def graph(initial_state):
    """Initialized provenance graph over the minimal root state."""
    return ProvenanceGraph(initial_state)


@pytest.fixture
def star_graph(star_network):
    """Provenance graph initialized from the star network."""
    return ProvenanceGraph(make_initial_state(star_network))
