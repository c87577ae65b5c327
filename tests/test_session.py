"""Tests for InteractionSession wiring and keyboard undo/redo."""
import asyncio

import pytest

from trailstate import (
    InMemorySink,
    InteractionSession,
    KeyEvent,
    ObserverError,
    PersistenceBridge,
    ProvenanceConfig,
    SearchOutcome,
    undo_redo_key_handler,
)


@pytest.fixture
def session(star_network):
    return InteractionSession(star_network)


class TestInteractions:

    def test_select_and_undo(self, session):
        renders = []
        session.add_observer(["selected"], lambda state: renders.append(dict(state["selected"])))

        session.select_node("n1")
        session.select_node("n3")
        assert session.undo() is True
        assert renders == [{"n1": ["n2"]}, {"n1": ["n2"], "n3": ["n2"]}, {"n1": ["n2"]}]

    def test_unknown_node(self, session):
        with pytest.raises(KeyError):
            session.select_node("missing")

    def test_search(self, session):
        assert session.search("jimmy test") is SearchOutcome.FOUND
        assert session.current_state()["search"] == ["n2"]
        assert session.search("JIMMY TEST") is SearchOutcome.ALREADY_SELECTED
        assert session.search("Not There") is SearchOutcome.NOT_FOUND
        assert len(session.graph) == 2

    def test_clear_selection_noop_when_empty(self, session):
        session.clear_selection()
        assert len(session.graph) == 1
        session.select_nodes(["n1", "n2"])
        session.clear_selection()
        assert session.current_state()["selected"] == {}
        assert session.current_state()["event"] == "Clear Selection"

    def test_drag_and_hard_select(self, session):
        session.drag_end({"n2": {"x": 1.0, "y": 1.0}})
        session.drag_end({})
        session.hard_select_node("n2")
        assert session.current_state()["node_pos"]["n2"] == {"x": 1.0, "y": 1.0}
        assert session.current_state()["hard_selected"] == ["n2"]
        assert len(session.graph) == 3

    def test_set_select_neighbors(self, session):
        session.set_select_neighbors(True)
        assert len(session.graph) == 1
        session.set_select_neighbors(False)
        session.select_node("n2")
        assert session.current_state()["user_selected_neighbors"] == []

    def test_redo_at_leaf(self, session):
        assert session.redo() is False


class TestKeyboard:

    def test_undo_and_redo_chords(self, session):
        session.select_node("n1")
        assert session.handle_key(KeyEvent("z", ctrl=True)) == "undo"
        assert session.handle_key(KeyEvent("z", ctrl=True)) is None
        assert session.handle_key(KeyEvent("z", meta=True, shift=True)) == "redo"
        assert session.current_state()["selected"] == {"n1": ["n2"]}
        session.undo()
        assert session.handle_key(KeyEvent("y", ctrl=True)) == "redo"

    def test_plain_keys_ignored(self, session):
        session.select_node("n1")
        assert session.handle_key(KeyEvent("z")) is None
        assert session.handle_key(KeyEvent("x", ctrl=True)) is None

    def test_handler_on_graph(self, star_graph):
        assert undo_redo_key_handler(KeyEvent("z", ctrl=True), star_graph) is None
        assert undo_redo_key_handler(KeyEvent("Y", meta=True), star_graph) is None


class TestPersistenceWiring:

    def test_every_commit_is_pushed(self, star_network):
        sink = InMemorySink()

        async def run():
            bridge = PersistenceBridge(sink, ProvenanceConfig())
            session = InteractionSession(star_network, bridge=bridge, sink_id="worker1")
            session.start()
            session.select_node("n1")
            session.undo()
            session.undo()  # no-op, nothing pushed
            await bridge.drain()

        asyncio.run(run())
        events = [s["event"] for s in sink.documents["worker1"]["snapshots"]]
        assert events[0] == "startedProvenance"
        assert "Select Node" in events
        assert sink.write_count == 3

    def test_undo_and_redo_keep_navigation_trail(self, star_network):
        sink = InMemorySink()

        async def run():
            bridge = PersistenceBridge(sink, ProvenanceConfig())
            session = InteractionSession(star_network, bridge=bridge, sink_id="trail")
            session.start()
            session.select_node("n1")
            session.undo()
            session.redo()
            await bridge.drain()

        asyncio.run(run())
        events = [s["event"] for s in sink.documents["trail"]["snapshots"]]
        assert events == ["startedProvenance", "Select Node", "startedProvenance", "Select Node"]

    def test_push_happens_even_when_observer_fails(self, star_network):
        sink = InMemorySink()

        def broken(state):
            raise RuntimeError("render failed")

        async def run():
            bridge = PersistenceBridge(sink, ProvenanceConfig())
            session = InteractionSession(star_network, bridge=bridge, sink_id="w")
            session.add_observer(["selected"], broken)
            with pytest.raises(ObserverError):
                session.select_node("n1")
            await bridge.drain()

        asyncio.run(run())
        assert sink.write_count == 1

    def test_no_bridge_no_push(self, session):
        session.start()
        session.select_node("n1")
        assert session.current_state()["selected"] == {"n1": ["n2"]}
