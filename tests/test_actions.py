"""Tests for the interaction action builders."""
import pytest

from trailstate import (
    Network,
    ProvenanceGraph,
    build_clear_selection_action,
    build_drag_action,
    build_hard_select_toggle_action,
    build_search_action,
    build_select_nodes_action,
    build_select_toggle_action,
    build_set_select_neighbors_action,
    make_initial_state,
)


def select(graph, network, node_id):
    action = build_select_toggle_action(network.get_node(node_id), graph.current_state(), network)
    graph.apply_action(action)
    return action


class TestSelectToggle:

    def test_labels(self, star_graph, star_network):
        assert select(star_graph, star_network, "n1").label == "Select Node"
        assert select(star_graph, star_network, "n1").label == "De-select Node"

    def test_toggle_twice_restores_selection(self, star_graph, star_network):
        before = dict(star_graph.current_state()["selected"])
        select(star_graph, star_network, "n1")
        select(star_graph, star_network, "n1")
        assert star_graph.current_state()["selected"] == before

    def test_select_scenario(self, star_graph, star_network):
        select(star_graph, star_network, "n1")
        assert star_graph.current_state()["selected"] == {"n1": ["n2"]}

        select(star_graph, star_network, "n3")
        assert star_graph.current_state()["selected"] == {"n1": ["n2"], "n3": ["n2"]}
        assert list(star_graph.current_state()["selected"]) == ["n1", "n3"]

        star_graph.go_back_one_step()
        assert star_graph.current_state()["selected"] == {"n1": ["n2"]}

    def test_derived_sets_written(self, star_graph, star_network):
        select(star_graph, star_network, "n1")
        state = star_graph.current_state()
        assert set(state["user_selected_neighbors"]) == {"n2"}
        assert set(state["user_selected_edges"]) == {"e12"}

    def test_mixed_int_and_str_ids(self):
        network = Network.from_dict({
            "nodes": [{"id": 1}, {"id": "b"}, {"id": 2}],
            "edges": [
                {"id": 10, "source": 1, "target": "b"},
                {"id": "e2", "source": "b", "target": 2},
            ],
        })
        graph = ProvenanceGraph(make_initial_state(network))
        select(graph, network, "b")
        assert graph.current_state()["user_selected_neighbors"] == [1, 2]
        assert graph.current_state()["user_selected_edges"] == [10, "e2"]

    def test_derived_sets_empty_without_neighbor_highlighting(self, star_network):
        graph = ProvenanceGraph(make_initial_state(star_network, select_neighbors=False))
        select(graph, star_network, "n2")
        assert graph.current_state()["selected"] == {"n2": ["n1", "n3"]}
        assert graph.current_state()["user_selected_edges"] == []

    def test_builder_does_not_mutate_state(self, star_graph, star_network):
        state = star_graph.current_state()
        build_select_toggle_action(star_network.get_node("n1"), state, star_network)
        assert state["selected"] == {}

    def test_replay_is_deterministic(self, star_graph, star_network):
        """The same action applied twice from the same node yields equal states."""
        action = build_select_toggle_action(star_network.get_node("n1"), star_graph.current_state(), star_network)
        star_graph.apply_action(action)
        first = dict(star_graph.current_state())
        star_graph.go_back_one_step()
        star_graph.apply_action(action)
        assert dict(star_graph.current_state()) == first


class TestOtherBuilders:

    def test_initial_state(self, star_network):
        state = make_initial_state(star_network)
        assert state["selected"] == {}
        assert state["search"] == []
        assert state["event"] == "startedProvenance"
        assert state["node_pos"]["n2"] == {"x": 10.0, "y": 0.0}
        assert state["select_neighbors"] is True

    def test_search_selects_and_logs(self, star_graph, star_network):
        node = star_network.get_node("n3")
        star_graph.apply_action(build_search_action(node, star_graph.current_state(), star_network))
        state = star_graph.current_state()
        assert state["event"] == "Searched for Node"
        assert state["search"] == ["n3"]
        assert state["selected"] == {"n3": ["n2"]}

    def test_select_nodes(self, star_graph, star_network):
        assert build_select_nodes_action([], star_graph.current_state(), star_network) is None
        action = build_select_nodes_action(["n1", "n3"], star_graph.current_state(), star_network)
        star_graph.apply_action(action)
        assert star_graph.current_state()["event"] == "Select Node(s)"
        assert list(star_graph.current_state()["selected"]) == ["n1", "n3"]

    def test_select_nodes_unknown_id(self, star_graph, star_network):
        with pytest.raises(KeyError):
            build_select_nodes_action(["nope"], star_graph.current_state(), star_network)

    def test_clear_selection(self, star_graph, star_network):
        select(star_graph, star_network, "n1")
        star_graph.apply_action(build_clear_selection_action(star_graph.current_state()))
        state = star_graph.current_state()
        assert state["selected"] == {}
        assert state["user_selected_edges"] == []
        assert state["event"] == "Clear Selection"

    def test_hard_select_toggle(self, star_graph, star_network):
        node = star_network.get_node("n2")
        action = build_hard_select_toggle_action(node, star_graph.current_state())
        assert action.label == "Hard Selected a Node"
        star_graph.apply_action(action)
        assert star_graph.current_state()["hard_selected"] == ["n2"]
        action = build_hard_select_toggle_action(node, star_graph.current_state())
        assert action.label == "Hard Unselected a Node"
        star_graph.apply_action(action)
        assert star_graph.current_state()["hard_selected"] == []

    def test_drag_updates_positions(self, star_graph):
        positions = {"n1": {"x": 5.0, "y": 6.0}}
        star_graph.apply_action(build_drag_action(positions))
        positions["n1"]["x"] = 99.0
        state = star_graph.current_state()
        assert state["node_pos"]["n1"] == {"x": 5.0, "y": 6.0}
        assert state["node_pos"]["n3"] == {"x": 20.0, "y": 0.0}
        assert star_graph.root.state["node_pos"]["n1"] == {"x": 0.0, "y": 0.0}

    def test_set_select_neighbors(self, star_graph, star_network):
        select(star_graph, star_network, "n1")
        star_graph.apply_action(build_set_select_neighbors_action(False, star_graph.current_state(), star_network))
        state = star_graph.current_state()
        assert state["select_neighbors"] is False
        assert state["user_selected_neighbors"] == []
        assert state["selected"] == {"n1": ["n2"]}
