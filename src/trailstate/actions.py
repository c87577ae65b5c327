"""
Action builders, one per interaction type.

A builder reads the current state and the network, computes everything the
state transition needs (selection changes, derived neighbor sets,
timestamps) and returns an Action whose transformation only writes those
captured values into the clone it is given. Builders never apply the action.
"""
import copy
import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from trailstate.selection import Network, direct_neighbors, sorted_ids, tag_neighbors
from trailstate.snapshot_model import Action, State

logger = logging.getLogger(__name__)

SELECT_NODE = "Select Node"
DESELECT_NODE = "De-select Node"
SELECT_NODES = "Select Node(s)"
SEARCHED_FOR_NODE = "Searched for Node"
CLEAR_SELECTION = "Clear Selection"
HARD_SELECT_NODE = "Hard Selected a Node"
HARD_DESELECT_NODE = "Hard Unselected a Node"
DRAGGED_NODE = "Dragged Node"
SET_SELECT_NEIGHBORS = "Set Select Neighbors"
STARTED_PROVENANCE = "startedProvenance"


def make_initial_state(network: Network, *, select_neighbors: bool = True,
                       order: Optional[Sequence[int]] = None) -> State:
    """Root state for a freshly loaded network."""
    now = time.time()
    return {
        'selected': {},
        'user_selected_edges': [],
        'user_selected_neighbors': [],
        'hard_selected': [],
        'search': [],
        'order': list(order) if order is not None else [],
        'node_pos': {
            n['id']: {'x': n['x'], 'y': n['y']}
            for n in network.nodes
            if 'x' in n and 'y' in n
        },
        'select_neighbors': select_neighbors,
        'start_time': now,
        'time': now,
        'event': STARTED_PROVENANCE,
    }


def _derived_fields(selected_ids: Iterable[str], network: Network, include_neighbors: bool) -> Dict[str, List[str]]:
    tags = tag_neighbors(selected_ids, network, include_neighbors)
    return {
        'user_selected_neighbors': sorted_ids(tags.neighbors),
        'user_selected_edges': sorted_ids(tags.edges),
    }


def _selection_action(label: str, selected: Dict[str, List[str]], network: Network,
                      include_neighbors: bool, searched_id: Optional[str] = None) -> Action:
    derived = _derived_fields(selected.keys(), network, include_neighbors)
    stamp = time.time()

    def transformation(state: State) -> State:
        state['selected'] = copy.deepcopy(selected)
        state.update(copy.deepcopy(derived))
        if searched_id is not None:
            state['search'] = list(state.get('search', [])) + [searched_id]
        state['time'] = stamp
        state['event'] = label
        return state

    return Action(label=label, transformation=transformation)


def _include_neighbors(current_state: Mapping[str, Any], include_neighbors: Optional[bool]) -> bool:
    if include_neighbors is not None:
        return include_neighbors
    return bool(current_state.get('select_neighbors', True))


def build_select_toggle_action(node: Mapping[str, Any], current_state: Mapping[str, Any], network: Network,
                               include_neighbors: Optional[bool] = None) -> Action:
    """Select node if it is not selected, de-select it otherwise.

    The ``selected`` entry stores the node's direct neighbors; the expanded
    neighbor/edge sets used for highlighting go into their own fields.
    """
    selected = dict(current_state['selected'])
    node_id = node['id']
    if node_id in selected:
        del selected[node_id]
        label = DESELECT_NODE
    else:
        selected[node_id] = direct_neighbors(node, network)
        label = SELECT_NODE
    logger.debug(f"{label}: {node_id!r} ({len(selected)} selected after)")
    return _selection_action(label, selected, network, _include_neighbors(current_state, include_neighbors))


def build_search_action(node: Mapping[str, Any], current_state: Mapping[str, Any], network: Network,
                        include_neighbors: Optional[bool] = None) -> Action:
    """Select a node found through search and log it in ``search``."""
    selected = dict(current_state['selected'])
    selected.setdefault(node['id'], direct_neighbors(node, network))
    return _selection_action(SEARCHED_FOR_NODE, selected, network,
                             _include_neighbors(current_state, include_neighbors),
                             searched_id=node['id'])


def build_select_nodes_action(node_ids: Sequence[str], current_state: Mapping[str, Any], network: Network,
                              include_neighbors: Optional[bool] = None) -> Optional[Action]:
    """Add several nodes to the selection at once. None when there is nothing to add."""
    if not node_ids:
        return None
    selected = dict(current_state['selected'])
    for node_id in node_ids:
        node = network.get_node(node_id)
        if node is None:
            raise KeyError(f"Node {node_id!r} is not part of the network")
        selected.setdefault(node_id, direct_neighbors(node, network))
    return _selection_action(SELECT_NODES, selected, network, _include_neighbors(current_state, include_neighbors))


def build_clear_selection_action(current_state: Mapping[str, Any]) -> Action:
    """Drop the whole soft selection and its derived sets."""
    stamp = time.time()

    def transformation(state: State) -> State:
        state['selected'] = {}
        state['user_selected_neighbors'] = []
        state['user_selected_edges'] = []
        state['time'] = stamp
        return state

    return Action(label=CLEAR_SELECTION, transformation=transformation)


def build_hard_select_toggle_action(node: Mapping[str, Any], current_state: Mapping[str, Any]) -> Action:
    """Toggle membership of node in ``hard_selected``."""
    hard_selected = list(current_state.get('hard_selected', []))
    node_id = node['id']
    if node_id in hard_selected:
        hard_selected.remove(node_id)
        label = HARD_DESELECT_NODE
    else:
        hard_selected.append(node_id)
        label = HARD_SELECT_NODE
    stamp = time.time()

    def transformation(state: State) -> State:
        state['hard_selected'] = list(hard_selected)
        state['time'] = stamp
        return state

    return Action(label=label, transformation=transformation)


def build_drag_action(positions: Mapping[str, Mapping[str, float]]) -> Action:
    """Record node positions after a drag ends."""
    captured = {node_id: {'x': pos['x'], 'y': pos['y']} for node_id, pos in positions.items()}
    stamp = time.time()

    def transformation(state: State) -> State:
        node_pos = dict(state.get('node_pos', {}))
        node_pos.update(copy.deepcopy(captured))
        state['node_pos'] = node_pos
        state['time'] = stamp
        return state

    return Action(label=DRAGGED_NODE, transformation=transformation)


def build_set_select_neighbors_action(value: bool, current_state: Mapping[str, Any], network: Network) -> Action:
    """Flip neighbor highlighting and recompute the derived sets for it."""
    derived = _derived_fields(current_state['selected'].keys(), network, value)
    stamp = time.time()

    def transformation(state: State) -> State:
        state['select_neighbors'] = value
        state.update(copy.deepcopy(derived))
        state['time'] = stamp
        return state

    return Action(label=SET_SELECT_NEIGHBORS, transformation=transformation)
