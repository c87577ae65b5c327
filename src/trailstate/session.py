"""
InteractionSession: one visualization session's provenance wiring.

UI handlers call the methods here. Each one builds an Action from the
current state, commits it to the ProvenanceGraph (which notifies observers)
and then hands the new current state to the PersistenceBridge without
waiting for it.
"""
import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from trailstate import actions
from trailstate.config import ProvenanceConfig
from trailstate.errors import ObserverError
from trailstate.keybindings import KeyEvent, REDO, UNDO, classify_key
from trailstate.persistence import PersistenceBridge
from trailstate.selection import Network, SearchOutcome, search_for
from trailstate.snapshot_model import Action
from trailstate.state_graph import ProvenanceGraph

logger = logging.getLogger(__name__)


class InteractionSession:
    """Network, history and persistence for one session.

    Lifecycle: created when a network is loaded; start() pushes the initial
    snapshot. There is no process-wide session; pass the instance around.
    """

    def __init__(
        self,
        network: Network,
        *,
        config: Optional[ProvenanceConfig] = None,
        bridge: Optional[PersistenceBridge] = None,
        sink_id: Optional[str] = None,
        label_field: str = 'name',
    ):
        self.network = network
        self.config = config or ProvenanceConfig()
        self.bridge = bridge
        self.sink_id = sink_id
        self.label_field = label_field
        self.graph = ProvenanceGraph(
            actions.make_initial_state(network, select_neighbors=self.config.select_neighbors)
        )

    def start(self) -> None:
        """Push the root snapshot as the start of a new sink record."""
        self._persist(is_initial=True)

    # ========== OBSERVERS ==========

    def add_observer(self, field_paths: Iterable[str], callback: Callable[[Mapping[str, Any]], None]) -> None:
        self.graph.add_observer(field_paths, callback)

    def current_state(self) -> Mapping[str, Any]:
        return self.graph.current_state()

    # ========== INTERACTIONS ==========

    def select_node(self, node_id: str) -> None:
        """Click on a node: toggle its soft selection."""
        node = self._node(node_id)
        self._commit(actions.build_select_toggle_action(node, self.graph.current_state(), self.network))

    def hard_select_node(self, node_id: str) -> None:
        node = self._node(node_id)
        self._commit(actions.build_hard_select_toggle_action(node, self.graph.current_state()))

    def select_nodes(self, node_ids: Sequence[str]) -> None:
        action = actions.build_select_nodes_action(node_ids, self.graph.current_state(), self.network)
        if action is not None:
            self._commit(action)

    def clear_selection(self) -> None:
        if not self.graph.current_state()['selected']:
            return
        self._commit(actions.build_clear_selection_action(self.graph.current_state()))

    def search(self, query: str) -> SearchOutcome:
        """Select the node whose label matches query. Only FOUND changes history."""
        outcome, node = search_for(query, self.network, self.graph.current_state()['selected'], self.label_field)
        if outcome is SearchOutcome.FOUND:
            self._commit(actions.build_search_action(node, self.graph.current_state(), self.network))
        else:
            logger.info(f"SEARCH: {query!r} -> {outcome.name}")
        return outcome

    def drag_end(self, positions: Mapping[str, Mapping[str, float]]) -> None:
        if positions:
            self._commit(actions.build_drag_action(positions))

    def set_select_neighbors(self, value: bool) -> None:
        if self.graph.current_state().get('select_neighbors') == value:
            return
        self._commit(actions.build_set_select_neighbors_action(value, self.graph.current_state(), self.network))

    # ========== HISTORY ==========

    def undo(self) -> bool:
        return self._move(self.graph.go_back_one_step)

    def redo(self) -> bool:
        return self._move(self.graph.go_forward_one_step)

    def handle_key(self, event: KeyEvent) -> Optional[str]:
        """Keyboard undo/redo. Returns the command that moved the pointer, if any."""
        command = classify_key(event)
        if command == UNDO and self.undo():
            return UNDO
        if command == REDO and self.redo():
            return REDO
        return None

    # ========== INTERNALS ==========

    def _node(self, node_id: str) -> Mapping[str, Any]:
        node = self.network.get_node(node_id)
        if node is None:
            raise KeyError(f"Node {node_id!r} is not part of the network")
        return node

    def _commit(self, action: Action) -> None:
        try:
            self.graph.apply_action(action)
        except ObserverError:
            # History already moved; the sink still gets the snapshot
            self._persist(is_initial=False)
            raise
        self._persist(is_initial=False)

    def _move(self, step: Callable[[], bool]) -> bool:
        try:
            moved = step()
        except ObserverError:
            self._persist(is_initial=False)
            raise
        if moved:
            self._persist(is_initial=False)
        return moved

    def _persist(self, is_initial: bool) -> None:
        if self.bridge is None or self.sink_id is None:
            return
        self.bridge.dispatch(self.graph.current_state(), is_initial, self.sink_id)
