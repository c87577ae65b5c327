"""
ProvenanceGraph: append-only tree of state snapshots with a movable current pointer.

Every user-initiated change to visualization state goes through apply_action,
which clones the current snapshot, runs the action on the clone and appends
the result as a new child of the current node. Undo moves to the parent,
redo to the most recently created child. Nothing is ever removed, so acting
after an undo leaves the previous future reachable as an older sibling.
"""
import copy
import datetime
import json
import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from trailstate.errors import (
    ActionResultError,
    AlreadyInitializedError,
    NotInitializedError,
    UnknownStateNodeError,
)
from trailstate.observers import GlobalCallback, ObserverRegistry, StateCallback
from trailstate.snapshot_model import Action, StateNode

logger = logging.getLogger(__name__)


def _detached_view(node: StateNode) -> Mapping[str, Any]:
    return MappingProxyType(copy.deepcopy(node.state))


class ProvenanceGraph:
    """History tree for one visualization session.

    Lifecycle: created empty, initialized once with init_provenance(), then
    mutated only through apply_action, go_back_one_step, go_forward_one_step
    and go_to_node. Nodes live for the lifetime of the graph.

    Thread safety: Not thread-safe (all operations expected on the UI thread).
    """

    def __init__(self, initial_state: Optional[Mapping[str, Any]] = None):
        self._nodes: Dict[str, StateNode] = {}
        self._root: Optional[StateNode] = None
        self._current: Optional[StateNode] = None
        self._observers = ObserverRegistry()
        if initial_state is not None:
            self.init_provenance(initial_state)

    # ========== LIFECYCLE ==========

    def init_provenance(self, initial_state: Mapping[str, Any]) -> None:
        """Create the root node from initial_state and point current at it."""
        if self._root is not None:
            raise AlreadyInitializedError("Provenance graph is already initialized")

        root = StateNode.create(copy.deepcopy(dict(initial_state)), label="Root")
        self._nodes[root.id] = root
        self._root = root
        self._current = root
        logger.info(f"⏱️ INIT: Root state created (id={root.id[:8]})")

    @property
    def is_initialized(self) -> bool:
        return self._root is not None

    def _require_current(self) -> StateNode:
        if self._current is None:
            raise NotInitializedError("Call init_provenance() before using the provenance graph")
        return self._current

    # ========== OBSERVERS ==========

    def add_observer(self, field_paths: Iterable[str], callback: StateCallback) -> None:
        """Call callback(state) whenever one of field_paths changes value."""
        self._observers.add_observer(field_paths, callback)

    def add_global_observer(self, callback: GlobalCallback) -> None:
        """Call callback(state, changed_fields) on every pointer move."""
        self._observers.add_global_observer(callback)

    def remove_observer(self, callback: Callable[..., None]) -> None:
        self._observers.remove_observer(callback)

    # ========== STATE ==========

    def current_state(self) -> Mapping[str, Any]:
        """Read-only view of the current snapshot.

        The view is detached from the stored node, so edits to nested values
        never reach history. Build the next state through an Action;
        apply_action hands the transformation its own deep copy.
        """
        return _detached_view(self._require_current())

    @property
    def current(self) -> StateNode:
        return self._require_current()

    @property
    def root(self) -> StateNode:
        if self._root is None:
            raise NotInitializedError("Call init_provenance() before using the provenance graph")
        return self._root

    def get_node(self, node_id: str) -> StateNode:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise UnknownStateNodeError(node_id) from None

    def __len__(self) -> int:
        return len(self._nodes)

    # ========== MUTATION ==========

    def apply_action(self, action: Action) -> None:
        """Run action on a clone of the current state and make the result current.

        If the transformation raises, or returns something that is not a
        mapping, the exception propagates and the tree is untouched.
        """
        previous = self._require_current()

        candidate = action.transformation(copy.deepcopy(previous.state))
        if not isinstance(candidate, Mapping):
            raise ActionResultError(
                f"Action {action.label!r} returned {type(candidate).__name__}, expected a mapping"
            )
        new_state = dict(candidate)
        new_state['event'] = action.label

        node = StateNode.create(new_state, label=action.label, parent=previous)

        # Commit
        self._nodes[node.id] = node
        previous.children.append(node)
        self._current = node
        logger.debug(f"⏱️ SNAPSHOT: Recorded '{action.label}' (id={node.id[:8]}, parent={previous.id[:8]})")
        if len(previous.children) > 1:
            logger.debug(f"⏱️ BRANCH: {previous.id[:8]} now has {len(previous.children)} children")

        self._observers.notify(previous.state, _detached_view(node))

    def go_back_one_step(self) -> bool:
        """Move current to its parent. No-op at the root; returns whether it moved."""
        current = self._require_current()
        if current.parent is None:
            logger.debug("⏱️ UNDO: Already at root")
            return False
        self._move_to(current.parent, "UNDO")
        return True

    def go_forward_one_step(self) -> bool:
        """Move current to its most recently created child. No-op at a leaf."""
        current = self._require_current()
        child = current.newest_child
        if child is None:
            logger.debug("⏱️ REDO: Already at a leaf")
            return False
        self._move_to(child, "REDO")
        return True

    def go_to_node(self, node_id: str) -> bool:
        """Move current to any node in the tree (branch selection)."""
        target = self.get_node(node_id)
        if target is self._require_current():
            return False
        self._move_to(target, "TIME_TRAVEL")
        return True

    def can_go_back(self) -> bool:
        return self._require_current().parent is not None

    def can_go_forward(self) -> bool:
        return bool(self._require_current().children)

    def _move_to(self, target: StateNode, tag: str) -> None:
        previous = self._require_current()
        self._current = target
        logger.debug(f"⏱️ {tag}: {previous.label} ({previous.id[:8]}) -> {target.label} ({target.id[:8]})")
        self._observers.notify(previous.state, _detached_view(target))

    # ========== HISTORY INSPECTION ==========

    def get_path_to_current(self) -> List[StateNode]:
        """Nodes from root to current (root first, current last)."""
        path = []
        node: Optional[StateNode] = self._require_current()
        while node is not None:
            path.append(node)
            node = node.parent
        path.reverse()
        return path

    def get_history_info(self) -> List[Dict[str, Any]]:
        """Human-readable rows for the root -> current path, oldest first."""
        current = self._require_current()
        result = []
        for i, node in enumerate(self.get_path_to_current()):
            result.append({
                'index': i,
                'id': node.id,
                'timestamp': datetime.datetime.fromtimestamp(node.created_at).strftime('%H:%M:%S.%f')[:-3],
                'label': node.label,
                'is_current': node is current,
                'num_children': len(node.children),
                'parent_id': node.parent.id if node.parent is not None else None,
            })
        return result

    # ========== PERSISTENCE ==========

    def export_to_dict(self) -> Dict[str, Any]:
        """Export the whole tree to a JSON-serializable dict.

        Returns:
            Dict with 'nodes' (id -> node dict, creation order), 'root_id' and 'current_id'.
        """
        return {
            'nodes': {node_id: node.to_dict() for node_id, node in self._nodes.items()},
            'root_id': self.root.id,
            'current_id': self._require_current().id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ProvenanceGraph':
        """Rebuild a graph exported by export_to_dict(). Observers are not restored."""
        graph = cls()
        nodes_data = data['nodes']
        for node_id, node_data in nodes_data.items():
            graph._nodes[node_id] = StateNode.from_dict(node_data)

        # Link in a second pass; children keep their exported order
        for node_id, node_data in nodes_data.items():
            node = graph._nodes[node_id]
            parent_id = node_data.get('parent_id')
            if parent_id is not None:
                node.parent = graph.get_node(parent_id)
            node.children = [graph.get_node(child_id) for child_id in node_data.get('children', [])]

        graph._root = graph.get_node(data['root_id'])
        graph._current = graph.get_node(data.get('current_id', data['root_id']))
        logger.info(f"⏱️ IMPORT: Restored {len(graph._nodes)} state nodes")
        return graph

    def save_to_file(self, filepath: str) -> None:
        """Save history to a JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.export_to_dict(), f, indent=2)
        logger.info(f"⏱️ Saved {len(self._nodes)} state nodes to {filepath}")

    @classmethod
    def load_from_file(cls, filepath: str) -> 'ProvenanceGraph':
        """Load history from a JSON file written by save_to_file()."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)
