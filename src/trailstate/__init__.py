"""
Interaction-provenance engine for network visualizations.

Records every user-initiated change to visualization state as a branching,
append-only history with deterministic undo/redo, notifies observers only
when the fields they watch change, and forwards snapshots to a document sink
without blocking interaction.

Quick Start:
    >>> from trailstate import Network, InteractionSession, InMemorySink, PersistenceBridge
    >>> network = Network.from_dict({
    ...     "nodes": [{"id": "n1"}, {"id": "n2"}],
    ...     "edges": [{"id": "e1", "source": "n1", "target": "n2"}],
    ... })
    >>> session = InteractionSession(network)
    >>> session.add_observer(["selected"], lambda state: print(dict(state["selected"])))
    >>> session.select_node("n1")
    {'n1': ['n2']}
    >>> session.undo()
    {}
    True

Architecture:
    selection     -> tag_neighbors: neighbor/edge sets of a selection (pure)
    snapshot_model-> Action and StateNode
    actions       -> one builder per interaction, capturing inputs up front
    state_graph   -> ProvenanceGraph: history tree + current pointer
    observers     -> field-scoped and global observers
    persistence   -> size-bounded, fire-and-forget snapshot pushes
    session       -> InteractionSession wiring the above for a UI

Modules:
    - config: ProvenanceConfig (environment-overridable defaults)
    - errors: exception taxonomy
    - keybindings: undo/redo keyboard chords
    - state_diff: structural field differences between states
"""

# Configuration
from trailstate.config import ProvenanceConfig

# Errors
from trailstate.errors import (
    ProvenanceError,
    NotInitializedError,
    AlreadyInitializedError,
    UnknownStateNodeError,
    ActionResultError,
    ObserverError,
)

# Derived selection
from trailstate.selection import (
    Network,
    NeighborTags,
    SearchOutcome,
    tag_neighbors,
    direct_neighbors,
    find_node,
    search_for,
)

# History model
from trailstate.snapshot_model import Action, StateNode
from trailstate.state_graph import ProvenanceGraph
from trailstate.observers import ObserverRegistry
from trailstate.state_diff import find_differences

# Action builders
from trailstate.actions import (
    make_initial_state,
    build_select_toggle_action,
    build_search_action,
    build_select_nodes_action,
    build_clear_selection_action,
    build_hard_select_toggle_action,
    build_drag_action,
    build_set_select_neighbors_action,
)

# Persistence
from trailstate.persistence import (
    PersistenceBridge,
    PersistenceSink,
    PushResult,
    InMemorySink,
    JsonFileSink,
    estimate_value_size,
    estimate_document_size,
)

# Session and keyboard
from trailstate.session import InteractionSession
from trailstate.keybindings import KeyEvent, undo_redo_key_handler

__all__ = [
    # Configuration
    'ProvenanceConfig',
    # Errors
    'ProvenanceError',
    'NotInitializedError',
    'AlreadyInitializedError',
    'UnknownStateNodeError',
    'ActionResultError',
    'ObserverError',
    # Derived selection
    'Network',
    'NeighborTags',
    'SearchOutcome',
    'tag_neighbors',
    'direct_neighbors',
    'find_node',
    'search_for',
    # History model
    'Action',
    'StateNode',
    'ProvenanceGraph',
    'ObserverRegistry',
    'find_differences',
    # Action builders
    'make_initial_state',
    'build_select_toggle_action',
    'build_search_action',
    'build_select_nodes_action',
    'build_clear_selection_action',
    'build_hard_select_toggle_action',
    'build_drag_action',
    'build_set_select_neighbors_action',
    # Persistence
    'PersistenceBridge',
    'PersistenceSink',
    'PushResult',
    'InMemorySink',
    'JsonFileSink',
    'estimate_value_size',
    'estimate_document_size',
    # Session and keyboard
    'InteractionSession',
    'KeyEvent',
    'undo_redo_key_handler',
]

__version__ = '1.0.0'
__description__ = 'Interaction-provenance engine for network visualizations'
