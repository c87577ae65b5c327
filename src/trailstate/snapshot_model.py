"""
Action and StateNode dataclasses for the branching provenance history.

Design Philosophy: Correct by Construction
- Actions are frozen: a label plus a transformation with its inputs captured
- A StateNode's state is never mutated after the node is created
- Children only accumulate; the parent link is a non-owning back-reference
- UUID-based identity for nodes
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional
import time
import uuid

State = Dict[str, Any]
Transformation = Callable[[State], State]


@dataclass(frozen=True)
class Action:
    """A named, deterministic State -> State transformation.

    The label is both the display string and the event-type tag written into
    the resulting state's ``event`` field.
    """
    label: str
    transformation: Transformation = field(repr=False)


@dataclass(eq=False)
class StateNode:
    """One snapshot in the history tree.

    Analogous to a git commit, except that children are tracked so redo can
    walk forward to the most recent one.
    """
    id: str
    state: State
    label: str
    created_at: float
    parent: Optional['StateNode'] = field(default=None, repr=False)
    children: List['StateNode'] = field(default_factory=list, repr=False)

    @classmethod
    def create(cls, state: State, label: str, parent: Optional['StateNode'] = None) -> 'StateNode':
        """Create a new node with auto-generated ID and timestamp."""
        return cls(
            id=str(uuid.uuid4()),
            state=state,
            label=label,
            created_at=time.time(),
            parent=parent,
        )

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def newest_child(self) -> Optional['StateNode']:
        return self.children[-1] if self.children else None

    def to_dict(self) -> Dict[str, Any]:
        """Export to JSON-serializable dict (state must already be JSON-friendly). State is copied."""
        return {
            'id': self.id,
            'label': self.label,
            'created_at': self.created_at,
            'parent_id': self.parent.id if self.parent is not None else None,
            'children': [child.id for child in self.children],
            'state': copy.deepcopy(self.state),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'StateNode':
        """Import a single node; parent and children are linked by the caller."""
        return cls(
            id=data['id'],
            state=copy.deepcopy(dict(data['state'])),
            label=data['label'],
            created_at=data['created_at'],
        )
