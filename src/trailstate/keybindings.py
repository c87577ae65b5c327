"""
Undo/redo keyboard chords.

ctrl/meta + z undoes, ctrl/meta + y and ctrl/meta + shift + z redo. Undo is
ignored at the root and redo at a leaf, so held keys never raise.
"""
from dataclasses import dataclass
from typing import Optional

from trailstate.state_graph import ProvenanceGraph

UNDO = "undo"
REDO = "redo"


@dataclass(frozen=True)
class KeyEvent:
    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False

    @property
    def has_modifier(self) -> bool:
        return self.ctrl or self.meta


def classify_key(event: KeyEvent) -> Optional[str]:
    """Map a key event to UNDO, REDO or None."""
    if not event.has_modifier:
        return None
    key = event.key.lower()
    if key == 'z':
        return REDO if event.shift else UNDO
    if key == 'y':
        return REDO
    return None


def undo_redo_key_handler(event: KeyEvent, graph: ProvenanceGraph) -> Optional[str]:
    """Apply the chord to graph. Returns the command that moved the pointer, if any."""
    command = classify_key(event)
    if command == UNDO and graph.can_go_back():
        graph.go_back_one_step()
        return UNDO
    if command == REDO and graph.can_go_forward():
        graph.go_forward_one_step()
        return REDO
    return None
