"""
Exception taxonomy for the provenance engine.

No-op moves (undo at the root, redo at a leaf) are not errors and return False.
Oversized snapshot pushes are downgraded to warnings by the persistence bridge.
Everything below propagates to the caller.
"""
from typing import Any, Callable, List, Tuple


class ProvenanceError(Exception):
    """Base class for all trailstate errors."""


class NotInitializedError(ProvenanceError):
    """Raised when a ProvenanceGraph is used before init_provenance()."""


class AlreadyInitializedError(ProvenanceError):
    """Raised when init_provenance() is called a second time."""


class UnknownStateNodeError(ProvenanceError, KeyError):
    """Raised when a state node id is not part of the history tree."""


class ActionResultError(ProvenanceError, TypeError):
    """Raised when an action transformation does not return a mapping."""


class ObserverError(ProvenanceError):
    """One or more observer callbacks raised during a notification batch.

    The batch always runs to completion; this error is raised afterwards and
    carries every (callback, exception) pair in registration order.
    """

    def __init__(self, errors: List[Tuple[Callable[..., Any], BaseException]]):
        self.errors = errors
        names = ", ".join(getattr(cb, "__name__", repr(cb)) for cb, _ in errors)
        super().__init__(f"{len(errors)} observer callback(s) failed: {names}")
