"""
Field-scoped observers for the provenance history.

An observer watches a set of field paths and is called with the new current
state whenever the current pointer moves and at least one watched value
differs from the previous current state. Global observers are called on
every move together with the changed top-level fields.
"""
from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Tuple

from trailstate.errors import ObserverError
from trailstate.state_diff import find_differences, read_path

logger = logging.getLogger(__name__)

StateCallback = Callable[[Mapping[str, Any]], None]
GlobalCallback = Callable[[Mapping[str, Any], Dict[str, Any]], None]


@dataclass(frozen=True)
class ObserverRegistration:
    field_paths: FrozenSet[str]
    callback: StateCallback

    def is_triggered(self, previous: Mapping[str, Any], current: Mapping[str, Any]) -> bool:
        return any(read_path(previous, path) != read_path(current, path) for path in self.field_paths)


class ObserverRegistry:
    """Ordered observer registrations owned by one ProvenanceGraph.

    Thread safety: Not thread-safe (all notifications run on the caller's thread).
    """

    def __init__(self):
        self._observers: List[ObserverRegistration] = []
        self._global_observers: List[GlobalCallback] = []

    def add_observer(self, field_paths: Iterable[str], callback: StateCallback) -> None:
        """Watch field paths; a bare string is treated as a single path."""
        if isinstance(field_paths, str):
            field_paths = [field_paths]
        paths = frozenset(field_paths)
        if not paths:
            raise ValueError("An observer needs at least one field path")
        self._observers.append(ObserverRegistration(paths, callback))
        logger.debug(f"Registered observer {getattr(callback, '__name__', callback)!r} on {sorted(paths)}")

    def add_global_observer(self, callback: GlobalCallback) -> None:
        """Subscribe to every pointer move; receives (state, changed_fields).

        Like add_observer, registering the same callback twice calls it twice.
        """
        self._global_observers.append(callback)

    def remove_observer(self, callback: Callable[..., None]) -> None:
        """Drop every registration (field-scoped or global) of callback."""
        self._observers = [reg for reg in self._observers if reg.callback != callback]
        self._global_observers = [cb for cb in self._global_observers if cb != callback]

    def __len__(self) -> int:
        return len(self._observers) + len(self._global_observers)

    def notify(self, previous: Mapping[str, Any], current: Mapping[str, Any]) -> None:
        """Run every triggered callback, then raise ObserverError if any failed."""
        errors: List[Tuple[Callable[..., Any], BaseException]] = []

        for registration in list(self._observers):
            if not registration.is_triggered(previous, current):
                continue
            try:
                registration.callback(current)
            except Exception as e:
                logger.warning(f"Error in observer callback for {sorted(registration.field_paths)}: {e}")
                errors.append((registration.callback, e))

        if self._global_observers:
            changed = find_differences(previous, current)
            for callback in list(self._global_observers):
                try:
                    callback(current, changed)
                except Exception as e:
                    logger.warning(f"Error in global observer callback: {e}")
                    errors.append((callback, e))

        if errors:
            raise ObserverError(errors)
