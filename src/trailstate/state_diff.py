"""
Structural comparison helpers for provenance states.

Order matters: the second mapping is treated as the updated version of the
first one.
"""
from typing import Any, Dict, Mapping

MISSING = object()


def read_path(state: Mapping[str, Any], path: str) -> Any:
    """Read a dotted field path (``"node_pos.n1.x"``) from a state.

    Returns MISSING when any segment is absent or not a mapping.
    """
    value: Any = state
    for segment in path.split('.'):
        if not isinstance(value, Mapping) or segment not in value:
            return MISSING
        value = value[segment]
    return value


def find_differences(first: Mapping[str, Any], second: Mapping[str, Any]) -> Dict[str, Any]:
    """Fields of ``second`` whose value differs from ``first``.

    Sequences compare element by element in order, nested mappings
    recursively. Keys only present in ``first`` are reported with value
    MISSING so callers can see removals.
    """
    updates: Dict[str, Any] = {}

    for key, second_val in second.items():
        first_val = first.get(key, MISSING)
        if isinstance(first_val, Mapping) and isinstance(second_val, Mapping):
            if find_differences(first_val, second_val):
                updates[key] = second_val
        elif first_val is MISSING or first_val != second_val:
            updates[key] = second_val

    for key in first:
        if key not in second:
            updates[key] = MISSING

    return updates
