"""
Derived selection: neighbor and incident-edge sets computed from a selection.

The functions here are pure. They read a Network and never touch the
provenance history; action builders call them and capture the results.
"""
from dataclasses import dataclass
from enum import IntEnum
import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

logger = logging.getLogger(__name__)


def endpoint_id(endpoint: Any) -> str:
    """Resolve an edge endpoint to a node id.

    Endpoints are node ids in freshly loaded data, but a force simulation
    replaces them with the node records themselves.
    """
    if isinstance(endpoint, Mapping):
        return endpoint['id']
    return endpoint


def sorted_ids(ids: Iterable[Any]) -> List[Any]:
    """Sort ids, grouping by type so mixed int and str ids stay orderable."""
    return sorted(ids, key=lambda i: (type(i).__name__, i))


@dataclass(frozen=True)
class NeighborTags:
    """Neighbor node ids and incident edge ids of a selection."""
    neighbors: FrozenSet[str] = frozenset()
    edges: FrozenSet[str] = frozenset()


class Network:
    """Read-only view over graph data with an endpoint index.

    Accepts ``{"nodes": [...], "edges": [...]}`` and the ``"links"`` spelling
    for edges. Every node needs an ``id``; every edge an ``id``, ``source``
    and ``target``.
    """

    def __init__(self, nodes: Sequence[Mapping[str, Any]], edges: Sequence[Mapping[str, Any]]):
        self.nodes: Tuple[Mapping[str, Any], ...] = tuple(nodes)
        self.edges: Tuple[Mapping[str, Any], ...] = tuple(edges)
        self._nodes_by_id: Dict[str, Mapping[str, Any]] = {n['id']: n for n in self.nodes}
        # node id -> [(other endpoint, edge id)] in edge order
        self._incident: Dict[str, List[Tuple[str, str]]] = {}
        for edge in self.edges:
            source = endpoint_id(edge['source'])
            target = endpoint_id(edge['target'])
            self._incident.setdefault(source, []).append((target, edge['id']))
            if target != source:
                self._incident.setdefault(target, []).append((source, edge['id']))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Network':
        edges = data.get('edges')
        if edges is None:
            edges = data.get('links', [])
        return cls(data.get('nodes', []), edges)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes_by_id

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def node_ids(self) -> List[str]:
        return [n['id'] for n in self.nodes]

    def get_node(self, node_id: str) -> Optional[Mapping[str, Any]]:
        return self._nodes_by_id.get(node_id)

    def incident(self, node_id: str) -> List[Tuple[str, str]]:
        """(other endpoint, edge id) pairs for every edge touching node_id."""
        return self._incident.get(node_id, [])


def tag_neighbors(selected_ids: Iterable[str], network: Network, include_neighbors: bool) -> NeighborTags:
    """Compute the neighbor and incident-edge sets of a selection.

    Selected nodes that are neighbors of other selected nodes are kept in
    ``neighbors``. Returns empty sets when neighbor highlighting is off.
    """
    if not include_neighbors:
        return NeighborTags()

    neighbors: Set[str] = set()
    edges: Set[str] = set()
    for node_id in selected_ids:
        for other, edge_id in network.incident(node_id):
            neighbors.add(other)
            edges.add(edge_id)
    return NeighborTags(neighbors=frozenset(neighbors), edges=frozenset(edges))


def direct_neighbors(node: Mapping[str, Any], network: Network) -> List[str]:
    """Direct neighbor ids of a node, in edge order, without duplicates.

    A node record that already carries a ``neighbors`` list is trusted as is.
    """
    listed = node.get('neighbors')
    if listed is not None:
        return list(dict.fromkeys(listed))
    return list(dict.fromkeys(other for other, _ in network.incident(node['id'])))


class SearchOutcome(IntEnum):
    """Result of looking a node up by name."""
    NOT_FOUND = -1
    ALREADY_SELECTED = 0
    FOUND = 1


def find_node(query: str, network: Network, label_field: str = 'name') -> Optional[Mapping[str, Any]]:
    """Find the first node whose label matches query, ignoring case.

    Nodes without ``label_field`` are matched on their id.
    """
    needle = query.strip().casefold()
    if not needle:
        return None
    for node in network.nodes:
        label = node.get(label_field, node['id'])
        if str(label).casefold() == needle:
            return node
    return None


def search_for(query: str, network: Network, selected: Mapping[str, Any],
               label_field: str = 'name') -> Tuple[SearchOutcome, Optional[Mapping[str, Any]]]:
    """Classify a search against the current selection.

    An empty network is reported as NOT_FOUND like any other miss.
    """
    if len(network) == 0:
        logger.debug(f"SEARCH: {query!r} against an empty network")
        return SearchOutcome.NOT_FOUND, None
    node = find_node(query, network, label_field)
    if node is None:
        return SearchOutcome.NOT_FOUND, None
    if node['id'] in selected:
        return SearchOutcome.ALREADY_SELECTED, node
    return SearchOutcome.FOUND, node
