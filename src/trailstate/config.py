"""
Runtime configuration for the provenance engine.

Configuration is an immutable dataclass passed explicitly to the objects that
need it. Defaults can be overridden through environment variables.
"""
import logging
import os
from dataclasses import dataclass, field, replace
from typing import FrozenSet

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ProvenanceConfig:
    """Settings shared by the session, state graph and persistence bridge."""

    size_threshold: int = field(default_factory=lambda: _env_int('TRAILSTATE_SIZE_THRESHOLD', 750_000))
    """Estimated document size (bytes) above which a snapshot push is skipped."""

    document_cap: int = field(default_factory=lambda: _env_int('TRAILSTATE_DOCUMENT_CAP', 1_000_000))
    """Hard document size limit of the backing store. Informational; only used in log messages."""

    collection_name: str = field(default_factory=lambda: os.getenv('TRAILSTATE_COLLECTION', 'provenance'))
    """Collection the persisted records live in. Part of the document size estimate."""

    persistence_enabled: bool = field(default_factory=lambda: _env_flag('TRAILSTATE_PERSISTENCE', True))
    """When False the bridge accepts pushes and drops them."""

    skip_events: FrozenSet[str] = frozenset()
    """Event labels that are never forwarded to the sink (e.g. "Dragged Node")."""

    select_neighbors: bool = True
    """Initial value of the neighbor-highlighting toggle."""

    def with_overrides(self, **overrides) -> 'ProvenanceConfig':
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)
