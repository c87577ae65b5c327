"""
Persistence bridge: best-effort forwarding of state snapshots to a document sink.

Each push estimates the encoded size of the sink document it would produce
and skips the write when that exceeds the configured threshold. Pushes are
dispatched without blocking the interaction flow; their failures are logged
and never affect the local history.
"""
import asyncio
import concurrent.futures
import datetime
from enum import Enum
import itertools
import json
import logging
import os
from pathlib import Path
import time
from typing import Any, Dict, Mapping, Optional, Protocol, Set, Union

from trailstate.config import ProvenanceConfig
from trailstate.selection import sorted_ids

logger = logging.getLogger(__name__)

OBJECT_OVERHEAD = 32
NUMBER_SIZE = 8
DOCUMENT_NAME_OVERHEAD = 16


def encoded_length(text: str) -> int:
    """UTF-8 byte length of text."""
    return len(text.encode('utf-8', errors='surrogatepass'))


def estimate_value_size(value: Any) -> int:
    """Estimate the stored size of a value in a document store.

    Numbers and datetimes cost 8, booleans and None 1, strings their UTF-8
    length plus one, sequences the sum of their elements and mappings the sum
    of (key length + 1 + value) plus a fixed per-object overhead.
    """
    if value is None or isinstance(value, bool):
        return 1
    if isinstance(value, (int, float)):
        return NUMBER_SIZE
    if isinstance(value, str):
        return encoded_length(value) + 1
    if isinstance(value, (datetime.datetime, datetime.date)):
        return NUMBER_SIZE
    if isinstance(value, Mapping):
        size = 0
        for key, item in value.items():
            size += encoded_length(str(key)) + 1
            size += estimate_value_size(item)
        return size + OBJECT_OVERHEAD
    if isinstance(value, (list, tuple, set, frozenset)):
        return sum(estimate_value_size(item) for item in value)
    raise TypeError(f"Cannot estimate stored size of {type(value).__name__}")


def estimate_document_size(collection_name: str, doc_id: Union[str, int], record: Optional[Mapping[str, Any]]) -> int:
    """Estimated size of a whole document, including its name."""
    name_size = encoded_length(collection_name) + DOCUMENT_NAME_OVERHEAD
    if isinstance(doc_id, str):
        name_size += encoded_length(doc_id) + 1
    else:
        name_size += NUMBER_SIZE
    return name_size + (estimate_value_size(record) if record is not None else 0)


def to_jsonable(value: Any) -> Any:
    """Convert a state value to plain JSON types (sets become sorted lists)."""
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted_ids(to_jsonable(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    return value


class PersistenceSink(Protocol):
    """Document store the bridge writes to.

    ``write(..., merge=True)`` appends list fields of record to the stored
    document (array union) and overwrites the other fields;
    ``merge=False`` replaces the document.
    """

    async def get(self, sink_id: str) -> Optional[Dict[str, Any]]: ...

    async def write(self, sink_id: str, record: Dict[str, Any], merge: bool) -> None: ...


def merge_record(existing: Optional[Dict[str, Any]], record: Dict[str, Any]) -> Dict[str, Any]:
    """Array-union merge used by the shipped sinks."""
    merged = dict(existing or {})
    for key, value in record.items():
        if isinstance(value, list) and isinstance(merged.get(key), list):
            current = list(merged[key])
            current.extend(item for item in value if item not in current)
            merged[key] = current
        else:
            merged[key] = value
    return merged


class InMemorySink:
    """Sink keeping documents in a dict. Useful for tests and offline sessions."""

    def __init__(self):
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.write_count = 0

    async def get(self, sink_id: str) -> Optional[Dict[str, Any]]:
        document = self.documents.get(sink_id)
        return json.loads(json.dumps(document)) if document is not None else None

    async def write(self, sink_id: str, record: Dict[str, Any], merge: bool) -> None:
        self.write_count += 1
        if merge:
            self.documents[sink_id] = merge_record(self.documents.get(sink_id), record)
        else:
            self.documents[sink_id] = dict(record)


class JsonFileSink:
    """Sink storing one JSON document per sink id inside a directory."""

    def __init__(self, directory: Union[str, os.PathLike]):
        self.directory = Path(directory)

    def _path(self, sink_id: str) -> Path:
        return self.directory / f"{sink_id}.json"

    def _read(self, sink_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(sink_id)
        if not path.exists():
            return None
        with open(path, 'r') as f:
            return json.load(f)

    def _write(self, sink_id: str, record: Dict[str, Any], merge: bool) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        document = merge_record(self._read(sink_id), record) if merge else record
        with open(self._path(sink_id), 'w') as f:
            json.dump(document, f, indent=2)

    async def get(self, sink_id: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._read, sink_id)

    async def write(self, sink_id: str, record: Dict[str, Any], merge: bool) -> None:
        await asyncio.to_thread(self._write, sink_id, record, merge)


class PushResult(Enum):
    CREATED = "created"
    APPENDED = "appended"
    SKIPPED_OVERSIZE = "skipped_oversize"
    SKIPPED_EVENT = "skipped_event"
    DISABLED = "disabled"


class PersistenceBridge:
    """Forwards snapshots to a PersistenceSink without blocking the caller.

    dispatch() is the fire-and-forget entry point used after every history
    mutation; push_snapshot() is the awaitable unit of work behind it.
    """

    def __init__(self, sink: PersistenceSink, config: Optional[ProvenanceConfig] = None):
        self.sink = sink
        self.config = config or ProvenanceConfig()
        self._pending: Set[Union[asyncio.Task, concurrent.futures.Future]] = set()
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self._sequence = itertools.count()

    async def push_snapshot(self, state: Mapping[str, Any], is_initial: bool, sink_id: str) -> PushResult:
        """Create or append to the sink record for sink_id.

        Oversized documents are skipped with a warning instead of raising.
        Sink errors propagate to the awaiting caller.
        """
        if not self.config.persistence_enabled:
            return PushResult.DISABLED

        event = state.get('event')
        if event in self.config.skip_events:
            logger.debug(f"PERSIST: Skipping '{event}' snapshot for {sink_id}")
            return PushResult.SKIPPED_EVENT

        snapshot = to_jsonable(state)
        # Stamped so revisiting an earlier state still appends to the record
        snapshot['pushed_at'] = time.time()
        snapshot['push_seq'] = next(self._sequence)
        existing = await self.sink.get(sink_id)
        create = is_initial or existing is None

        stamp = datetime.datetime.now().isoformat()
        if create:
            record = {'initial_setup': stamp, 'snapshots': [snapshot]}
            projected = record
        else:
            record = {'updated': stamp, 'snapshots': [snapshot]}
            projected = merge_record(existing, record)

        size = estimate_document_size(self.config.collection_name, sink_id, projected)
        if size > self.config.size_threshold:
            logger.warning(
                f"PERSIST: Record for {sink_id} would be ~{size} bytes "
                f"(threshold {self.config.size_threshold}, cap {self.config.document_cap}); skipping write"
            )
            return PushResult.SKIPPED_OVERSIZE

        await self.sink.write(sink_id, record, merge=not create)
        logger.debug(f"PERSIST: {'Created' if create else 'Appended to'} {sink_id} (~{size} bytes)")
        return PushResult.CREATED if create else PushResult.APPENDED

    def dispatch(self, state: Mapping[str, Any], is_initial: bool, sink_id: str
                 ) -> Union[asyncio.Task, concurrent.futures.Future]:
        """Schedule push_snapshot and return immediately.

        Runs as a task on the running event loop, or on a background worker
        thread with its own loop when called from synchronous code.
        """
        # Detach from the caller's snapshot before suspending
        state = to_jsonable(state)
        coro = self.push_snapshot(state, is_initial, sink_id)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            pending = loop.create_task(coro)
        else:
            if self._executor is None:
                self._executor = concurrent.futures.ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix='trailstate-persist'
                )
            pending = self._executor.submit(asyncio.run, coro)

        self._pending.add(pending)
        pending.add_done_callback(self._on_done)
        return pending

    def _on_done(self, pending: Union[asyncio.Task, concurrent.futures.Future]) -> None:
        self._pending.discard(pending)
        if pending.cancelled():
            return
        error = pending.exception()
        if error is not None:
            logger.error("PERSIST: Snapshot push failed", exc_info=error)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every push dispatched so far. Failures stay logged, not raised."""
        while self._pending:
            batch = list(self._pending)
            tasks = [p for p in batch if isinstance(p, asyncio.Future)]
            futures = [asyncio.wrap_future(p) for p in batch if not isinstance(p, asyncio.Future)]
            await asyncio.gather(*tasks, *futures, return_exceptions=True)
            for p in batch:
                self._pending.discard(p)

    def close(self) -> None:
        """Wait for background pushes started from synchronous code."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
