"""
store.py - Entity Store Protocol and In-Memory Unit of Work

The EntityStore protocol is the only way handlers read and write ledger
records. InMemoryStore is the reference implementation: a dict of typed
records per kind with per-event transactions.

Key properties of InMemoryStore:
    - Records are copied on load and on upsert, so a handler's in-place
      mutations reach the store only through upsert()
    - transaction() journals the prior value of every key written and
      restores them if the block raises (all writes of an event commit
      together or not at all)
    - load_children() returns children in insertion order
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Protocol, Set, Tuple, runtime_checkable
import copy

from .core import LedgerError


# Sentinel for "key did not exist" in the rollback journal.
_ABSENT = object()


# ============================================================================
# PROTOCOL
# ============================================================================

@runtime_checkable
class EntityStore(Protocol):
    """
    Key-value store of typed records addressed by string ids.

    Records expose KIND (their namespace), id, and for child records
    PARENT_FIELD naming the attribute that holds the parent id.
    """

    def load(self, kind: str, record_id: str) -> Optional[Any]:
        """Return a copy of the record, or None if absent."""
        ...

    def upsert(self, record: Any) -> None:
        """Insert or replace the record under (record.KIND, record.id)."""
        ...

    def delete(self, kind: str, record_id: str) -> bool:
        """Remove a record. Returns True if it existed."""
        ...

    def load_children(self, kind: str, parent_id: str) -> List[Any]:
        """Return copies of all records of ``kind`` whose parent is ``parent_id``."""
        ...

    def all(self, kind: str) -> List[Any]:
        """Return copies of every record of ``kind``."""
        ...

    def transaction(self):
        """Context manager committing all writes together or none."""
        ...


# ============================================================================
# IN-MEMORY IMPLEMENTATION
# ============================================================================

class InMemoryStore:
    """
    Dict-backed EntityStore with journaled rollback.

    Thread Safety:
        Not thread-safe. Events must be applied one at a time.

    Example:
        store = InMemoryStore()
        with store.transaction():
            store.upsert(User(id="0xabc..."))
    """

    def __init__(self):
        self._records: Dict[str, Dict[str, Any]] = {}
        self._journal: Optional[Dict[Tuple[str, str], Any]] = None
        # Kinds whose bucket was created inside the open transaction.
        self._new_kinds: Set[str] = set()
        self._depth = 0
        self.commits = 0
        self.rollbacks = 0

    # ========================================================================
    # READS
    # ========================================================================

    def load(self, kind: str, record_id: str) -> Optional[Any]:
        record = self._records.get(kind, {}).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def load_children(self, kind: str, parent_id: str) -> List[Any]:
        children = []
        for record in self._records.get(kind, {}).values():
            parent_field = type(record).PARENT_FIELD
            if parent_field is None:
                raise LedgerError(f"{kind} records have no parent field")
            if getattr(record, parent_field) == parent_id:
                children.append(copy.deepcopy(record))
        return children

    def all(self, kind: str) -> List[Any]:
        return [copy.deepcopy(r) for r in self._records.get(kind, {}).values()]

    def count(self, kind: str) -> int:
        return len(self._records.get(kind, {}))

    def dump(self) -> Dict[str, Dict[str, Any]]:
        """Deep copy of every record, keyed by kind then id."""
        return copy.deepcopy(self._records)

    # ========================================================================
    # WRITES
    # ========================================================================

    def upsert(self, record: Any) -> None:
        kind = record.KIND
        self._remember(kind, record.id)
        if self._journal is not None and kind not in self._records:
            self._new_kinds.add(kind)
        self._records.setdefault(kind, {})[record.id] = copy.deepcopy(record)

    def delete(self, kind: str, record_id: str) -> bool:
        bucket = self._records.get(kind, {})
        if record_id not in bucket:
            return False
        self._remember(kind, record_id)
        del bucket[record_id]
        return True

    # ========================================================================
    # UNIT OF WORK
    # ========================================================================

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator["InMemoryStore"]:
        """
        Group writes so they commit together.

        Nested calls join the outermost transaction; only the outermost
        block commits or rolls back.
        """
        outermost = self._depth == 0
        if outermost:
            self._journal = {}
            self._new_kinds = set()
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            if outermost:
                self._rollback()
            raise
        else:
            self._depth -= 1
            if outermost:
                self._journal = None
                self.commits += 1

    def _remember(self, kind: str, record_id: str) -> None:
        if self._journal is None:
            return
        key = (kind, record_id)
        if key not in self._journal:
            # Stored objects are never mutated in place, so no copy is needed.
            self._journal[key] = self._records.get(kind, {}).get(record_id, _ABSENT)

    def _rollback(self) -> None:
        journal, self._journal = self._journal or {}, None
        for (kind, record_id), previous in journal.items():
            bucket = self._records.setdefault(kind, {})
            if previous is _ABSENT:
                bucket.pop(record_id, None)
            else:
                bucket[record_id] = previous
        for kind in self._new_kinds:
            if not self._records.get(kind):
                self._records.pop(kind, None)
        self._new_kinds = set()
        self.rollbacks += 1
