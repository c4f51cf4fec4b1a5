"""
snapshots.py - Snapshot Recorder

Hourly copies of a balance's committed state for historical queries.
One snapshot per (balance, hour bucket); later writes within the same hour
overwrite earlier ones.
"""

from __future__ import annotations
from typing import List, Optional

from .core import KIND_SNAPSHOT, SECONDS_IN_HOUR, Balance, Snapshot, snapshot_id
from .events import ChainEvent
from .store import EntityStore


def hour_bucket(timestamp: int, width: int = SECONDS_IN_HOUR) -> int:
    """Start of the ``width``-second window containing ``timestamp``."""
    return timestamp // width * width


def update_snapshot(
    store: EntityStore,
    balance: Balance,
    event: ChainEvent,
    width: int = SECONDS_IN_HOUR,
) -> Snapshot:
    """Upsert the snapshot of ``balance`` for the hour of ``event``."""
    hour = hour_bucket(event.timestamp, width)
    key = snapshot_id(balance.id, hour)
    snapshot = store.load(KIND_SNAPSHOT, key)
    if snapshot is None:
        snapshot = Snapshot(id=key, balance=balance.id, hour=hour)

    snapshot.total_supplied = balance.total_supplied
    snapshot.total_borrowed = balance.total_borrowed
    snapshot.accrued_interest = balance.accrued_interest
    snapshot.net_supplied = balance.net_supplied
    snapshot.timestamp = balance.timestamp
    snapshot.block_number = event.block_number

    store.upsert(snapshot)
    return snapshot


def snapshot_series(
    store: EntityStore,
    balance_id: str,
    start: Optional[int] = None,
    end: Optional[int] = None,
) -> List[Snapshot]:
    """
    Snapshots of a balance ordered by hour.

    Args:
        store: Entity store
        balance_id: Balance id ("<user>-<token>")
        start: Inclusive lower bound on the hour bucket
        end: Exclusive upper bound on the hour bucket

    Returns:
        Snapshots whose hour lies in [start, end)
    """
    snapshots = [
        s for s in store.load_children(KIND_SNAPSHOT, balance_id)
        if (start is None or s.hour >= start) and (end is None or s.hour < end)
    ]
    snapshots.sort(key=lambda s: s.hour)
    return snapshots


def snapshot_at(store: EntityStore, balance_id: str, timestamp: int) -> Optional[Snapshot]:
    """
    Latest snapshot of a balance whose hour bucket starts at or before ``timestamp``.

    Returns None if the balance had no snapshot by then.
    """
    latest = None
    for snapshot in snapshot_series(store, balance_id):
        if snapshot.hour > timestamp:
            break
        latest = snapshot
    return latest
