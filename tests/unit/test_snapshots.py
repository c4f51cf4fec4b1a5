"""
test_snapshots.py - Unit tests for hourly balance snapshots

Tests:
- Hour bucketing
- One snapshot per (balance, hour), last write wins
- Series queries with bounds
- Point-in-time lookup
"""

from lending_ledger import hour_bucket, snapshot_at, snapshot_series, update_snapshot

from tests.factories import ALICE, T0, fresh_balance


class TestHourBucket:
    """Tests for hour_bucket."""

    def test_aligned(self):
        assert hour_bucket(T0) == T0

    def test_floors_within_hour(self):
        assert hour_bucket(T0 + 3599) == T0
        assert hour_bucket(T0 + 3600) == T0 + 3600

    def test_custom_width(self):
        assert hour_bucket(125, width=60) == 120


class TestUpdateSnapshot:
    """Tests for update_snapshot."""

    def test_copies_balance_state(self, store, events):
        balance = fresh_balance(store, ALICE)
        balance.total_supplied = 1_000
        balance.total_borrowed = 200
        balance.accrued_interest = 10
        balance.net_supplied = 790
        balance.timestamp = events.timestamp

        event = events.repay(ALICE, 1)
        snapshot = update_snapshot(store, balance, event)

        assert snapshot.id == f"{balance.id}-{T0}"
        assert snapshot.hour == T0
        assert snapshot.total_supplied == 1_000
        assert snapshot.total_borrowed == 200
        assert snapshot.accrued_interest == 10
        assert snapshot.net_supplied == 790
        assert snapshot.block_number == event.block_number
        assert store.load("Snapshot", snapshot.id) == snapshot

    def test_same_hour_overwrites(self, store, events):
        balance = fresh_balance(store, ALICE)
        balance.total_supplied = 1
        update_snapshot(store, balance, events.repay(ALICE, 1))

        events.advance(seconds=1800)
        balance.total_supplied = 2
        update_snapshot(store, balance, events.repay(ALICE, 1))

        series = snapshot_series(store, balance.id)
        assert len(series) == 1
        assert series[0].total_supplied == 2

    def test_new_hour_new_snapshot(self, store, events):
        balance = fresh_balance(store, ALICE)
        update_snapshot(store, balance, events.repay(ALICE, 1))
        events.advance(seconds=3600)
        update_snapshot(store, balance, events.repay(ALICE, 1))
        assert [s.hour for s in snapshot_series(store, balance.id)] == [T0, T0 + 3600]


class TestSnapshotQueries:
    """Tests for snapshot_series and snapshot_at."""

    def _three_hours(self, store, events):
        balance = fresh_balance(store, ALICE)
        for supplied in (10, 20, 30):
            balance.total_supplied = supplied
            update_snapshot(store, balance, events.repay(ALICE, 1))
            events.advance(seconds=3600)
        return balance

    def test_series_bounds(self, store, events):
        balance = self._three_hours(store, events)
        series = snapshot_series(store, balance.id, start=T0 + 3600, end=T0 + 7200)
        assert [s.total_supplied for s in series] == [20]

    def test_series_unknown_balance(self, store):
        assert snapshot_series(store, "nobody") == []

    def test_at_returns_latest_before(self, store, events):
        balance = self._three_hours(store, events)
        assert snapshot_at(store, balance.id, T0 + 5000).total_supplied == 20
        assert snapshot_at(store, balance.id, T0 + 10 ** 6).total_supplied == 30

    def test_at_before_first(self, store, events):
        balance = self._three_hours(store, events)
        assert snapshot_at(store, balance.id, T0 - 1) is None
