"""
processor.py - Event Processor

Feeds events one at a time through their handlers, each inside its own
unit of work.

Processing order for every event:
1. Bootstrap tracked tokens (first event only)
2. Open a store transaction
3. Ordering guard: compare the event's (block, log index) with the cursor of
   every tracked reserve it touches
4. Run the handler registered for the event type
5. Advance the reserve cursors and commit

Any exception rolls the whole event back and propagates to the host.
"""

from __future__ import annotations
from collections import Counter
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .config import LedgerConfig, default_config
from .core import KIND_RESERVE_CURSOR, LedgerError, OutOfOrderEvent, ProcessResult, ReserveCursor
from .events import ChainEvent, Transfer
from .handlers import DEFAULT_HANDLERS, EventHandler
from .registry import bootstrap_tokens
from .store import EntityStore

logger = logging.getLogger(__name__)


class EventProcessor:
    """
    Sequential, transactional event reducer over an EntityStore.

    Features:
    - Handler registry keyed by event type
    - Idempotent token bootstrap before the first event
    - Per-reserve ordering guard with re-delivery detection
    - All-or-nothing application of each event

    Thread Safety:
        Not thread-safe. A host ingesting in parallel must serialize events
        per (user, token).
    """

    def __init__(
        self,
        store: EntityStore,
        config: Optional[LedgerConfig] = None,
        handlers: Optional[Dict[type, EventHandler]] = None,
    ):
        """
        Initialize the processor.

        Args:
            store: Entity store to read and write
            config: Ledger configuration (built-in reserves if not provided)
            handlers: Event type -> handler (DEFAULT_HANDLERS if not provided)
        """
        self.store = store
        self.config = config or default_config()
        self.handlers: Dict[type, EventHandler] = dict(handlers or DEFAULT_HANDLERS)
        self.stats: Counter = Counter()
        self._bootstrapped = False

    def register(self, event_type: type, handler: EventHandler) -> None:
        """Register (or replace) the handler for an event type."""
        self.handlers[event_type] = handler

    def bootstrap(self) -> int:
        """Create Token records for all tracked assets. Returns the number created."""
        with self.store.transaction():
            created = bootstrap_tokens(self.store, self.config)
        self._bootstrapped = True
        return created

    def process(self, event: object) -> ProcessResult:
        """
        Apply a single event.

        Returns:
            ProcessResult.APPLIED if state changed and was committed
            ProcessResult.IGNORED if the event touched no tracked asset
            ProcessResult.DUPLICATE if the event was already applied

        Raises:
            LedgerError: If no handler is registered for the event type
            OutOfOrderEvent: If the event is behind a reserve's cursor
            MissingRecord: If a record the handler requires is absent
        """
        handler = self.handlers.get(type(event))
        if handler is None:
            raise LedgerError(f"No handler registered for {type(event).__name__}")

        if not self._bootstrapped:
            self.bootstrap()

        with self.store.transaction():
            reserves: Tuple[str, ...] = ()
            if isinstance(event, ChainEvent) and self.config.enforce_ordering:
                reserves = self._tracked_reserves(event)
                if reserves and self._is_redelivery(event, reserves):
                    logger.warning(
                        "Skipping re-delivered %s at block %d log %d (tx %s)",
                        type(event).__name__, event.block_number, event.log_index, event.tx_hash,
                    )
                    self.stats[ProcessResult.DUPLICATE] += 1
                    return ProcessResult.DUPLICATE

            result = handler(event, self.store, self.config)

            if result is ProcessResult.APPLIED:
                for reserve in reserves:
                    self.store.upsert(ReserveCursor(
                        id=reserve,
                        block_number=event.block_number,
                        log_index=event.log_index,
                        tx_hash=event.tx_hash,
                        event_type=type(event).__name__,
                    ))

        self.stats[result] += 1
        logger.debug("%s -> %s", type(event).__name__, result.value)
        return result

    def process_many(self, events: Iterable[object]) -> List[ProcessResult]:
        """Apply events in order, stopping at the first failure."""
        return [self.process(event) for event in events]

    # ========================================================================
    # ORDERING GUARD
    # ========================================================================

    def _tracked_reserves(self, event: ChainEvent) -> Tuple[str, ...]:
        """Tracked reserve addresses an event refers to."""
        if isinstance(event, Transfer):
            asset = self.config.asset_for_a_token(event.token)
            return (asset.address,) if asset is not None else ()
        reserves = []
        for address in event.assets():
            if self.config.is_tracked(address) and address not in reserves:
                reserves.append(address)
        return tuple(reserves)

    def _is_redelivery(self, event: ChainEvent, reserves: Tuple[str, ...]) -> bool:
        """
        Compare the event with each reserve cursor.

        Returns True only if the event is the one most recently applied to
        every reserve it touches: same position, transaction and event type.

        Raises:
            OutOfOrderEvent: If the event precedes a cursor, or shares a
                cursor's position under a different transaction or type
        """
        event_type = type(event).__name__
        duplicates = 0
        for reserve in reserves:
            cursor = self.store.load(KIND_RESERVE_CURSOR, reserve)
            if cursor is None or event.position > cursor.position:
                continue
            if (event.position == cursor.position and event.tx_hash == cursor.tx_hash
                    and event_type == cursor.event_type):
                duplicates += 1
                continue
            raise OutOfOrderEvent(
                f"{type(event).__name__} at block {event.block_number} log {event.log_index} "
                f"precedes reserve {reserve} cursor at block {cursor.block_number} "
                f"log {cursor.log_index}"
            )
        return duplicates == len(reserves)
