"""
handlers.py - Event Handler Functions

One reducer per event kind: (event, store, config) -> ProcessResult.
Each handler filters untracked assets, resolves the user and balance, and
delegates to the ledger, loan book, snapshot recorder or reconciliation.

Handlers run inside the processor's unit of work; they never commit.
"""

from __future__ import annotations
import logging
from typing import Callable, Dict

from .balances import get_or_create_balance, get_or_create_user, refresh_net_supplied
from .config import LedgerConfig
from .core import LedgerError, ProcessResult, User, Token
from .events import (
    Borrow, ChainEvent, LiquidationCall, NewBlock, Repay,
    ReserveDataUpdated, Supply, Transfer, Withdraw,
)
from .loans import create_loan, delete_loans
from .reconciliation import reconcile
from .registry import add_borrower, bootstrap_tokens, get_token
from .snapshots import update_snapshot
from .store import EntityStore

logger = logging.getLogger(__name__)


# ============================================================================
# HANDLER FUNCTIONS
# ============================================================================

def handle_borrow(event: Borrow, store: EntityStore, config: LedgerConfig) -> ProcessResult:
    """Register the borrower and open a Loan under their balance."""
    if not config.is_tracked(event.reserve):
        return ProcessResult.IGNORED

    user = get_or_create_user(store, event.on_behalf_of)
    token = get_token(store, event.reserve)
    add_borrower(store, token, user.id)

    balance = get_or_create_balance(store, user, token)
    create_loan(store, balance, event)
    return ProcessResult.APPLIED


def handle_repay(event: Repay, store: EntityStore, config: LedgerConfig) -> ProcessResult:
    """Queue a repayment for the next reconciliation."""
    if not config.is_tracked(event.reserve):
        return ProcessResult.IGNORED

    user = get_or_create_user(store, event.user)
    token = get_token(store, event.reserve)

    balance = get_or_create_balance(store, user, token)
    balance.pending_repaid += event.amount
    store.upsert(balance)

    update_snapshot(store, balance, event, config.snapshot_interval)
    return ProcessResult.APPLIED


def handle_supply(event: Supply, store: EntityStore, config: LedgerConfig) -> ProcessResult:
    """Queue a deposit for the next reconciliation."""
    if not config.is_tracked(event.reserve):
        return ProcessResult.IGNORED

    user = get_or_create_user(store, event.on_behalf_of)
    token = get_token(store, event.reserve)

    balance = get_or_create_balance(store, user, token)
    balance.pending_supplied += event.amount
    store.upsert(balance)
    return ProcessResult.APPLIED


def handle_withdraw(event: Withdraw, store: EntityStore, config: LedgerConfig) -> ProcessResult:
    """Queue a withdrawal for the next reconciliation."""
    if not config.is_tracked(event.reserve):
        return ProcessResult.IGNORED

    user = get_or_create_user(store, event.user)
    token = get_token(store, event.reserve)

    balance = get_or_create_balance(store, user, token)
    balance.pending_withdrawn += event.amount
    store.upsert(balance)
    return ProcessResult.APPLIED


def handle_liquidation_call(
    event: LiquidationCall,
    store: EntityStore,
    config: LedgerConfig,
) -> ProcessResult:
    """
    Apply a liquidation to whichever of its two assets are tracked.

    Collateral side: the seized amount leaves total_supplied.
    Debt side: the debt is cleared and every loan of the balance is deleted.
    """
    collateral_tracked = config.is_tracked(event.collateral_asset)
    debt_tracked = config.is_tracked(event.debt_asset)
    if not collateral_tracked and not debt_tracked:
        return ProcessResult.IGNORED

    user = get_or_create_user(store, event.user)

    if collateral_tracked:
        token = get_token(store, event.collateral_asset)
        balance = get_or_create_balance(store, user, token)
        balance.total_supplied -= event.liquidated_collateral_amount
        refresh_net_supplied(balance)
        balance.timestamp = event.timestamp
        balance.block_number = event.block_number
        store.upsert(balance)
        update_snapshot(store, balance, event, config.snapshot_interval)

    if debt_tracked:
        token = get_token(store, event.debt_asset)
        balance = get_or_create_balance(store, user, token)
        balance.total_borrowed = 0
        balance.accrued_interest = 0
        refresh_net_supplied(balance)
        removed = delete_loans(store, balance)
        balance.timestamp = event.timestamp
        balance.block_number = event.block_number
        store.upsert(balance)
        update_snapshot(store, balance, event, config.snapshot_interval)
        logger.info("Liquidated %s: removed %d loans", balance.id, removed)

    return ProcessResult.APPLIED


def handle_reserve_data_updated(
    event: ReserveDataUpdated,
    store: EntityStore,
    config: LedgerConfig,
) -> ProcessResult:
    """Reconcile the transaction sender's balance against the new reserve data."""
    if not config.is_tracked(event.reserve):
        return ProcessResult.IGNORED
    if event.sender is None:
        raise LedgerError(
            f"ReserveDataUpdated in tx {event.tx_hash} has no transaction sender"
        )

    user = get_or_create_user(store, event.sender)
    token = get_token(store, event.reserve)
    balance = get_or_create_balance(store, user, token)

    reconcile(store, balance, event, config)
    return ProcessResult.APPLIED


def _move_supplied(
    store: EntityStore,
    user: User,
    token: Token,
    delta: int,
    event: ChainEvent,
    config: LedgerConfig,
) -> None:
    balance = get_or_create_balance(store, user, token)
    balance.total_supplied += delta
    refresh_net_supplied(balance)
    balance.timestamp = event.timestamp
    balance.block_number = event.block_number
    store.upsert(balance)
    update_snapshot(store, balance, event, config.snapshot_interval)


def handle_transfer(event: Transfer, store: EntityStore, config: LedgerConfig) -> ProcessResult:
    """
    Move supplied position between two users on an aToken transfer.

    Mints and burns (either party is the null address) are already covered
    by Supply and Withdraw and are ignored.
    """
    asset = config.asset_for_a_token(event.token)
    if asset is None:
        return ProcessResult.IGNORED
    if config.is_null(event.source) or config.is_null(event.dest):
        return ProcessResult.IGNORED

    user_from = get_or_create_user(store, event.source)
    user_to = get_or_create_user(store, event.dest)
    token = get_token(store, asset.address)

    _move_supplied(store, user_from, token, -event.value, event, config)
    _move_supplied(store, user_to, token, event.value, event, config)
    return ProcessResult.APPLIED


def handle_new_block(event: NewBlock, store: EntityStore, config: LedgerConfig) -> ProcessResult:
    """Bootstrap tracked tokens (idempotent)."""
    created = bootstrap_tokens(store, config)
    return ProcessResult.APPLIED if created else ProcessResult.IGNORED


# ============================================================================
# HANDLER REGISTRY
# ============================================================================

EventHandler = Callable[[object, EntityStore, LedgerConfig], ProcessResult]

# Map event types to handler functions
DEFAULT_HANDLERS: Dict[type, EventHandler] = {
    Borrow: handle_borrow,
    Repay: handle_repay,
    Supply: handle_supply,
    Withdraw: handle_withdraw,
    LiquidationCall: handle_liquidation_call,
    ReserveDataUpdated: handle_reserve_data_updated,
    Transfer: handle_transfer,
    NewBlock: handle_new_block,
}
