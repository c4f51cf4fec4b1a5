"""
lending_ledger - Lending Protocol Balance and Interest Ledger

Reduces a stream of lending-pool events into per-user, per-asset balances,
per-borrow loans with accrued interest, and hourly snapshots.

Usage:
    from lending_ledger import (
        RAY, EventProcessor, InMemoryStore, ReserveDataUpdated, Supply, default_config,
    )

    USDC = "0xaf88d065e77c8cc2239327c5edb3a432268e5831"
    ALICE = "0x" + "a1" * 20

    store = InMemoryStore()
    processor = EventProcessor(store, default_config())

    processor.process(Supply(
        block_number=1, timestamp=1_700_000_000, tx_hash="0x01", log_index=0,
        reserve=USDC, user=ALICE, on_behalf_of=ALICE, amount=1_000_000,
    ))
    processor.process(ReserveDataUpdated(
        block_number=1, timestamp=1_700_000_000, tx_hash="0x01", log_index=1,
        sender=ALICE, reserve=USDC, liquidity_rate=0,
        stable_borrow_rate=0, variable_borrow_rate=0,
        liquidity_index=RAY, variable_borrow_index=RAY,
    ))
"""

# Core types
from .core import (
    RAY,
    SECONDS_IN_YEAR,
    SECONDS_IN_HOUR,
    NULL_ADDRESS,
    BORROW_TYPE_STABLE,
    BORROW_TYPE_VARIABLE,
    ProcessResult,
    LedgerError,
    MissingRecord,
    TokenNotRegistered,
    BalanceNotFound,
    OutOfOrderEvent,
    ConfigError,
    Token,
    User,
    Balance,
    Loan,
    Snapshot,
    ReserveCursor,
    canonical_address,
    canonical_hash,
    compute_net_supplied,
)

# Configuration
from .config import (
    LedgerConfig,
    TrackedAsset,
    DEFAULT_ASSETS,
    default_config,
    load_config,
)
from .logging_setup import configure_logging

# Store
from .store import EntityStore, InMemoryStore

# Events
from .events import (
    ChainEvent,
    Borrow,
    Repay,
    Supply,
    Withdraw,
    LiquidationCall,
    ReserveDataUpdated,
    Transfer,
    NewBlock,
)

# Components
from .registry import initialize_token, bootstrap_tokens, get_token, add_borrower
from .balances import (
    get_or_create_user,
    get_or_create_balance,
    load_balance,
    balances_of,
    refresh_net_supplied,
    verify_net_supplied,
)
from .loans import (
    calculate_interest_accrual,
    create_loan,
    accrue_loan,
    load_loans,
    delete_loans,
)
from .snapshots import hour_bucket, update_snapshot, snapshot_series, snapshot_at
from .reconciliation import Allocation, ReconciliationReport, allocate_repayment, reconcile

# Dispatch
from .handlers import (
    DEFAULT_HANDLERS,
    handle_borrow,
    handle_repay,
    handle_supply,
    handle_withdraw,
    handle_liquidation_call,
    handle_reserve_data_updated,
    handle_transfer,
    handle_new_block,
)
from .processor import EventProcessor

__all__ = [
    # Core
    'RAY', 'SECONDS_IN_YEAR', 'SECONDS_IN_HOUR', 'NULL_ADDRESS',
    'BORROW_TYPE_STABLE', 'BORROW_TYPE_VARIABLE',
    'ProcessResult',
    'LedgerError', 'MissingRecord', 'TokenNotRegistered', 'BalanceNotFound',
    'OutOfOrderEvent', 'ConfigError',
    'Token', 'User', 'Balance', 'Loan', 'Snapshot', 'ReserveCursor',
    'canonical_address', 'canonical_hash', 'compute_net_supplied',
    # Configuration
    'LedgerConfig', 'TrackedAsset', 'DEFAULT_ASSETS', 'default_config', 'load_config',
    'configure_logging',
    # Store
    'EntityStore', 'InMemoryStore',
    # Events
    'ChainEvent', 'Borrow', 'Repay', 'Supply', 'Withdraw',
    'LiquidationCall', 'ReserveDataUpdated', 'Transfer', 'NewBlock',
    # Components
    'initialize_token', 'bootstrap_tokens', 'get_token', 'add_borrower',
    'get_or_create_user', 'get_or_create_balance', 'load_balance', 'balances_of',
    'refresh_net_supplied', 'verify_net_supplied',
    'calculate_interest_accrual', 'create_loan', 'accrue_loan', 'load_loans', 'delete_loans',
    'hour_bucket', 'update_snapshot', 'snapshot_series', 'snapshot_at',
    'Allocation', 'ReconciliationReport', 'allocate_repayment', 'reconcile',
    # Dispatch
    'DEFAULT_HANDLERS',
    'handle_borrow', 'handle_repay', 'handle_supply', 'handle_withdraw',
    'handle_liquidation_call', 'handle_reserve_data_updated', 'handle_transfer',
    'handle_new_block',
    'EventProcessor',
]

__version__ = '1.0.0'
