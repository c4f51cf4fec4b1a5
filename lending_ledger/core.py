"""
Core types and pure functions for the lending ledger.

This module provides the foundational data structures for the ledger:
1. Constants: fixed-point scales, borrow types, the null address
2. Exceptions: LedgerError and domain-specific error types
3. Entity records: Token, User, Balance, Loan, Snapshot, ReserveCursor
4. Enums: ProcessResult
5. Pure helpers: address canonicalization, net-supplied arithmetic

All amounts are raw integer fixed-point values as emitted on-chain.
Floating point never enters the accounting path.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, List, Optional, Union

from eth_utils import encode_hex, is_address, is_hex, to_normalized_address


# ============================================================================
# CONSTANTS
# ============================================================================

# Fixed-point scale of interest rates and liquidity indexes (27 decimals).
RAY = 10 ** 27

SECONDS_IN_YEAR = 31_536_000

# Width of a snapshot bucket in seconds.
SECONDS_IN_HOUR = 3600

# Mint and burn counterparty for aToken transfers.
NULL_ADDRESS = "0x0000000000000000000000000000000000000000"

# Interest rate modes as emitted by the pool (integers, not enum, to match the wire).
BORROW_TYPE_STABLE = 1
BORROW_TYPE_VARIABLE = 2

# Entity kind names used as store namespaces.
KIND_TOKEN = "Token"
KIND_USER = "User"
KIND_BALANCE = "Balance"
KIND_LOAN = "Loan"
KIND_SNAPSHOT = "Snapshot"
KIND_RESERVE_CURSOR = "ReserveCursor"


# Raw address or hash as delivered by an event source.
AddressLike = Union[str, bytes]


# ============================================================================
# ENUMS
# ============================================================================

class ProcessResult(Enum):
    """
    Outcome of feeding one event to the processor.

    APPLIED: The event mutated ledger state and was committed.
    IGNORED: The event referenced no tracked asset (or a mint/burn transfer).
    DUPLICATE: The event was already applied for its reserve (re-delivery).
    """
    APPLIED = "applied"
    IGNORED = "ignored"
    DUPLICATE = "duplicate"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class MissingRecord(LedgerError):
    """Raised when a record expected to pre-exist is absent from the store."""
    pass


class TokenNotRegistered(MissingRecord):
    """Raised when an event references a tracked asset that was never bootstrapped."""
    pass


class BalanceNotFound(MissingRecord):
    """Raised by strict balance lookups when no balance exists for the pair."""
    pass


class OutOfOrderEvent(LedgerError):
    """Raised when an event for a reserve arrives behind an already applied one."""
    pass


class ConfigError(LedgerError, ValueError):
    """Raised when the ledger configuration is invalid."""
    pass


# ============================================================================
# ENTITY RECORDS
# ============================================================================
#
# Records are mutable: handlers load them from the store, mutate them in place
# and upsert them back inside the event's unit of work. Each record class names
# its store namespace in KIND and, for child records, the field holding the
# parent id in PARENT_FIELD.

@dataclass(slots=True)
class Token:
    """
    A tracked reserve asset.

    Attributes:
        id: Canonical asset address
        symbol: Ticker (e.g. "USDC")
        name: Display name
        decimals: Decimal precision of raw amounts
        a_token: Address of the yield-bearing representative token
        borrowers: Ids of users that ever borrowed the asset, first-borrow order
    """
    KIND: ClassVar[str] = KIND_TOKEN
    PARENT_FIELD: ClassVar[Optional[str]] = None

    id: str
    symbol: str
    name: str
    decimals: int
    a_token: Optional[str] = None
    borrowers: List[str] = field(default_factory=list)


@dataclass(slots=True)
class User:
    """A wallet that interacted with at least one tracked asset."""
    KIND: ClassVar[str] = KIND_USER
    PARENT_FIELD: ClassVar[Optional[str]] = None

    id: str


@dataclass(slots=True)
class Balance:
    """
    One user's position in one tracked asset.

    Committed totals change only through reconciliation, liquidation and
    aToken transfers. Pending fields collect Supply/Withdraw/Repay deltas until
    the next ReserveDataUpdated event for the reserve folds them in.

    net_supplied is derived: total_supplied - (total_borrowed + accrued_interest).
    It is written only by balances.refresh_net_supplied().
    """
    KIND: ClassVar[str] = KIND_BALANCE
    PARENT_FIELD: ClassVar[Optional[str]] = "user"

    id: str
    user: str
    token: str
    total_supplied: int = 0
    total_borrowed: int = 0
    accrued_interest: int = 0
    pending_supplied: int = 0
    pending_withdrawn: int = 0
    pending_repaid: int = 0
    net_supplied: int = 0
    liquidity_index: int = 0
    timestamp: int = 0
    block_number: int = 0


@dataclass(slots=True)
class Loan:
    """
    Outstanding principal and interest of a single borrow event.

    timestamp is the accrual anchor: interest for the next reconciliation is
    computed from it and it advances each time interest is accrued.
    created_at keeps the origination time.
    """
    KIND: ClassVar[str] = KIND_LOAN
    PARENT_FIELD: ClassVar[Optional[str]] = "balance"

    id: str
    balance: str
    amount: int
    borrow_rate: int
    borrow_type: int
    accrued_interest: int = 0
    is_liquidated: bool = False
    timestamp: int = 0
    block_number: int = 0
    created_at: int = 0


@dataclass(slots=True)
class Snapshot:
    """State of a balance as last written during one hour bucket."""
    KIND: ClassVar[str] = KIND_SNAPSHOT
    PARENT_FIELD: ClassVar[Optional[str]] = "balance"

    id: str
    balance: str
    hour: int
    total_supplied: int = 0
    total_borrowed: int = 0
    accrued_interest: int = 0
    net_supplied: int = 0
    timestamp: int = 0
    block_number: int = 0


@dataclass(slots=True)
class ReserveCursor:
    """Position (block, log index), transaction and type of the last event applied for a reserve."""
    KIND: ClassVar[str] = KIND_RESERVE_CURSOR
    PARENT_FIELD: ClassVar[Optional[str]] = None

    id: str
    block_number: int
    log_index: int
    tx_hash: str
    event_type: str = ""

    @property
    def position(self) -> tuple:
        return (self.block_number, self.log_index)


# ============================================================================
# PURE HELPERS
# ============================================================================

def canonical_address(value: AddressLike) -> str:
    """
    Canonicalize an address to the lowercase 0x-prefixed form used as entity id.

    Accepts a 20-byte value or any hex string form (checksummed or not).

    Raises:
        ValueError: If the value is not a 20-byte address
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise ValueError(f"Address must be 20 bytes, got {len(value)}")
        value = encode_hex(bytes(value))
    if not isinstance(value, str) or not is_address(value.lower()):
        raise ValueError(f"Invalid address: {value!r}")
    return to_normalized_address(value)


def canonical_hash(value: AddressLike) -> str:
    """Canonicalize a transaction hash to lowercase 0x-prefixed hex."""
    if isinstance(value, (bytes, bytearray)):
        return encode_hex(bytes(value))
    if not isinstance(value, str) or not value or not is_hex(value):
        raise ValueError(f"Invalid transaction hash: {value!r}")
    value = value.lower()
    return value if value.startswith("0x") else "0x" + value


def compute_net_supplied(total_supplied: int, total_borrowed: int, accrued_interest: int) -> int:
    """Net position: supplied minus debt (principal plus accrued interest)."""
    return total_supplied - (total_borrowed + accrued_interest)


def balance_id(user_id: str, token_id: str) -> str:
    return f"{user_id}-{token_id}"


def loan_id(balance_key: str, tx_hash: str) -> str:
    return f"{balance_key}-{tx_hash}"


def snapshot_id(balance_key: str, hour: int) -> str:
    return f"{balance_key}-{hour}"
