"""
events.py - Typed Event Records

Immutable records of the pool and aToken events the ledger consumes.
Events are just data: decoding them from logs belongs to the event source.

Every chain event carries its provenance (block number, block timestamp,
transaction hash, log index, transaction sender). Address fields are
canonicalized to lowercase hex on construction, so handlers can use them
directly as entity ids.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import ClassVar, Optional, Tuple

from .core import AddressLike, canonical_address, canonical_hash


# ============================================================================
# BASE EVENT
# ============================================================================

@dataclass(frozen=True, slots=True, kw_only=True)
class ChainEvent:
    """
    Provenance shared by all log events.

    Sorting within a reserve: by block_number, then log_index.

    Attributes:
        block_number: Block containing the log
        timestamp: Block timestamp in seconds
        tx_hash: Hash of the emitting transaction
        log_index: Position of the log within the block
        sender: Transaction sender (tx.from), when the source provides it
    """
    # Fields holding asset addresses, used for tracking and ordering checks.
    ASSET_FIELDS: ClassVar[Tuple[str, ...]] = ()
    # Fields holding any address, canonicalized in __post_init__.
    ADDRESS_FIELDS: ClassVar[Tuple[str, ...]] = ()
    # Fields holding raw amounts, which must be non-negative integers.
    AMOUNT_FIELDS: ClassVar[Tuple[str, ...]] = ()

    block_number: int
    timestamp: int
    tx_hash: AddressLike
    log_index: int
    sender: Optional[AddressLike] = None

    def __post_init__(self):
        if self.block_number < 0:
            raise ValueError(f"block_number must be non-negative, got {self.block_number}")
        if self.timestamp < 0:
            raise ValueError(f"timestamp must be non-negative, got {self.timestamp}")
        if self.log_index < 0:
            raise ValueError(f"log_index must be non-negative, got {self.log_index}")
        object.__setattr__(self, 'tx_hash', canonical_hash(self.tx_hash))
        if self.sender is not None:
            object.__setattr__(self, 'sender', canonical_address(self.sender))
        for name in self.ADDRESS_FIELDS:
            object.__setattr__(self, name, canonical_address(getattr(self, name)))
        for name in self.AMOUNT_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValueError(f"{type(self).__name__}.{name} must be a non-negative int, got {value!r}")

    @property
    def position(self) -> Tuple[int, int]:
        return (self.block_number, self.log_index)

    def assets(self) -> Tuple[str, ...]:
        """Asset addresses this event refers to, in field order."""
        return tuple(getattr(self, name) for name in self.ASSET_FIELDS)


# ============================================================================
# POOL EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True, kw_only=True)
class Borrow(ChainEvent):
    """A borrow of ``amount`` of ``reserve`` charged to ``on_behalf_of``."""
    ASSET_FIELDS: ClassVar[Tuple[str, ...]] = ("reserve",)
    ADDRESS_FIELDS: ClassVar[Tuple[str, ...]] = ("reserve", "user", "on_behalf_of")
    AMOUNT_FIELDS: ClassVar[Tuple[str, ...]] = ("amount", "borrow_rate")

    reserve: AddressLike
    user: AddressLike
    on_behalf_of: AddressLike
    amount: int
    interest_rate_mode: int
    borrow_rate: int
    referral_code: int = 0


@dataclass(frozen=True, slots=True, kw_only=True)
class Repay(ChainEvent):
    """A repayment of ``amount`` of ``reserve`` debt owed by ``user``."""
    ASSET_FIELDS: ClassVar[Tuple[str, ...]] = ("reserve",)
    ADDRESS_FIELDS: ClassVar[Tuple[str, ...]] = ("reserve", "user", "repayer")
    AMOUNT_FIELDS: ClassVar[Tuple[str, ...]] = ("amount",)

    reserve: AddressLike
    user: AddressLike
    repayer: AddressLike
    amount: int
    use_a_tokens: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class Supply(ChainEvent):
    """A deposit of ``amount`` of ``reserve`` credited to ``on_behalf_of``."""
    ASSET_FIELDS: ClassVar[Tuple[str, ...]] = ("reserve",)
    ADDRESS_FIELDS: ClassVar[Tuple[str, ...]] = ("reserve", "user", "on_behalf_of")
    AMOUNT_FIELDS: ClassVar[Tuple[str, ...]] = ("amount",)

    reserve: AddressLike
    user: AddressLike
    on_behalf_of: AddressLike
    amount: int
    referral_code: int = 0


@dataclass(frozen=True, slots=True, kw_only=True)
class Withdraw(ChainEvent):
    """A withdrawal of ``amount`` of ``reserve`` by ``user`` sent to ``to``."""
    ASSET_FIELDS: ClassVar[Tuple[str, ...]] = ("reserve",)
    ADDRESS_FIELDS: ClassVar[Tuple[str, ...]] = ("reserve", "user", "to")
    AMOUNT_FIELDS: ClassVar[Tuple[str, ...]] = ("amount",)

    reserve: AddressLike
    user: AddressLike
    to: AddressLike
    amount: int


@dataclass(frozen=True, slots=True, kw_only=True)
class LiquidationCall(ChainEvent):
    """Liquidation of ``user``: debt in ``debt_asset`` covered by seizing ``collateral_asset``."""
    ASSET_FIELDS: ClassVar[Tuple[str, ...]] = ("collateral_asset", "debt_asset")
    ADDRESS_FIELDS: ClassVar[Tuple[str, ...]] = ("collateral_asset", "debt_asset", "user", "liquidator")
    AMOUNT_FIELDS: ClassVar[Tuple[str, ...]] = ("debt_to_cover", "liquidated_collateral_amount")

    collateral_asset: AddressLike
    debt_asset: AddressLike
    user: AddressLike
    debt_to_cover: int
    liquidated_collateral_amount: int
    liquidator: AddressLike
    receive_a_token: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class ReserveDataUpdated(ChainEvent):
    """Fresh rates and indexes for ``reserve`` (all ray-scaled)."""
    ASSET_FIELDS: ClassVar[Tuple[str, ...]] = ("reserve",)
    ADDRESS_FIELDS: ClassVar[Tuple[str, ...]] = ("reserve",)
    AMOUNT_FIELDS: ClassVar[Tuple[str, ...]] = (
        "liquidity_rate", "stable_borrow_rate", "variable_borrow_rate",
        "liquidity_index", "variable_borrow_index",
    )

    reserve: AddressLike
    liquidity_rate: int
    stable_borrow_rate: int
    variable_borrow_rate: int
    liquidity_index: int
    variable_borrow_index: int


# ============================================================================
# aTOKEN EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True, kw_only=True)
class Transfer(ChainEvent):
    """An aToken transfer of ``value`` from ``source`` to ``dest``."""
    ASSET_FIELDS: ClassVar[Tuple[str, ...]] = ("token",)
    ADDRESS_FIELDS: ClassVar[Tuple[str, ...]] = ("token", "source", "dest")
    AMOUNT_FIELDS: ClassVar[Tuple[str, ...]] = ("value",)

    token: AddressLike
    source: AddressLike
    dest: AddressLike
    value: int


# ============================================================================
# BLOCK EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class NewBlock:
    """A block observed by the host; triggers token bootstrap."""
    block_number: int
    timestamp: int
