"""
reconciliation.py - Reserve Rate-Update Reconciliation

The only place pending deltas become committed totals. Invoked for the
transaction sender's balance whenever a ReserveDataUpdated event arrives.

ORDER OF OPERATIONS (each step feeds the next):
===============================================

1. Index rebase:      total_supplied = total_supplied * new_index / old_index (toward zero)
2. Pending deltas:    fold pending supply (or, failing that, withdraw) into total_supplied
3. Loan accrual:      accrue each loan to the event time, refresh its rate
4. Commit debt:       total_borrowed = sum(principal), accrued_interest = sum(interest)
5. Repayment:         allocate pending_repaid across loans (interest first, then principal)
6. Derive:            net_supplied, liquidity_index, timestamp, block_number
7. Persist:           balance, loans, snapshot

Repayment allocation is pro-rata:
    interest branch:   loan_interest -= repaid * loan_interest // total_interest
    principal branch:  loan_amount   -= excess * loan_amount // total_borrowed
Floor-division dust is handed to loans in order so the per-loan figures
always sum to the balance totals.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import List, Optional

from .balances import refresh_net_supplied
from .config import LedgerConfig
from .core import BORROW_TYPE_STABLE, BORROW_TYPE_VARIABLE, Balance, Loan
from .events import ReserveDataUpdated
from .loans import accrue_loan, load_loans
from .snapshots import update_snapshot
from .store import EntityStore

logger = logging.getLogger(__name__)


# ============================================================================
# RESULT TYPES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Allocation:
    """
    How a lump repayment was spread over a balance's loans.

    Attributes:
        interest_paid: Amount applied to accrued interest
        principal_paid: Amount applied to principal
        surplus: Amount left over once all interest and principal were retired
    """
    interest_paid: int
    principal_paid: int
    surplus: int = 0


@dataclass(frozen=True, slots=True)
class ReconciliationReport:
    """Summary of one reconciliation pass over a balance."""
    balance: str
    interest_accrued: int
    total_interest: int
    total_borrowed: int
    allocation: Optional[Allocation] = None


# ============================================================================
# PURE ALLOCATION
# ============================================================================

def _pro_rata(amount: int, weights: List[int], total: int) -> List[int]:
    """
    Split ``amount`` by ``weights / total`` with floor division.

    Remaining dust goes to entries in order, never past their weight, so the
    result sums to ``amount`` whenever amount <= sum(weights).
    """
    shares = [amount * w // total for w in weights]
    dust = amount - sum(shares)
    for i, w in enumerate(weights):
        if dust <= 0:
            break
        extra = min(dust, w - shares[i])
        shares[i] += extra
        dust -= extra
    return shares


def allocate_repayment(loans: List[Loan], repaid: int) -> Allocation:
    """
    Apply a repayment across loans, mutating their interest and principal.

    If total interest covers the repayment, each loan's interest is reduced
    by its share of the pre-repayment interest and principal is untouched.
    Otherwise all interest is retired and the excess reduces principal in
    proportion to each loan's share of total principal; principal never goes
    below zero and whatever cannot be applied is reported as surplus.

    Zero totals skip the corresponding split instead of dividing by zero.

    Example:
        interests 100 and 300, repaid 200 -> interests 50 and 150
    """
    if repaid <= 0:
        return Allocation(interest_paid=0, principal_paid=0)

    total_interest = sum(loan.accrued_interest for loan in loans)
    total_borrowed = sum(loan.amount for loan in loans)

    if total_interest >= repaid:
        shares = _pro_rata(repaid, [loan.accrued_interest for loan in loans], total_interest)
        for loan, share in zip(loans, shares):
            loan.accrued_interest -= share
        return Allocation(interest_paid=repaid, principal_paid=0)

    for loan in loans:
        loan.accrued_interest = 0

    excess = repaid - total_interest
    principal_paid = min(excess, total_borrowed)
    if total_borrowed > 0:
        shares = _pro_rata(principal_paid, [loan.amount for loan in loans], total_borrowed)
        for loan, share in zip(loans, shares):
            loan.amount -= share

    return Allocation(
        interest_paid=total_interest,
        principal_paid=principal_paid,
        surplus=excess - principal_paid,
    )


# ============================================================================
# RECONCILIATION
# ============================================================================

def _rebase(amount: int, new_index: int, old_index: int) -> int:
    """amount * new_index / old_index, truncated toward zero."""
    if amount < 0:
        return -(-amount * new_index // old_index)
    return amount * new_index // old_index


def _current_rate(loan: Loan, event: ReserveDataUpdated) -> int:
    if loan.borrow_type == BORROW_TYPE_STABLE:
        return event.stable_borrow_rate
    if loan.borrow_type == BORROW_TYPE_VARIABLE:
        return event.variable_borrow_rate
    return loan.borrow_rate


def reconcile(
    store: EntityStore,
    balance: Balance,
    event: ReserveDataUpdated,
    config: LedgerConfig,
) -> ReconciliationReport:
    """
    Fold pending deltas and elapsed interest into a balance's committed state.

    Args:
        store: Entity store (inside the event's unit of work)
        balance: Balance of the event's transaction sender for the reserve
        event: The rate update carrying the new index and borrow rates
        config: Ledger configuration (ray and year length)

    Returns:
        ReconciliationReport describing accrual and repayment allocation
    """
    # 1. Index rebase
    if balance.liquidity_index > 0:
        if event.liquidity_index < balance.liquidity_index:
            logger.warning(
                "Liquidity index of %s decreased: %d -> %d",
                event.reserve, balance.liquidity_index, event.liquidity_index,
            )
        balance.total_supplied = _rebase(balance.total_supplied, event.liquidity_index, balance.liquidity_index)

    # 2. Pending supply / withdraw
    if balance.pending_supplied > 0 or balance.pending_withdrawn > 0:
        if balance.pending_supplied > 0:
            if balance.pending_withdrawn > 0:
                logger.warning(
                    "Balance %s has both pending supply %d and withdraw %d; applying supply only",
                    balance.id, balance.pending_supplied, balance.pending_withdrawn,
                )
            balance.total_supplied += balance.pending_supplied
        else:
            balance.total_supplied -= balance.pending_withdrawn
        balance.pending_supplied = 0
        balance.pending_withdrawn = 0

    # 3. Per-loan accrual
    loans = load_loans(store, balance)
    interest_accrued = 0
    for loan in loans:
        interest_accrued += accrue_loan(loan, event.timestamp, config)
        loan.borrow_rate = _current_rate(loan, event)
    total_interest = sum(loan.accrued_interest for loan in loans)
    total_borrowed = sum(loan.amount for loan in loans)

    # 4. Commit borrowed / interest totals
    balance.total_borrowed = total_borrowed
    balance.accrued_interest = total_interest

    # 5. Pending repayment
    allocation = None
    if balance.pending_repaid > 0:
        allocation = allocate_repayment(loans, balance.pending_repaid)
        balance.accrued_interest = total_interest - allocation.interest_paid
        balance.total_borrowed = total_borrowed - allocation.principal_paid
        if allocation.surplus:
            logger.warning(
                "Repayment on %s exceeded outstanding debt by %d",
                balance.id, allocation.surplus,
            )
        balance.pending_repaid = 0

    # 6. Derived fields and provenance
    refresh_net_supplied(balance)
    balance.liquidity_index = event.liquidity_index
    balance.timestamp = event.timestamp
    balance.block_number = event.block_number

    # 7. Persist
    for loan in loans:
        store.upsert(loan)
    store.upsert(balance)
    update_snapshot(store, balance, event, config.snapshot_interval)

    logger.debug(
        "Reconciled %s: accrued=%d interest=%d borrowed=%d supplied=%d",
        balance.id, interest_accrued, balance.accrued_interest,
        balance.total_borrowed, balance.total_supplied,
    )
    return ReconciliationReport(
        balance=balance.id,
        interest_accrued=interest_accrued,
        total_interest=total_interest,
        total_borrowed=total_borrowed,
        allocation=allocation,
    )
