"""
loans.py - Loan Book

One Loan per borrow event, attached to the borrower's Balance. Each loan
carries its own rate, principal and accrued interest.

Key Formula:
    interest = amount * borrow_rate * elapsed_seconds // (RAY * SECONDS_IN_YEAR)

Simple interest over one accrual period. The loan's timestamp is the
accrual anchor and moves forward every time interest is accrued, so
successive reconciliations each charge only their own period and
compounding emerges from interest being added per period.
"""

from __future__ import annotations
from typing import List

from .config import LedgerConfig
from .core import KIND_LOAN, RAY, SECONDS_IN_YEAR, Balance, Loan, loan_id
from .events import Borrow
from .store import EntityStore


# ============================================================================
# PURE CALCULATIONS
# ============================================================================

def calculate_interest_accrual(
    amount: int,
    borrow_rate: int,
    elapsed: int,
    ray: int = RAY,
    seconds_in_year: int = SECONDS_IN_YEAR,
) -> int:
    """
    Interest on ``amount`` at annual ray rate ``borrow_rate`` over ``elapsed`` seconds.

    PURE FUNCTION - All inputs explicit, no hidden state.

    The full product is formed before the single floor division; dividing the
    rate by RAY first would truncate every realistic rate to zero.

    Returns:
        Accrued interest (0 if no time elapsed, zero rate or zero principal)
    """
    if elapsed <= 0 or borrow_rate <= 0 or amount <= 0:
        return 0
    return amount * borrow_rate * elapsed // (ray * seconds_in_year)


# ============================================================================
# LOAN RECORDS
# ============================================================================

def create_loan(store: EntityStore, balance: Balance, event: Borrow) -> Loan:
    """
    Create the Loan for a borrow event unless it already exists.

    The id is "<balance id>-<tx hash>", so a re-delivered borrow event
    returns the existing loan instead of opening a second one.
    """
    key = loan_id(balance.id, event.tx_hash)
    loan = store.load(KIND_LOAN, key)
    if loan is None:
        loan = Loan(
            id=key,
            balance=balance.id,
            amount=event.amount,
            borrow_rate=event.borrow_rate,
            borrow_type=event.interest_rate_mode,
            accrued_interest=0,
            is_liquidated=False,
            timestamp=event.timestamp,
            block_number=event.block_number,
            created_at=event.timestamp,
        )
        store.upsert(loan)
    return loan


def accrue_loan(loan: Loan, timestamp: int, config: LedgerConfig) -> int:
    """
    Accrue interest on a loan up to ``timestamp`` and advance its anchor.

    Returns the interest added by this call. A timestamp at or before the
    anchor accrues nothing and leaves the anchor in place.
    """
    elapsed = timestamp - loan.timestamp
    interest = calculate_interest_accrual(
        loan.amount, loan.borrow_rate, elapsed, config.ray, config.seconds_in_year
    )
    loan.accrued_interest += interest
    if elapsed > 0:
        loan.timestamp = timestamp
    return interest


def load_loans(store: EntityStore, balance: Balance) -> List[Loan]:
    """All loans attached to a balance, in creation order."""
    return store.load_children(KIND_LOAN, balance.id)


def delete_loans(store: EntityStore, balance: Balance) -> int:
    """Remove every loan of a balance. Returns the number removed."""
    removed = 0
    for loan in load_loans(store, balance):
        if store.delete(KIND_LOAN, loan.id):
            removed += 1
    return removed
