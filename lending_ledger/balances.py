"""
balances.py - User and Balance Ledger

Get-or-create access to User and Balance records, the single writer of the
derived net_supplied field, and a store-wide invariant check.
"""

from __future__ import annotations
from typing import Any, Dict, List

from .core import (
    KIND_BALANCE, KIND_USER,
    Balance, BalanceNotFound, Token, User,
    balance_id, compute_net_supplied,
)
from .store import EntityStore


def get_or_create_user(store: EntityStore, user_id: str) -> User:
    """Return the User for ``user_id``, creating a bare record if absent."""
    user = store.load(KIND_USER, user_id)
    if user is None:
        user = User(id=user_id)
        store.upsert(user)
    return user


def get_or_create_balance(store: EntityStore, user: User, token: Token) -> Balance:
    """
    Return the Balance for (user, token), creating a zeroed one if absent.

    Ids are "<user id>-<token id>"; both parts are canonical lowercase
    addresses, so keys never collide.
    """
    key = balance_id(user.id, token.id)
    balance = store.load(KIND_BALANCE, key)
    if balance is None:
        balance = Balance(id=key, user=user.id, token=token.id)
        store.upsert(balance)
    return balance


def load_balance(store: EntityStore, user_id: str, token_id: str) -> Balance:
    """
    Load a Balance that must already exist.

    Raises:
        BalanceNotFound: If no balance exists for the pair
    """
    key = balance_id(user_id, token_id)
    balance = store.load(KIND_BALANCE, key)
    if balance is None:
        raise BalanceNotFound(f"Balance {key} not found")
    return balance


def balances_of(store: EntityStore, user_id: str) -> List[Balance]:
    """All balances held by a user, one per asset touched."""
    return store.load_children(KIND_BALANCE, user_id)


def refresh_net_supplied(balance: Balance) -> int:
    """Recompute balance.net_supplied from the committed totals."""
    balance.net_supplied = compute_net_supplied(
        balance.total_supplied, balance.total_borrowed, balance.accrued_interest
    )
    return balance.net_supplied


def verify_net_supplied(store: EntityStore) -> Dict[str, Any]:
    """
    Verify net_supplied == total_supplied - (total_borrowed + accrued_interest)
    for every balance in the store.

    Returns:
        Dict with keys:
        - 'valid': bool - True if every balance satisfies the identity
        - 'checked': int - Number of balances inspected
        - 'discrepancies': List[Dict] - balance id, expected, actual

    Example:
        result = verify_net_supplied(store)
        assert result['valid'], result['discrepancies']
    """
    discrepancies = []
    balances = store.all(KIND_BALANCE)
    for balance in balances:
        expected = compute_net_supplied(
            balance.total_supplied, balance.total_borrowed, balance.accrued_interest
        )
        if balance.net_supplied != expected:
            discrepancies.append({
                'balance': balance.id,
                'expected': expected,
                'actual': balance.net_supplied,
            })
    return {
        'valid': len(discrepancies) == 0,
        'checked': len(balances),
        'discrepancies': discrepancies,
    }
