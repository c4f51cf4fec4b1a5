"""
registry.py - Token Registry

Idempotent bootstrap of the tracked reserve assets and strict lookup of
their Token records.
"""

from __future__ import annotations
import logging
from typing import Optional

from .config import LedgerConfig
from .core import KIND_TOKEN, AddressLike, Token, TokenNotRegistered, canonical_address
from .store import EntityStore

logger = logging.getLogger(__name__)


def initialize_token(
    store: EntityStore,
    address: AddressLike,
    symbol: str,
    name: str,
    decimals: int,
    a_token: Optional[AddressLike] = None,
) -> Token:
    """
    Create the Token for ``address`` unless it already exists.

    An existing token is returned untouched; its borrower list is never reset.
    """
    token_id = canonical_address(address)
    token = store.load(KIND_TOKEN, token_id)
    if token is None:
        token = Token(
            id=token_id,
            symbol=symbol,
            name=name,
            decimals=decimals,
            a_token=canonical_address(a_token) if a_token is not None else None,
        )
        store.upsert(token)
        logger.info("Registered token %s (%s) at %s", symbol, name, token_id)
    return token


def bootstrap_tokens(store: EntityStore, config: LedgerConfig) -> int:
    """Initialize every configured asset. Returns the number of tokens created."""
    created = 0
    for asset in config.assets:
        if store.load(KIND_TOKEN, asset.address) is None:
            created += 1
        initialize_token(store, asset.address, asset.symbol, asset.name, asset.decimals, asset.a_token)
    return created


def get_token(store: EntityStore, address: AddressLike) -> Token:
    """
    Load a Token that must already exist.

    Raises:
        TokenNotRegistered: If the asset was never bootstrapped
    """
    token_id = canonical_address(address)
    token = store.load(KIND_TOKEN, token_id)
    if token is None:
        raise TokenNotRegistered(f"Token {token_id} not registered")
    return token


def add_borrower(store: EntityStore, token: Token, user_id: str) -> bool:
    """Append a borrower id to the token's list unless already listed. Returns True if added."""
    if user_id in token.borrowers:
        return False
    token.borrowers.append(user_id)
    store.upsert(token)
    return True
