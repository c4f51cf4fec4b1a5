"""
test_registry_and_balances.py - Unit tests for tokens, users and balances

Tests:
- Token bootstrap idempotency
- Strict token lookup
- Borrower list maintenance
- Get-or-create users and balances
- Strict balance lookup and per-user enumeration
- Store-wide net supplied verification
"""

import pytest

from lending_ledger import (
    Balance, BalanceNotFound, InMemoryStore, TokenNotRegistered,
    add_borrower, balances_of, bootstrap_tokens, get_or_create_user, get_token, initialize_token, load_balance,
    refresh_net_supplied, verify_net_supplied,
)

from tests.factories import A_USDC, ALICE, BOB, DAI, USDC, USDT, WETH, fresh_balance


class TestTokenRegistry:
    """Tests for token bootstrap and lookup."""

    def test_bootstrap_creates_all_tracked(self, empty_store, config):
        created = bootstrap_tokens(empty_store, config)
        assert created == 3
        assert {t.symbol for t in empty_store.all("Token")} == {"WETH", "USDC", "USDT"}

    def test_bootstrap_is_idempotent(self, store, config):
        assert bootstrap_tokens(store, config) == 0
        assert store.count("Token") == 3

    def test_token_fields(self, store):
        token = get_token(store, USDC)
        assert token.symbol == "USDC"
        assert token.name == "USD Coin"
        assert token.decimals == 6
        assert token.a_token == A_USDC
        assert token.borrowers == []

    def test_initialize_keeps_existing_token(self, store):
        """Re-initializing never resets the borrower list or metadata."""
        add_borrower(store, get_token(store, USDC), ALICE)
        token = initialize_token(store, USDC, "OTHER", "Other", 18)
        assert token.symbol == "USDC"
        assert get_token(store, USDC).borrowers == [ALICE]

    def test_get_token_accepts_checksummed(self, store):
        assert get_token(store, "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9").id == USDT

    def test_get_missing_token_raises(self, empty_store):
        with pytest.raises(TokenNotRegistered):
            get_token(empty_store, WETH)

    def test_untracked_token_not_registered(self, store):
        with pytest.raises(TokenNotRegistered):
            get_token(store, DAI)


class TestBorrowers:
    """Tests for the token borrower list."""

    def test_add_borrower_persists(self, store):
        assert add_borrower(store, get_token(store, USDC), ALICE) is True
        assert get_token(store, USDC).borrowers == [ALICE]

    def test_add_borrower_once(self, store):
        token = get_token(store, USDC)
        add_borrower(store, token, ALICE)
        assert add_borrower(store, token, ALICE) is False
        add_borrower(store, token, BOB)
        assert get_token(store, USDC).borrowers == [ALICE, BOB]


class TestUsersAndBalances:
    """Tests for get-or-create access."""

    def test_user_created_once(self, store):
        first = get_or_create_user(store, ALICE)
        second = get_or_create_user(store, ALICE)
        assert first == second
        assert store.count("User") == 1

    def test_balance_id_and_defaults(self, store):
        balance = fresh_balance(store, ALICE, USDC)
        assert balance.id == f"{ALICE}-{USDC}"
        assert balance.user == ALICE
        assert balance.token == USDC
        assert balance.total_supplied == 0

    def test_existing_balance_returned(self, store):
        balance = fresh_balance(store, ALICE)
        balance.total_supplied = 42
        store.upsert(balance)
        assert fresh_balance(store, ALICE).total_supplied == 42
        assert store.count("Balance") == 1

    def test_load_balance_strict(self, store):
        with pytest.raises(BalanceNotFound):
            load_balance(store, ALICE, USDC)
        fresh_balance(store, ALICE)
        assert load_balance(store, ALICE, USDC).user == ALICE

    def test_balances_of_user(self, store):
        fresh_balance(store, ALICE, USDC)
        fresh_balance(store, ALICE, WETH)
        fresh_balance(store, BOB, USDC)
        assert {b.token for b in balances_of(store, ALICE)} == {USDC, WETH}


class TestNetSupplied:
    """Tests for the derived net position."""

    def test_refresh(self):
        balance = Balance(id="b", user="u", token="t",
                          total_supplied=1000, total_borrowed=200, accrued_interest=30)
        assert refresh_net_supplied(balance) == 770
        assert balance.net_supplied == 770

    def test_verify_clean_store(self, store):
        fresh_balance(store, ALICE)
        result = verify_net_supplied(store)
        assert result['valid']
        assert result['checked'] == 1

    def test_verify_reports_discrepancy(self):
        store = InMemoryStore()
        store.upsert(Balance(id="b", user="u", token="t", total_supplied=10, net_supplied=3))
        result = verify_net_supplied(store)
        assert not result['valid']
        assert result['discrepancies'] == [{'balance': "b", 'expected': 10, 'actual': 3}]
