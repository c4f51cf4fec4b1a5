"""
conftest.py - Shared pytest fixtures for lending ledger tests

Provides common fixtures used across unit and functional tests:
- Configuration tracking the built-in reserves
- Empty and bootstrapped stores
- A processor wired to the default handlers
- An event factory positioned at the first test block
"""

import pytest

from lending_ledger import (
    EventProcessor,
    InMemoryStore,
    LedgerConfig,
    bootstrap_tokens,
    default_config,
)

from tests.factories import EventFactory


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def config() -> LedgerConfig:
    """Configuration tracking WETH, USDC and USDT."""
    return default_config()


@pytest.fixture
def empty_store():
    """Store with no records at all (tokens not bootstrapped)."""
    return InMemoryStore()


@pytest.fixture
def store(config):
    """Store with every tracked token registered."""
    s = InMemoryStore()
    bootstrap_tokens(s, config)
    return s


@pytest.fixture
def processor(config):
    """Processor over a fresh store, tokens already bootstrapped."""
    p = EventProcessor(InMemoryStore(), config)
    p.bootstrap()
    return p


@pytest.fixture
def events():
    """Event factory starting at block 100, hour-aligned timestamp."""
    return EventFactory()
