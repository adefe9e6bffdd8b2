"""
conftest.py - Shared pytest fixtures for rental ledger tests

Provides common fixtures used across unit, functional and conformance tests:
- Funded currency ledger and minted asset registry
- Empty, listed and leased rental ledgers
"""

import pytest

from rental_ledger import InMemoryAssetRegistry, InMemoryCurrencyLedger
from tests.support import (
    OWNER, RENTER, OTHER, ASSET_REF, MIN_DURATION,
    make_ledger, fund, list_default,
)


@pytest.fixture
def stx():
    """Currency ledger with bob and carol funded."""
    currency = InMemoryCurrencyLedger("STX")
    fund(currency, RENTER, OTHER)
    return currency


@pytest.fixture
def punks():
    """Registry with assets 1-5 owned by alice and 10 owned by carol."""
    registry = InMemoryAssetRegistry(ASSET_REF)
    for asset_id in range(1, 6):
        registry.mint(asset_id, OWNER)
    registry.mint(10, OTHER)
    return registry


@pytest.fixture
def ledger(stx, punks):
    """Empty rental ledger at START_BLOCK."""
    return make_ledger(stx, punks)


@pytest.fixture
def listing_id(ledger):
    """Id of alice's listing of punks#1 under the reference terms."""
    return list_default(ledger)


@pytest.fixture
def leased(ledger, listing_id):
    """Listing id after bob opened a MIN_DURATION lease on it."""
    ledger.open_lease(RENTER, listing_id, MIN_DURATION, ASSET_REF)
    return listing_id
