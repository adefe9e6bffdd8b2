"""
support.py - Shared constants and helpers for rental ledger tests

Imported by conftest.py for the fixtures and directly by test modules that
need the reference terms or the state comparison utilities.
"""

from typing import Dict, Tuple

from rental_ledger import RentalLedger, CUSTODY_ACCOUNT


# =============================================================================
# CONSTANTS
# =============================================================================

ADMIN = "deployer"
OWNER = "alice"
RENTER = "bob"
OTHER = "carol"
KEEPER = "keeper"
ASSET_REF = "punks"
START_BLOCK = 1000
FUNDING = 1_000_000

# Terms used by the reference scenario: 100/block, 144..4320 blocks, 500 collateral
PRICE = 100
MIN_DURATION = 144
MAX_DURATION = 4320
COLLATERAL = 500


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def make_ledger(currency, registry, initial_block: int = START_BLOCK, **kwargs) -> RentalLedger:
    """Create a quiet ledger with registry registered under ASSET_REF."""
    kwargs.setdefault('verbose', False)
    ledger = RentalLedger("test", ADMIN, currency, initial_block=initial_block, **kwargs)
    ledger.register_registry(ASSET_REF, registry)
    return ledger


def fund(currency, *accounts, amount: int = FUNDING) -> None:
    for account in accounts:
        currency.mint(account, amount)


def list_default(ledger: RentalLedger, asset_id: int = 1, owner: str = OWNER, **overrides) -> int:
    """Create a listing with the reference terms and return its id."""
    terms = dict(
        price_per_block=PRICE,
        min_duration=MIN_DURATION,
        max_duration=MAX_DURATION,
        collateral=COLLATERAL,
    )
    terms.update(overrides)
    return ledger.create_listing(owner, ASSET_REF, asset_id, **terms)


def external_state(currency, registry) -> Tuple[Dict[str, int], Dict[int, str]]:
    """Non-zero balances and asset owners, for before/after comparisons."""
    balances = {a: b for a, b in currency.balances.items() if b != 0}
    return balances, dict(registry.owners)


def escrowed(currency) -> int:
    return currency.balance_of(CUSTODY_ACCOUNT)
