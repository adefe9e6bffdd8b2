#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Rental Ledger Step by Step

A walkthrough of a time-boxed NFT rental from listing to return. Each step
builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Setup          - Collaborators, the empty ledger, a first listing
  4-6:  Leasing        - Cost preview, opening a lease, rejections
  7-9:  Settlement     - Expiry, keeper settlement, relisting
  10:   Atomicity      - A failed transfer leaves nothing behind

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from rental_ledger import (
    RentalLedger, InMemoryAssetRegistry, InMemoryCurrencyLedger,
    SettlementKeeper, RentalError, CUSTODY_ACCOUNT,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_block: int = 100_000
    renter_funding: int = 1_000_000

    # Listing terms
    price_per_block: int = 100
    min_duration: int = 144
    max_duration: int = 4_320
    collateral: int = 500

    # Lease
    duration: int = 144


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def show_balances(stx: InMemoryCurrencyLedger, *accounts: str):
    for account in accounts:
        print(f"  {account:<16} {stx.balance_of(account):>12,} {stx.symbol}")


# ============================================================================
# SETUP (Steps 1-3)
# ============================================================================

def step_01_collaborators():
    step_header(1, "External Collaborators",
        "Meet the asset registry and the currency ledger the rental ledger drives.")

    print("""
    The rental ledger never holds balances or ownership itself. It asks two
    collaborators to move things:

      AssetRegistry   - who owns which NFT (custody moves)
      CurrencyLedger  - base-currency balances (payments, fees, collateral)
    """)

    stx = InMemoryCurrencyLedger("STX")
    punks = InMemoryAssetRegistry("punks")
    punks.mint(7, "alice")
    stx.mint("bob", CONFIG.renter_funding)
    stx.mint("carol", CONFIG.renter_funding)

    print(f"punks#7 owner: {punks.current_owner(7)}")
    show_balances(stx, "bob", "carol")
    return stx, punks


def step_02_empty_ledger(stx, punks):
    step_header(2, "The Empty Ledger",
        "Create a ledger with an admin, a clock, and a registered asset registry.")

    ledger = RentalLedger("tutorial", admin="deployer", currency=stx,
                          initial_block=CONFIG.start_block, verbose=True)
    ledger.register_registry("punks", punks)

    section_header("Initial State")
    print(f"Current block:    {ledger.current_block}")
    print(f"Treasury:         {ledger.treasury}")
    print(f"Fee:              {ledger.config.fee_bps} bps")
    print(f"Next listing id:  {ledger.next_listing_id}")
    return ledger


def step_03_first_listing(ledger: RentalLedger):
    step_header(3, "Listing an Asset",
        "An owner offers an NFT with a per-block price, duration bounds and collateral.")

    listing_id = ledger.create_listing(
        "alice", "punks", 7,
        price_per_block=CONFIG.price_per_block,
        min_duration=CONFIG.min_duration,
        max_duration=CONFIG.max_duration,
        collateral=CONFIG.collateral,
    )
    print(f"\nListing #{listing_id}: {ledger.get_listing(listing_id)}")

    section_header("Only one active listing per asset")
    try:
        ledger.create_listing("alice", "punks", 7, 50, 144, 288)
    except RentalError as e:
        print(f"Second listing rejected: {e!r}")
    return listing_id


# ============================================================================
# LEASING (Steps 4-6)
# ============================================================================

def step_04_preview(ledger: RentalLedger, listing_id: int):
    step_header(4, "Previewing the Cost",
        "See the integer fee split before committing to a lease.")

    split = ledger.preview_cost(listing_id, CONFIG.duration)
    print(f"  total cost     {split.total_cost:>8,}")
    print(f"  platform fee   {split.fee:>8,}   (total * 250 // 10000)")
    print(f"  owner payment  {split.owner_payment:>8,}")
    print(f"  collateral     {ledger.get_listing(listing_id).collateral:>8,}   (refunded on return)")


def step_05_open_lease(ledger: RentalLedger, stx, punks, listing_id: int):
    step_header(5, "Opening a Lease",
        "The renter pays upfront and receives custody for a bounded window.")

    lease = ledger.open_lease("bob", listing_id, CONFIG.duration, "punks")
    print(f"\nLease: blocks {lease.start_block} .. {lease.end_block}")
    print(f"punks#7 owner: {punks.current_owner(7)}")
    show_balances(stx, "bob", "alice", "deployer", CUSTODY_ACCOUNT)
    return lease


def step_06_rejections(ledger: RentalLedger, listing_id: int):
    step_header(6, "Rejections",
        "Every precondition is checked before anything moves.")

    attempts = [
        ("carol rents the leased listing", lambda: ledger.open_lease("carol", listing_id, 144, "punks")),
        ("alice cancels while leased", lambda: ledger.cancel_listing("alice", listing_id)),
        ("bob returns early", lambda: ledger.close_lease("bob", listing_id, "punks")),
        ("alice sets the treasury", lambda: ledger.set_treasury("alice", "alice")),
    ]
    for label, attempt in attempts:
        section_header(label)
        try:
            attempt()
        except RentalError as e:
            print(f"code {e.code}: {type(e).__name__}")


# ============================================================================
# SETTLEMENT (Steps 7-9)
# ============================================================================

def step_07_expiry(ledger: RentalLedger, listing_id: int, lease):
    step_header(7, "Time Passes",
        "The lease expires at end_block; until then it cannot be closed.")

    ledger.advance_to(lease.end_block - 1)
    print(f"Block {ledger.current_block}: expired = {ledger.is_expired(listing_id)}")
    ledger.advance_blocks(1)
    print(f"Block {ledger.current_block}: expired = {ledger.is_expired(listing_id)}")


def step_08_keeper(ledger: RentalLedger, stx, punks):
    step_header(8, "Keeper Settlement",
        "Anyone may return an expired lease. A keeper does it for absent renters.")

    keeper = SettlementKeeper(ledger, "keeper")
    closed = keeper.step(ledger.current_block)
    print(f"\nKeeper closed {len(closed)} lease(s)")
    print(f"punks#7 owner: {punks.current_owner(7)}")
    show_balances(stx, "bob", "alice", "deployer", CUSTODY_ACCOUNT)


def step_09_relist(ledger: RentalLedger, listing_id: int):
    step_header(9, "Cancel and Relist",
        "With the lease returned, the owner may cancel and list again under a new id.")

    ledger.cancel_listing("alice", listing_id)
    new_id = ledger.create_listing("alice", "punks", 7, 120, 144, 1_000, 0)
    print(f"\nOld listing #{listing_id} active: {ledger.get_listing(listing_id).active}")
    print(f"New listing #{new_id} for punks#7")
    print(f"Lease history of #{listing_id}: {len(ledger.get_lease_history(listing_id))} lease(s)")
    return new_id


# ============================================================================
# ATOMICITY (Step 10)
# ============================================================================

def step_10_atomicity(ledger: RentalLedger, stx, punks, listing_id: int):
    step_header(10, "All or Nothing",
        "A renter who cannot pay leaves the ledger and every balance untouched.")

    stx.mint("dave", 1_000)
    before = ledger.snapshot()
    try:
        ledger.open_lease("dave", listing_id, 144, "punks")
    except RentalError as e:
        print(f"\nRejected: {type(e).__name__} (code {e.code})")
    print(f"Store unchanged: {ledger.snapshot() == before}")
    print(f"dave still holds {stx.balance_of('dave'):,} {stx.symbol}")
    print(f"punks#7 owner:   {punks.current_owner(7)}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       RENTAL LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)
    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    stx, punks = step_01_collaborators()
    wait_for_enter()

    ledger = step_02_empty_ledger(stx, punks)
    wait_for_enter()

    listing_id = step_03_first_listing(ledger)
    wait_for_enter()

    step_04_preview(ledger, listing_id)
    wait_for_enter()

    lease = step_05_open_lease(ledger, stx, punks, listing_id)
    wait_for_enter()

    step_06_rejections(ledger, listing_id)
    wait_for_enter()

    step_07_expiry(ledger, listing_id, lease)
    wait_for_enter()

    step_08_keeper(ledger, stx, punks)
    wait_for_enter()

    new_id = step_09_relist(ledger, listing_id)
    wait_for_enter()

    step_10_atomicity(ledger, stx, punks, new_id)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print(f"""
    Transitions committed:  {len(ledger.transition_log)}
    Events emitted:         {len(ledger.events)}
    Platform earnings:      {ledger.get_platform_earnings():,} {stx.symbol}

    Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
