"""
leases.py - Lease Engine

=== LEASE MODEL ===

A Lease is an accepted rental against a Listing, keyed by listing id, so a
listing can carry at most one lease at a time.

When a lease is opened:
    1. Currency: renter -> owner        (owner_payment, skipped when 0)
    2. Currency: renter -> treasury     (fee, skipped when 0)
    3. Currency: renter -> custody      (collateral, skipped when 0)
    4. Asset:    owner  -> renter       (custody, last: hardest to undo)
    5. Lease written, renter lease count + 1, platform earnings + fee

When a lease is closed (window elapsed, any caller):
    1. Asset:    renter  -> owner
    2. Currency: custody -> renter      (collateral refund, skipped when 0)
    3. Lease marked returned and appended to the listing's lease history

=== RENTABLE AGAIN ===

    no lease record       -> rentable
    lease.returned        -> rentable (the returned record is overwritten)
    lease open            -> RentalActive

=== PURE FUNCTIONS ===

    compute_open_lease(view, caller, listing_id, duration, asset_ref)
    compute_close_lease(view, caller, listing_id, asset_ref)
    is_lease_expired(view, listing_id)

Both compute_* functions check every precondition before describing any
effect. RentalLedger performs the transfers and commits.
"""
from __future__ import annotations
from dataclasses import replace
from typing import List

from .core import (
    RentalView, PendingTransition, Lease, Transfer, StateChange, RentalEvent,
    Action, EventType, Account,
    NotFound, InvalidAsset, InvalidDuration, RentalActive,
    LEASES, LEASE_COUNTS, PLATFORM_EARNINGS, LEASE_HISTORY,
    build_transition, currency_transfer, asset_transfer,
)
from .fees import compute_rental_cost, split_payment


# =============================================================================
# LEASE OPENING
# =============================================================================

def compute_open_lease(
    view: RentalView,
    caller: Account,
    listing_id: int,
    duration: int,
    asset_ref: str,
) -> PendingTransition:
    """
    Rent a listed asset for duration blocks.

    Checks, in order:
        listing exists and is active          else NotFound
        asset_ref matches the listing's       else InvalidAsset
        no open lease on the listing          else RentalActive
        duration is an int in [min, max]      else InvalidDuration

    Args:
        view: Read-only ledger access
        caller: Renter paying for the lease
        listing_id: Listing to rent
        duration: Lease length in blocks
        asset_ref: Asset registry the caller believes backs the listing

    Returns:
        PendingTransition with payment, fee, collateral and custody transfers
        and the lease bookkeeping.

    Example:
        # 100 per block, 144 blocks, 500 collateral
        pending = compute_open_lease(view, "bob", 1, 144, "punks")
        # transfers: 14040 bob->alice, 360 bob->treasury, 500 bob->custody,
        #            punks#7 alice->bob
    """
    listing = view.get_listing(listing_id)
    if listing is None or not listing.active:
        raise NotFound(f"no active listing #{listing_id}")
    if asset_ref != listing.asset_ref:
        raise InvalidAsset(
            f"listing #{listing_id} is backed by {listing.asset_ref!r}, not {asset_ref!r}"
        )
    current = view.get_lease(listing_id)
    if current is not None and current.is_open:
        raise RentalActive(f"listing #{listing_id} is leased to {current.renter}")
    if not listing.accepts(duration):
        raise InvalidDuration(
            f"duration {duration} outside [{listing.min_duration}, {listing.max_duration}]"
        )

    split = split_payment(
        compute_rental_cost(listing.price_per_block, duration),
        view.config.fee_bps,
    )
    block = view.current_block
    memo = f"lease_{listing_id}_{block}"

    transfers: List[Transfer] = []
    if split.owner_payment > 0:
        transfers.append(currency_transfer(caller, listing.owner, split.owner_payment, f"{memo}_payment"))
    if split.fee > 0:
        transfers.append(currency_transfer(caller, view.treasury, split.fee, f"{memo}_fee"))
    if listing.collateral > 0:
        transfers.append(currency_transfer(
            caller, view.custody_account, listing.collateral, f"{memo}_collateral",
        ))
    transfers.append(asset_transfer(
        listing.asset_ref, listing.asset_id, listing.owner, caller, f"{memo}_custody",
    ))

    lease = Lease(
        listing_id=listing_id,
        renter=caller,
        start_block=block,
        end_block=block + duration,
        total_cost=split.total_cost,
        collateral=listing.collateral,
        returned=False,
    )

    lease_count = view.get_user_lease_count(caller)
    currency = view.currency_symbol
    earnings = view.get_platform_earnings(currency)
    changes = [
        StateChange(LEASES, listing_id, current, lease),
        StateChange(LEASE_COUNTS, caller, lease_count or None, lease_count + 1),
        StateChange(PLATFORM_EARNINGS, currency, earnings or None, (earnings + split.fee) or None),
    ]
    events = [RentalEvent(EventType.RENTED, listing_id, block, {
        'renter': caller,
        'owner': listing.owner,
        'duration': duration,
        'end_block': lease.end_block,
        'total_cost': split.total_cost,
        'fee': split.fee,
        'owner_payment': split.owner_payment,
        'collateral': listing.collateral,
    })]
    return build_transition(
        view, Action.OPEN_LEASE, caller,
        transfers=transfers, state_changes=changes, events=events,
    )


# =============================================================================
# LEASE CLOSING
# =============================================================================

def compute_close_lease(
    view: RentalView,
    caller: Account,
    listing_id: int,
    asset_ref: str,
) -> PendingTransition:
    """
    Return a leased asset once its window has elapsed.

    Anyone may close an expired lease, which lets keepers and third parties
    settle on behalf of absent renters.

    Raises:
        NotFound: No listing, no lease, or the lease is already returned
        RentalActive: current block < lease.end_block
        InvalidAsset: asset_ref does not match the listing's registry
    """
    listing = view.get_listing(listing_id)
    if listing is None:
        raise NotFound(f"no listing #{listing_id}")
    lease = view.get_lease(listing_id)
    if lease is None or lease.returned:
        raise NotFound(f"no open lease on listing #{listing_id}")
    block = view.current_block
    if not lease.is_expired(block):
        raise RentalActive(
            f"lease on listing #{listing_id} runs until block {lease.end_block}, now {block}"
        )
    if asset_ref != listing.asset_ref:
        raise InvalidAsset(
            f"listing #{listing_id} is backed by {listing.asset_ref!r}, not {asset_ref!r}"
        )

    memo = f"return_{listing_id}_{lease.start_block}"
    transfers: List[Transfer] = [
        asset_transfer(listing.asset_ref, listing.asset_id, lease.renter, listing.owner, f"{memo}_custody"),
    ]
    if lease.collateral > 0:
        transfers.append(currency_transfer(
            view.custody_account, lease.renter, lease.collateral, f"{memo}_collateral",
        ))

    returned = replace(lease, returned=True)
    history = view.get_lease_history(listing_id)
    changes = [
        StateChange(LEASES, listing_id, lease, returned),
        StateChange(LEASE_HISTORY, listing_id, history or None, history + (returned,)),
    ]
    events = [RentalEvent(EventType.RETURNED, listing_id, block, {
        'renter': lease.renter,
        'owner': listing.owner,
        'settled_by': caller,
        'collateral_refunded': lease.collateral,
    })]
    return build_transition(
        view, Action.CLOSE_LEASE, caller,
        transfers=transfers, state_changes=changes, events=events,
    )


# =============================================================================
# HELPERS
# =============================================================================

def is_lease_expired(view: RentalView, listing_id: int) -> bool:
    """True if the listing has a lease whose window has elapsed. False when no lease."""
    lease = view.get_lease(listing_id)
    if lease is None:
        return False
    return lease.is_expired(view.current_block)
