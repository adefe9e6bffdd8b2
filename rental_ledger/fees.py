"""
fees.py - Fee Splitter and treasury governance

=== SPLIT MODEL ===

A renter pays the full rental cost upfront:

    total_cost    = price_per_block * duration
    fee           = floor(total_cost * fee_bps / 10_000)
    owner_payment = total_cost - fee

All arithmetic is integer. Truncation only ever lowers the fee, so any
remainder goes to the owner, never to the platform:

    owner_payment + fee == total_cost      (always, exactly)

Example (250 bps):
    100 per block * 144 blocks = 14_400
    fee = 14_400 * 250 // 10_000 = 360
    owner_payment = 14_040

=== PURE FUNCTIONS ===

    compute_rental_cost(price_per_block, duration) -> int
    compute_fee(total_cost, fee_bps) -> int
    split_payment(total_cost, fee_bps) -> FeeSplit
    quote(view, listing_id, duration) -> Optional[FeeSplit]
    compute_set_treasury(view, caller, new_treasury) -> PendingTransition
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from .core import (
    RentalView, PendingTransition, StateChange, RentalEvent,
    Action, EventType, Account,
    InvalidAmount, InvalidDuration, NotAuthorized,
    FEE_BPS, BPS_DENOMINATOR, VARS, VAR_TREASURY,
    build_transition, is_int,
)


@dataclass(frozen=True, slots=True)
class FeeSplit:
    """Result of splitting a gross rental payment."""
    total_cost: int
    fee: int
    owner_payment: int


def compute_rental_cost(price_per_block: int, duration: int) -> int:
    """
    Gross cost of renting for duration blocks.

    Raises:
        InvalidAmount: If price_per_block is not a non-negative int
        InvalidDuration: If duration is not a non-negative int
    """
    if not is_int(price_per_block) or price_per_block < 0:
        raise InvalidAmount(f"price_per_block must be a non-negative int, got {price_per_block!r}")
    if not is_int(duration) or duration < 0:
        raise InvalidDuration(f"duration must be a non-negative int, got {duration!r}")
    return price_per_block * duration


def compute_fee(total_cost: int, fee_bps: int = FEE_BPS) -> int:
    """Platform fee on total_cost, truncated toward zero."""
    if not is_int(total_cost) or total_cost < 0:
        raise InvalidAmount(f"total_cost must be a non-negative int, got {total_cost!r}")
    return total_cost * fee_bps // BPS_DENOMINATOR


def split_payment(total_cost: int, fee_bps: int = FEE_BPS) -> FeeSplit:
    """
    Split a gross payment into platform fee and owner proceeds.

    Args:
        total_cost: Gross rental payment
        fee_bps: Platform fee in basis points

    Returns:
        FeeSplit with fee + owner_payment == total_cost

    Example:
        split_payment(14_400)  # FeeSplit(total_cost=14400, fee=360, owner_payment=14040)
    """
    fee = compute_fee(total_cost, fee_bps)
    return FeeSplit(total_cost=total_cost, fee=fee, owner_payment=total_cost - fee)


def quote(view: RentalView, listing_id: int, duration: int) -> Optional[FeeSplit]:
    """
    Preview what a lease would cost, without touching state.

    No authorization is needed and duration is not bound-checked; this is a
    price quote, not a lease. Returns None if the listing does not exist or
    duration is not a non-negative int.
    """
    listing = view.get_listing(listing_id)
    if listing is None or not is_int(duration) or duration < 0:
        return None
    total_cost = compute_rental_cost(listing.price_per_block, duration)
    return split_payment(total_cost, view.config.fee_bps)


def compute_set_treasury(view: RentalView, caller: Account, new_treasury: Account) -> PendingTransition:
    """
    Point platform fees at a new treasury account.

    Raises:
        NotAuthorized: If caller is not the ledger admin
        InvalidAmount: If new_treasury is empty
    """
    if caller != view.admin:
        raise NotAuthorized(f"{caller} is not the ledger admin")
    if not new_treasury:
        raise InvalidAmount("treasury account cannot be empty")

    old_treasury = view.treasury
    changes = [StateChange(VARS, VAR_TREASURY, old_treasury, new_treasury)]
    events = [RentalEvent(
        EventType.TREASURY_UPDATED, None, view.current_block,
        {'old_treasury': old_treasury, 'new_treasury': new_treasury},
    )]
    return build_transition(view, Action.SET_TREASURY, caller, state_changes=changes, events=events)
