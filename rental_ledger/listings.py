"""
listings.py - Listing Registry

An owner offers an asset for rent by creating a Listing. The registry keeps
one invariant:

    at most one ACTIVE listing per (asset_ref, asset_id)

enforced through the asset index (asset key -> listing id). The index entry
is written together with the listing and removed on cancellation, so a
cancelled asset can be listed again under a brand-new listing id.

Pure functions (read a RentalView, return a PendingTransition):
    compute_create_listing(view, caller, asset_ref, asset_id, ...)
    compute_cancel_listing(view, caller, listing_id)

Nothing here moves currency or custody: creating a listing only records an
offer, and the asset stays with its owner until a lease is opened.
"""
from __future__ import annotations
from dataclasses import replace

from .core import (
    RentalView, PendingTransition, Listing, StateChange, RentalEvent,
    Action, EventType, Account,
    NotAuthorized, NotFound, AlreadyExists, InvalidAmount, InvalidDuration,
    InvalidAsset, RentalActive,
    LISTINGS, ASSET_INDEX, VARS, VAR_NEXT_LISTING_ID,
    build_transition, is_int,
)


def compute_create_listing(
    view: RentalView,
    caller: Account,
    asset_ref: str,
    asset_id: int,
    price_per_block: int,
    min_duration: int,
    max_duration: int,
    collateral: int = 0,
) -> PendingTransition:
    """
    Offer an asset for rent.

    Checks, in order:
        price_per_block is an int > 0                else InvalidAmount
        both durations are ints                      else InvalidDuration
        min_duration >= config.min_duration_floor    else InvalidDuration
        max_duration <= config.max_duration_ceiling  else InvalidDuration
        min_duration <= max_duration                 else InvalidDuration
        collateral is an int >= 0                    else InvalidAmount
        asset_ref is a registered asset registry     else InvalidAsset
        asset_id is an int >= 0                      else InvalidAsset
        caller owns the asset                        else NotAuthorized
        no active listing for the asset              else AlreadyExists

    Returns:
        PendingTransition storing the listing, its index entry and the
        incremented id counter. The new id is view.next_listing_id.

    Example:
        pending = compute_create_listing(view, "alice", "punks", 7, 100, 144, 4320, 500)
        # RentalLedger.create_listing computes and executes this in one step
    """
    config = view.config
    if not is_int(price_per_block) or price_per_block <= 0:
        raise InvalidAmount(f"price_per_block must be a positive int, got {price_per_block!r}")
    for name, value in (('min_duration', min_duration), ('max_duration', max_duration)):
        if not is_int(value):
            raise InvalidDuration(f"{name} must be an int, got {value!r}")
    if min_duration < config.min_duration_floor:
        raise InvalidDuration(
            f"min_duration {min_duration} below floor {config.min_duration_floor}"
        )
    if max_duration > config.max_duration_ceiling:
        raise InvalidDuration(
            f"max_duration {max_duration} above ceiling {config.max_duration_ceiling}"
        )
    if min_duration > max_duration:
        raise InvalidDuration(f"min_duration {min_duration} > max_duration {max_duration}")
    if not is_int(collateral) or collateral < 0:
        raise InvalidAmount(f"collateral must be a non-negative int, got {collateral!r}")

    registry = view.get_registry(asset_ref)
    if registry is None:
        raise InvalidAsset(f"asset registry {asset_ref!r} is not registered")
    if not is_int(asset_id) or asset_id < 0:
        raise InvalidAsset(f"asset_id must be a non-negative int, got {asset_id!r}")
    owner = registry.current_owner(asset_id)
    if owner != caller:
        raise NotAuthorized(f"{caller} does not own {asset_ref}#{asset_id}")

    existing = view.get_listing_id_for_asset(asset_ref, asset_id)
    if existing is not None:
        raise AlreadyExists(f"{asset_ref}#{asset_id} already listed as #{existing}")

    listing_id = view.next_listing_id
    block = view.current_block
    listing = Listing(
        listing_id=listing_id,
        asset_ref=asset_ref,
        asset_id=asset_id,
        owner=caller,
        price_per_block=price_per_block,
        min_duration=min_duration,
        max_duration=max_duration,
        collateral=collateral,
        active=True,
        created_at=block,
    )

    changes = [
        StateChange(LISTINGS, listing_id, None, listing),
        StateChange(ASSET_INDEX, listing.asset_key, None, listing_id),
        StateChange(VARS, VAR_NEXT_LISTING_ID, listing_id, listing_id + 1),
    ]
    events = [RentalEvent(EventType.LISTED, listing_id, block, {
        'owner': caller,
        'asset_ref': asset_ref,
        'asset_id': asset_id,
        'price_per_block': price_per_block,
        'collateral': collateral,
    })]
    return build_transition(view, Action.CREATE_LISTING, caller, state_changes=changes, events=events)


def compute_cancel_listing(view: RentalView, caller: Account, listing_id: int) -> PendingTransition:
    """
    Withdraw a listing.

    Only an unreturned lease blocks cancellation; a returned lease record
    left in the slot does not.

    Raises:
        NotFound: Listing does not exist or is already cancelled
        NotAuthorized: Caller is not the listing owner
        RentalActive: An open lease exists against the listing
    """
    listing = view.get_listing(listing_id)
    if listing is None or not listing.active:
        raise NotFound(f"no active listing #{listing_id}")
    if caller != listing.owner:
        raise NotAuthorized(f"{caller} does not own listing #{listing_id}")
    lease = view.get_lease(listing_id)
    if lease is not None and lease.is_open:
        raise RentalActive(f"listing #{listing_id} is leased to {lease.renter}")

    changes = [
        StateChange(LISTINGS, listing_id, listing, replace(listing, active=False)),
        StateChange(ASSET_INDEX, listing.asset_key, listing_id, None),
    ]
    events = [RentalEvent(EventType.CANCELLED, listing_id, view.current_block, {'owner': caller})]
    return build_transition(view, Action.CANCEL_LISTING, caller, state_changes=changes, events=events)
