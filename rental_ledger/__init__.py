"""
rental_ledger - Time-boxed leasing marketplace for non-fungible assets

An owner lists an asset with a per-block price and optional collateral; a
renter pays upfront and receives custody for a bounded window; once the
window elapses anyone may return the asset, which refunds the collateral.

Usage:
    from rental_ledger import (
        RentalLedger, InMemoryAssetRegistry, InMemoryCurrencyLedger,
    )

    stx = InMemoryCurrencyLedger("STX")
    punks = InMemoryAssetRegistry("punks")
    punks.mint(7, "alice")
    stx.mint("bob", 1_000_000)

    ledger = RentalLedger("main", admin="deployer", currency=stx)
    ledger.register_registry("punks", punks)

    listing_id = ledger.create_listing("alice", "punks", 7,
                                       price_per_block=100, min_duration=144,
                                       max_duration=4320, collateral=500)
    ledger.open_lease("bob", listing_id, 144, "punks")
    ledger.advance_blocks(144)
    ledger.close_lease("anyone", listing_id, "punks")
"""

# Core types
from .core import (
    RentalView,
    AssetRegistry,
    CurrencyLedger,
    Listing,
    Lease,
    Transfer,
    TransferKind,
    StateChange,
    RentalEvent,
    EventType,
    Action,
    TransitionOrigin,
    PendingTransition,
    Transition,
    LedgerConfig,
    build_transition,
    currency_transfer,
    asset_transfer,
    ErrorCode,
    LedgerError,
    RentalError,
    NotAuthorized,
    NotFound,
    AlreadyExists,
    InvalidAmount,
    InvalidDuration,
    RentalActive,
    RentalExpired,
    InsufficientCollateral,
    TransferFailed,
    CompensationFailed,
    InvalidAsset,
    FEE_BPS,
    BPS_DENOMINATOR,
    MIN_RENTAL_DURATION,
    MAX_RENTAL_DURATION,
    CUSTODY_ACCOUNT,
    FIRST_LISTING_ID,
)

# Ledger
from .ledger import RentalLedger

# Fee Splitter
from .fees import (
    FeeSplit,
    compute_rental_cost,
    compute_fee,
    split_payment,
    quote,
    compute_set_treasury,
)

# Listing Registry
from .listings import (
    compute_create_listing,
    compute_cancel_listing,
)

# Lease Engine
from .leases import (
    compute_open_lease,
    compute_close_lease,
    is_lease_expired,
)

# Collaborators
from .collaborators import (
    InMemoryAssetRegistry,
    InMemoryCurrencyLedger,
)

# Keeper
from .keeper import SettlementKeeper, SettlementFailure

__all__ = [
    # Core
    'RentalView', 'AssetRegistry', 'CurrencyLedger',
    'Listing', 'Lease', 'Transfer', 'TransferKind', 'StateChange',
    'RentalEvent', 'EventType', 'Action', 'TransitionOrigin',
    'PendingTransition', 'Transition', 'LedgerConfig',
    'build_transition', 'currency_transfer', 'asset_transfer',
    'ErrorCode', 'LedgerError', 'RentalError', 'NotAuthorized', 'NotFound',
    'AlreadyExists', 'InvalidAmount', 'InvalidDuration', 'RentalActive',
    'RentalExpired', 'InsufficientCollateral', 'TransferFailed',
    'CompensationFailed', 'InvalidAsset',
    'FEE_BPS', 'BPS_DENOMINATOR', 'MIN_RENTAL_DURATION', 'MAX_RENTAL_DURATION',
    'CUSTODY_ACCOUNT', 'FIRST_LISTING_ID',
    # Ledger
    'RentalLedger',
    # Fees
    'FeeSplit', 'compute_rental_cost', 'compute_fee', 'split_payment',
    'quote', 'compute_set_treasury',
    # Listings
    'compute_create_listing', 'compute_cancel_listing',
    # Leases
    'compute_open_lease', 'compute_close_lease', 'is_lease_expired',
    # Collaborators
    'InMemoryAssetRegistry', 'InMemoryCurrencyLedger',
    # Keeper
    'SettlementKeeper', 'SettlementFailure',
]

__version__ = '1.0.0'
