"""
Core types and pure helpers for the rental ledger.

This module provides the foundational data structures and protocols:
1. Protocols: AssetRegistry, CurrencyLedger (external collaborators) and
   RentalView for read-only ledger access
2. Immutable data structures: Listing, Lease, Transfer, StateChange,
   RentalEvent, PendingTransition, Transition
3. Exceptions: RentalError and its stable error codes
4. Configuration: module constants and the LedgerConfig dataclass

Nothing in this module mutates ledger state. Pure functions receive a
RentalView and describe what should happen as a PendingTransition; only
RentalLedger applies it inside one of its mutating operations.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import (
    Dict, Optional, Any, Protocol, Tuple, runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Platform fee in basis points (250 bps = 2.5% of the gross rental payment).
FEE_BPS = 250
BPS_DENOMINATOR = 10_000

# Bounds on the duration window a listing may offer, in blocks.
# 144 blocks is roughly one day, 52_560 roughly one year.
MIN_RENTAL_DURATION = 144
MAX_RENTAL_DURATION = 52_560

# Account that holds escrowed collateral on behalf of the ledger.
CUSTODY_ACCOUNT = "rental_ledger"

FIRST_LISTING_ID = 1

# Relation names for the ledger store.
LISTINGS = "listings"
ASSET_INDEX = "asset_index"
LEASES = "leases"
LEASE_COUNTS = "lease_counts"
PLATFORM_EARNINGS = "platform_earnings"
LEASE_HISTORY = "lease_history"
VARS = "vars"

RELATIONS = (LISTINGS, ASSET_INDEX, LEASES, LEASE_COUNTS, PLATFORM_EARNINGS, LEASE_HISTORY, VARS)

# Keys inside the VARS relation.
VAR_NEXT_LISTING_ID = "next_listing_id"
VAR_TREASURY = "treasury"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Account identifier (wallet address, principal, user id).
Account = str

# (asset registry reference, asset identifier) pair.
AssetKey = Tuple[str, int]


# ============================================================================
# ERRORS
# ============================================================================

class ErrorCode(IntEnum):
    """
    Stable numeric codes surfaced to callers.

    The values never change between releases; an outer command surface can
    translate a RentalError into its code without inspecting the message.
    """
    NOT_AUTHORIZED = 100
    NOT_FOUND = 101
    ALREADY_EXISTS = 102
    INVALID_AMOUNT = 103
    INVALID_DURATION = 104
    RENTAL_ACTIVE = 105
    RENTAL_EXPIRED = 106
    INSUFFICIENT_COLLATERAL = 107
    TRANSFER_FAILED = 108
    INVALID_ASSET = 109


class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class RentalError(LedgerError):
    """Base exception for rejected rental operations. Carries a stable code."""
    code: ErrorCode = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={int(self.code)}, {str(self)!r})"


class NotAuthorized(RentalError):
    """Raised when the caller lacks the required role (listing owner, admin, asset owner)."""
    code = ErrorCode.NOT_AUTHORIZED


class NotFound(RentalError):
    """Raised when a referenced listing or lease is absent, or the listing is inactive."""
    code = ErrorCode.NOT_FOUND


class AlreadyExists(RentalError):
    """Raised when an asset already has an active listing."""
    code = ErrorCode.ALREADY_EXISTS


class InvalidAmount(RentalError):
    """Raised when a price or collateral amount is out of range."""
    code = ErrorCode.INVALID_AMOUNT


class InvalidDuration(RentalError):
    """Raised when a duration or duration bound is out of range."""
    code = ErrorCode.INVALID_DURATION


class RentalActive(RentalError):
    """Raised when an open lease blocks the action, or a lease is closed before its window elapsed."""
    code = ErrorCode.RENTAL_ACTIVE


class RentalExpired(RentalError):
    """Reserved for window-based invalidation."""
    code = ErrorCode.RENTAL_EXPIRED


class InsufficientCollateral(RentalError):
    """Reserved for collateral top-up checks."""
    code = ErrorCode.INSUFFICIENT_COLLATERAL


class TransferFailed(RentalError):
    """Raised when an external currency or custody transfer is rejected."""
    code = ErrorCode.TRANSFER_FAILED


class CompensationFailed(TransferFailed):
    """
    Raised when a reversal issued during rollback is itself rejected.

    Ledger state is still untouched; the unreversed transfers are listed in
    `unreversed` so an operator can reconcile the external systems.
    """

    def __init__(self, message: str, unreversed: Tuple['Transfer', ...] = ()):
        super().__init__(message)
        self.unreversed = unreversed


class InvalidAsset(RentalError):
    """Raised when the asset reference passed by the caller does not match the listing's."""
    code = ErrorCode.INVALID_ASSET


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class LedgerConfig:
    """
    Fixed parameters of a rental ledger.

    Attributes:
        fee_bps: Platform fee in basis points of the gross rental payment.
        min_duration_floor: Smallest min_duration a listing may declare.
        max_duration_ceiling: Largest max_duration a listing may declare.
    """
    fee_bps: int = FEE_BPS
    min_duration_floor: int = MIN_RENTAL_DURATION
    max_duration_ceiling: int = MAX_RENTAL_DURATION

    def __post_init__(self):
        if not 0 <= self.fee_bps <= BPS_DENOMINATOR:
            raise ValueError(f"fee_bps must be within [0, {BPS_DENOMINATOR}], got {self.fee_bps}")
        if self.min_duration_floor < 1:
            raise ValueError(f"min_duration_floor must be positive, got {self.min_duration_floor}")
        if self.max_duration_ceiling < self.min_duration_floor:
            raise ValueError(
                f"max_duration_ceiling {self.max_duration_ceiling} "
                f"< min_duration_floor {self.min_duration_floor}"
            )


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class AssetRegistry(Protocol):
    """
    External registry of non-fungible assets.

    The ledger only ever asks who owns an asset and asks the registry to move
    custody. A False result from transfer() is a hard failure.
    """

    def current_owner(self, asset_id: int) -> Optional[Account]:
        """Return the current owner of an asset, or None if it does not exist."""
        ...

    def transfer(self, asset_id: int, sender: Account, recipient: Account) -> bool:
        """Move custody of an asset. Return True on success."""
        ...


@runtime_checkable
class CurrencyLedger(Protocol):
    """
    External base-currency ledger with atomic, immediate transfers.
    """
    symbol: str

    def transfer(self, amount: int, sender: Account, recipient: Account) -> bool:
        """Move value between two accounts. Return True on success."""
        ...


@runtime_checkable
class RentalView(Protocol):
    """
    Read-only interface to rental ledger state.

    Pure functions in listings.py, leases.py and fees.py accept a RentalView
    to declare their read-only intent. RentalLedger implements this protocol;
    tests use FakeView.
    """

    @property
    def current_block(self) -> int:
        """Return the current logical block height."""
        ...

    @property
    def admin(self) -> Account:
        ...

    @property
    def treasury(self) -> Account:
        ...

    @property
    def custody_account(self) -> Account:
        ...

    @property
    def config(self) -> LedgerConfig:
        ...

    @property
    def currency_symbol(self) -> str:
        ...

    @property
    def next_listing_id(self) -> int:
        ...

    def get_registry(self, asset_ref: str) -> Optional[AssetRegistry]:
        """Return the asset registry registered under asset_ref, or None."""
        ...

    def get_listing(self, listing_id: int) -> Optional['Listing']:
        ...

    def get_lease(self, listing_id: int) -> Optional['Lease']:
        ...

    def get_listing_id_for_asset(self, asset_ref: str, asset_id: int) -> Optional[int]:
        ...

    def get_user_lease_count(self, account: Account) -> int:
        ...

    def get_platform_earnings(self, currency: Optional[str] = None) -> int:
        ...

    def get_lease_history(self, listing_id: int) -> Tuple['Lease', ...]:
        ...


# ============================================================================
# ENUMS
# ============================================================================

class TransferKind(Enum):
    """Which external collaborator carries out a transfer."""
    CURRENCY = "currency"
    ASSET = "asset"


class EventType(Enum):
    """Events emitted by committed transitions."""
    LISTED = "listed"
    CANCELLED = "cancelled"
    RENTED = "rented"
    RETURNED = "returned"
    TREASURY_UPDATED = "treasury_updated"


class Action(Enum):
    """Mutating operation that produced a transition."""
    CREATE_LISTING = "create_listing"
    CANCEL_LISTING = "cancel_listing"
    OPEN_LEASE = "open_lease"
    CLOSE_LEASE = "close_lease"
    SET_TREASURY = "set_treasury"


# ============================================================================
# RECORDS
# ============================================================================

def is_int(value: Any) -> bool:
    """True for a plain int. bool and float amounts are not accepted."""
    return isinstance(value, int) and not isinstance(value, bool)


def _check_uint(name: str, value: Any) -> None:
    if not is_int(value):
        raise ValueError(f"{name} must be int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} cannot be negative, got {value}")


@dataclass(frozen=True, slots=True)
class Listing:
    """
    An owner's offer to lease one asset under fixed terms.

    Attributes:
        listing_id: Monotonic identifier assigned at creation, never reused.
        asset_ref: Reference of the asset registry holding the asset.
        asset_id: Identifier of the asset inside that registry.
        owner: Account that created the listing and owns the asset.
        price_per_block: Rental price per block of duration.
        min_duration: Shortest lease accepted, in blocks.
        max_duration: Longest lease accepted, in blocks.
        collateral: Refundable deposit required from the renter.
        active: False once cancelled.
        created_at: Block height at creation.
    """
    listing_id: int
    asset_ref: str
    asset_id: int
    owner: Account
    price_per_block: int
    min_duration: int
    max_duration: int
    collateral: int
    active: bool
    created_at: int

    def __post_init__(self):
        for name in ('listing_id', 'asset_id', 'price_per_block', 'min_duration',
                     'max_duration', 'collateral', 'created_at'):
            _check_uint(name, getattr(self, name))
        if not self.asset_ref:
            raise ValueError("Listing asset_ref cannot be empty")
        if not self.owner:
            raise ValueError("Listing owner cannot be empty")

    @property
    def asset_key(self) -> AssetKey:
        return (self.asset_ref, self.asset_id)

    def accepts(self, duration: int) -> bool:
        """True if duration is an int within [min_duration, max_duration]."""
        return is_int(duration) and self.min_duration <= duration <= self.max_duration


@dataclass(frozen=True, slots=True)
class Lease:
    """
    An accepted, time-bounded rental against a listing.

    The window is [start_block, end_block). Keyed in the ledger by listing_id.
    """
    listing_id: int
    renter: Account
    start_block: int
    end_block: int
    total_cost: int
    collateral: int
    returned: bool = False

    def __post_init__(self):
        for name in ('listing_id', 'start_block', 'end_block', 'total_cost', 'collateral'):
            _check_uint(name, getattr(self, name))
        if not self.renter:
            raise ValueError("Lease renter cannot be empty")
        if self.end_block < self.start_block:
            raise ValueError(f"Lease ends before it starts: {self.end_block} < {self.start_block}")

    @property
    def duration(self) -> int:
        return self.end_block - self.start_block

    @property
    def is_open(self) -> bool:
        return not self.returned

    def is_expired(self, block: int) -> bool:
        return block >= self.end_block


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    A single movement performed by an external collaborator.

    Currency transfers carry an amount; asset transfers carry the registry
    reference and asset id. Validated in __post_init__ like Move in a
    double-entry ledger.
    """
    kind: TransferKind
    source: Account
    dest: Account
    memo: str
    amount: int = 0
    asset_ref: Optional[str] = None
    asset_id: Optional[int] = None

    def __post_init__(self):
        if not self.source or not self.dest:
            raise ValueError("Transfer source and dest cannot be empty")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")
        if not self.memo:
            raise ValueError("Transfer memo cannot be empty")
        if self.kind is TransferKind.CURRENCY:
            _check_uint('amount', self.amount)
            if self.amount == 0:
                raise ValueError("Currency transfer amount must be positive")
        elif not self.asset_ref or self.asset_id is None:
            raise ValueError("Asset transfer needs asset_ref and asset_id")

    def reversed(self) -> Transfer:
        """Return the compensating transfer (source and dest swapped)."""
        return Transfer(
            kind=self.kind,
            source=self.dest,
            dest=self.source,
            memo=f"reverse:{self.memo}",
            amount=self.amount,
            asset_ref=self.asset_ref,
            asset_id=self.asset_id,
        )

    def __repr__(self) -> str:
        if self.kind is TransferKind.CURRENCY:
            what = f"{self.amount}"
        else:
            what = f"{self.asset_ref}#{self.asset_id}"
        return f"Transfer({what}: {self.source}→{self.dest}, {self.memo})"


def currency_transfer(source: Account, dest: Account, amount: int, memo: str) -> Transfer:
    """
    Build a currency Transfer, rejecting self-transfers as TransferFailed.

    A base-currency ledger refuses to move value from an account to itself,
    so such a move can never succeed and is reported the same way.
    """
    if source == dest:
        raise TransferFailed(f"{memo}: {source} cannot transfer to itself")
    return Transfer(TransferKind.CURRENCY, source, dest, memo, amount=amount)


def asset_transfer(asset_ref: str, asset_id: int, source: Account, dest: Account, memo: str) -> Transfer:
    """Build an asset custody Transfer, rejecting self-transfers as TransferFailed."""
    if source == dest:
        raise TransferFailed(f"{memo}: {source} cannot transfer to itself")
    return Transfer(TransferKind.ASSET, source, dest, memo, asset_ref=asset_ref, asset_id=asset_id)


@dataclass(frozen=True, slots=True)
class StateChange:
    """
    One write to a ledger relation.

    old_value is what the writer observed when the transition was computed;
    RentalLedger rejects the transition if the live value differs.
    A new_value of None deletes the key.
    """
    relation: str
    key: Any
    old_value: Any
    new_value: Any

    def __post_init__(self):
        if self.relation not in RELATIONS:
            raise ValueError(f"Unknown relation: {self.relation}")


@dataclass(frozen=True, slots=True)
class RentalEvent:
    """Notification emitted once a transition commits."""
    event_type: EventType
    listing_id: Optional[int]
    block: int
    data: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"RentalEvent({self.event_type.value}, listing={self.listing_id}, block={self.block})"


@dataclass(frozen=True, slots=True)
class TransitionOrigin:
    """Who asked for a transition, and through which operation."""
    action: Action
    caller: Account

    def __repr__(self) -> str:
        return f"Origin({self.action.value}:{self.caller})"


@dataclass(frozen=True, slots=True)
class PendingTransition:
    """
    A transition before execution - represents INTENT.

    Created by the pure compute_* functions and executed by the RentalLedger
    operation that computed it. Transfers run in order; state changes and events
    are committed only after every transfer succeeded.
    """
    origin: TransitionOrigin
    block: int
    transfers: Tuple[Transfer, ...] = ()
    state_changes: Tuple[StateChange, ...] = ()
    events: Tuple[RentalEvent, ...] = ()

    def is_empty(self) -> bool:
        return not self.transfers and not self.state_changes and not self.events

    def __repr__(self) -> str:
        return (f"PendingTransition({len(self.transfers)} transfers, "
                f"{len(self.state_changes)} changes, {self.origin})")


def build_transition(
    view: RentalView,
    action: Action,
    caller: Account,
    transfers: Optional[list] = None,
    state_changes: Optional[list] = None,
    events: Optional[list] = None,
) -> PendingTransition:
    """
    Build a PendingTransition stamped with the view's current block.

    This is the standard way for compute_* functions to describe their effect.
    """
    return PendingTransition(
        origin=TransitionOrigin(action=action, caller=caller),
        block=view.current_block,
        transfers=tuple(transfers or ()),
        state_changes=tuple(state_changes or ()),
        events=tuple(events or ()),
    )


@dataclass(frozen=True, slots=True)
class Transition:
    """
    An executed, immutable record of a committed transition - represents FACT.

    Attributes:
        origin: Operation and caller
        block: Block height at which it committed
        transfers: External transfers that were performed
        state_changes: Writes applied to the store
        events: Events emitted
        exec_id: Unique execution identifier (ledger + sequence + block)
        ledger_name: Name of the ledger that executed it
        sequence_number: Monotonic sequence within the ledger
    """
    origin: TransitionOrigin
    block: int
    transfers: Tuple[Transfer, ...]
    state_changes: Tuple[StateChange, ...]
    events: Tuple[RentalEvent, ...]
    exec_id: str
    ledger_name: str
    sequence_number: int

    def __repr__(self) -> str:
        w = 80
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            "",
            f"┌{bar}┐",
            f"│{pad(' Transition: ' + self.exec_id)}│",
            f"├{bar}┤",
            f"│{pad('   block     : ' + str(self.block))}│",
            f"│{pad('   sequence  : ' + str(self.sequence_number))}│",
            f"│{pad('   origin    : ' + repr(self.origin))}│",
            f"├{bar}┤",
            f"│{pad(' Transfers (' + str(len(self.transfers)) + '):')}│",
        ]
        for i, t in enumerate(self.transfers):
            lines.append(f"│{pad(f'   [{i}] {t!r}')}│")
        if self.events:
            lines.append(f"├{bar}┤")
            for ev in self.events:
                lines.append(f"│{pad('   ' + repr(ev))}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)
