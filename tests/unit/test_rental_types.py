"""
test_rental_types.py - Tests for core records, errors and configuration

Tests:
- Listing / Lease validation and helpers
- Transfer validation and reversal
- Stable error codes
- LedgerConfig bounds
- PendingTransition construction
"""

import pytest
from dataclasses import FrozenInstanceError

from rental_ledger import (
    Listing, Lease, Transfer, TransferKind, StateChange, LedgerConfig,
    PendingTransition, TransitionOrigin, Action, RentalView,
    ErrorCode, RentalError, LedgerError,
    NotAuthorized, NotFound, AlreadyExists, InvalidAmount, InvalidDuration,
    RentalActive, RentalExpired, InsufficientCollateral, TransferFailed,
    CompensationFailed, InvalidAsset,
    build_transition, currency_transfer, asset_transfer,
    FEE_BPS, MIN_RENTAL_DURATION, MAX_RENTAL_DURATION,
)
from rental_ledger.core import LEASES
from tests.fake_view import FakeView


def make_listing(**overrides) -> Listing:
    fields = dict(
        listing_id=1, asset_ref="punks", asset_id=7, owner="alice",
        price_per_block=100, min_duration=144, max_duration=4320,
        collateral=500, active=True, created_at=1000,
    )
    fields.update(overrides)
    return Listing(**fields)


# =============================================================================
# LISTING
# =============================================================================

class TestListing:

    def test_asset_key(self):
        assert make_listing().asset_key == ("punks", 7)

    def test_accepts_bounds_inclusive(self):
        listing = make_listing()
        assert listing.accepts(144)
        assert listing.accepts(4320)
        assert not listing.accepts(143)
        assert not listing.accepts(4321)

    def test_is_frozen(self):
        listing = make_listing()
        with pytest.raises(FrozenInstanceError):
            listing.active = False

    def test_negative_collateral_rejected(self):
        with pytest.raises(ValueError, match="negative"):
            make_listing(collateral=-1)

    def test_float_price_rejected(self):
        with pytest.raises(ValueError, match="int"):
            make_listing(price_per_block=1.5)

    def test_bool_is_not_an_amount(self):
        with pytest.raises(ValueError):
            make_listing(collateral=True)

    def test_empty_owner_rejected(self):
        with pytest.raises(ValueError):
            make_listing(owner="")


# =============================================================================
# LEASE
# =============================================================================

class TestLease:

    def test_window(self):
        lease = Lease(1, "bob", 1000, 1144, 14400, 500)
        assert lease.duration == 144
        assert lease.is_open
        assert not lease.is_expired(1143)
        assert lease.is_expired(1144)
        assert lease.is_expired(5000)

    def test_returned_lease_is_not_open(self):
        lease = Lease(1, "bob", 1000, 1144, 14400, 500, returned=True)
        assert not lease.is_open

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError, match="ends before"):
            Lease(1, "bob", 1000, 999, 0, 0)


# =============================================================================
# TRANSFER
# =============================================================================

class TestTransfer:

    def test_currency_transfer(self):
        t = currency_transfer("bob", "alice", 14040, "payment")
        assert t.kind is TransferKind.CURRENCY
        assert t.amount == 14040

    def test_asset_transfer(self):
        t = asset_transfer("punks", 7, "alice", "bob", "custody")
        assert t.kind is TransferKind.ASSET
        assert (t.asset_ref, t.asset_id) == ("punks", 7)

    def test_reversed_swaps_parties(self):
        t = currency_transfer("bob", "alice", 10, "payment")
        r = t.reversed()
        assert (r.source, r.dest, r.amount) == ("alice", "bob", 10)
        assert r.memo == "reverse:payment"

    def test_reversed_asset_keeps_asset(self):
        r = asset_transfer("punks", 7, "alice", "bob", "custody").reversed()
        assert (r.asset_ref, r.asset_id, r.source, r.dest) == ("punks", 7, "bob", "alice")

    def test_self_currency_transfer_is_transfer_failure(self):
        with pytest.raises(TransferFailed):
            currency_transfer("bob", "bob", 10, "payment")

    def test_self_asset_transfer_is_transfer_failure(self):
        with pytest.raises(TransferFailed):
            asset_transfer("punks", 7, "bob", "bob", "custody")

    def test_zero_amount_rejected(self):
        with pytest.raises(ValueError, match="positive"):
            Transfer(TransferKind.CURRENCY, "bob", "alice", "payment", amount=0)

    def test_asset_transfer_needs_asset(self):
        with pytest.raises(ValueError, match="asset_ref"):
            Transfer(TransferKind.ASSET, "bob", "alice", "custody")

    def test_empty_memo_rejected(self):
        with pytest.raises(ValueError, match="memo"):
            Transfer(TransferKind.CURRENCY, "bob", "alice", "", amount=1)


# =============================================================================
# ERRORS
# =============================================================================

class TestErrorCodes:

    @pytest.mark.parametrize("exc, code", [
        (NotAuthorized, 100),
        (NotFound, 101),
        (AlreadyExists, 102),
        (InvalidAmount, 103),
        (InvalidDuration, 104),
        (RentalActive, 105),
        (RentalExpired, 106),
        (InsufficientCollateral, 107),
        (TransferFailed, 108),
        (InvalidAsset, 109),
    ])
    def test_stable_codes(self, exc, code):
        assert exc.code == code
        assert issubclass(exc, RentalError)
        assert issubclass(exc, LedgerError)

    def test_codes_are_distinct(self):
        assert len({int(c) for c in ErrorCode}) == len(ErrorCode)

    def test_compensation_failed_is_transfer_failed(self):
        err = CompensationFailed("boom", ())
        assert isinstance(err, TransferFailed)
        assert err.code == ErrorCode.TRANSFER_FAILED
        assert err.unreversed == ()

    def test_repr_includes_code(self):
        assert "code=105" in repr(RentalActive("leased"))


# =============================================================================
# CONFIG
# =============================================================================

class TestLedgerConfig:

    def test_defaults(self):
        config = LedgerConfig()
        assert config.fee_bps == FEE_BPS == 250
        assert config.min_duration_floor == MIN_RENTAL_DURATION
        assert config.max_duration_ceiling == MAX_RENTAL_DURATION

    def test_fee_above_100_percent_rejected(self):
        with pytest.raises(ValueError):
            LedgerConfig(fee_bps=10_001)

    def test_ceiling_below_floor_rejected(self):
        with pytest.raises(ValueError):
            LedgerConfig(min_duration_floor=100, max_duration_ceiling=99)

    def test_zero_floor_rejected(self):
        with pytest.raises(ValueError):
            LedgerConfig(min_duration_floor=0)


# =============================================================================
# TRANSITIONS
# =============================================================================

class TestPendingTransition:

    def test_build_stamps_current_block(self):
        view = FakeView(block=4242)
        pending = build_transition(view, Action.SET_TREASURY, "deployer")
        assert pending.block == 4242
        assert pending.origin == TransitionOrigin(Action.SET_TREASURY, "deployer")
        assert pending.is_empty()

    def test_not_empty_with_state_change(self):
        view = FakeView()
        pending = build_transition(
            view, Action.OPEN_LEASE, "bob",
            state_changes=[StateChange(LEASES, 1, None, None)],
        )
        assert isinstance(pending, PendingTransition)
        assert not pending.is_empty()

    def test_unknown_relation_rejected(self):
        with pytest.raises(ValueError, match="Unknown relation"):
            StateChange("balances", 1, None, 2)

    def test_fake_view_satisfies_protocol(self):
        assert isinstance(FakeView(), RentalView)
