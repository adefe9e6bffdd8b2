"""
test_rental_scenarios.py - End-to-end rental lifecycles

Scenarios:
- Reference rental: list, rent, early close rejected, close at expiry
- Cancel blocked by an open lease, allowed otherwise, then relist
- Several listings and renters settled by a keeper
- Treasury change between leases
"""

import pytest

from rental_ledger import (
    SettlementKeeper, RentalActive, NotFound, InvalidDuration, EventType,
)
from tests.support import (
    ADMIN, OWNER, RENTER, OTHER, KEEPER, ASSET_REF, START_BLOCK, FUNDING,
    PRICE, MIN_DURATION, MAX_DURATION, COLLATERAL, list_default, escrowed,
)


class TestReferenceRental:

    def test_full_lifecycle(self, ledger, stx, punks):
        listing_id = ledger.create_listing(
            OWNER, ASSET_REF, 1,
            price_per_block=PRICE, min_duration=MIN_DURATION,
            max_duration=MAX_DURATION, collateral=COLLATERAL,
        )
        assert ledger.preview_cost(listing_id, 144).total_cost == 14_400

        lease = ledger.open_lease(RENTER, listing_id, 144, ASSET_REF)
        assert lease.total_cost == 14_400
        assert stx.balance_of(OWNER) == 14_040
        assert stx.balance_of(ADMIN) == 360
        assert escrowed(stx) == 500
        assert punks.current_owner(1) == RENTER
        assert ledger.get_platform_earnings() == 360

        ledger.advance_blocks(143)
        with pytest.raises(RentalActive):
            ledger.close_lease(RENTER, listing_id, ASSET_REF)

        ledger.advance_blocks(1)
        assert ledger.current_block == lease.start_block + 144
        closed = ledger.close_lease(OTHER, listing_id, ASSET_REF)

        assert closed.returned
        assert ledger.get_lease(listing_id) == closed
        assert punks.current_owner(1) == OWNER
        assert escrowed(stx) == 0
        assert stx.balance_of(RENTER) == FUNDING - 14_400
        assert ledger.get_lease_history(listing_id) == (closed,)

    def test_duration_edges(self, ledger, listing_id):
        with pytest.raises(InvalidDuration):
            ledger.open_lease(RENTER, listing_id, MIN_DURATION - 1, ASSET_REF)
        with pytest.raises(InvalidDuration):
            ledger.open_lease(RENTER, listing_id, MAX_DURATION + 1, ASSET_REF)
        lease = ledger.open_lease(RENTER, listing_id, MAX_DURATION, ASSET_REF)
        assert lease.end_block == START_BLOCK + MAX_DURATION


class TestCancellation:

    def test_cancel_relist_cycle(self, ledger, punks, leased):
        with pytest.raises(RentalActive):
            ledger.cancel_listing(OWNER, leased)

        ledger.advance_blocks(MIN_DURATION)
        ledger.close_lease(KEEPER, leased, ASSET_REF)
        ledger.cancel_listing(OWNER, leased)

        with pytest.raises(NotFound):
            ledger.open_lease(OTHER, leased, MIN_DURATION, ASSET_REF)

        relisted = list_default(ledger, price_per_block=200)
        assert relisted != leased
        lease = ledger.open_lease(OTHER, relisted, MIN_DURATION, ASSET_REF)
        assert lease.total_cost == 200 * MIN_DURATION
        assert punks.current_owner(1) == OTHER

    def test_cancel_without_lease(self, ledger, listing_id):
        ledger.cancel_listing(OWNER, listing_id)
        assert list_default(ledger) == listing_id + 1


class TestMarketplace:

    def test_keeper_settles_many(self, ledger, stx, punks):
        ids = [list_default(ledger, asset_id=a, collateral=100 * a) for a in (1, 2, 3, 4)]
        ledger.open_lease(RENTER, ids[0], 144, ASSET_REF)
        ledger.open_lease(OTHER, ids[1], 300, ASSET_REF)
        ledger.open_lease(RENTER, ids[2], 1000, ASSET_REF)
        assert escrowed(stx) == 100 + 200 + 300

        keeper = SettlementKeeper(ledger, KEEPER)
        keeper.run(range(START_BLOCK + 100, START_BLOCK + 1100, 100))

        assert ledger.list_open_leases() == []
        assert escrowed(stx) == 0
        assert punks.assets_of(OWNER) == [1, 2, 3, 4, 5]
        assert not keeper.failures

        returned = [ev for ev in ledger.events if ev.event_type == EventType.RETURNED]
        assert [ev.listing_id for ev in returned] == [ids[0], ids[1], ids[2]]
        assert all(ev.data['settled_by'] == KEEPER for ev in returned)

    def test_treasury_change_between_leases(self, ledger, stx, leased):
        ledger.set_treasury(ADMIN, "vault")
        second = list_default(ledger, asset_id=2)
        ledger.open_lease(OTHER, second, MIN_DURATION, ASSET_REF)

        assert stx.balance_of(ADMIN) == 360
        assert stx.balance_of("vault") == 360
        assert ledger.get_platform_earnings() == 720
