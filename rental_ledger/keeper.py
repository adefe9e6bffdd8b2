"""
keeper.py - Settlement Keeper

Closes expired leases on behalf of absent renters. Any account may close a
lease once its window has elapsed; the keeper is such an account, run on a
schedule.

Execution order each step():
1. Advance ledger block height
2. Collect open leases whose window has elapsed (ordered by listing id)
3. Close each one through RentalLedger.close_lease

The ledger's transition log is the audit trail; the keeper only remembers
the latest rejected close per listing, until that listing settles.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Iterable

from .core import Account, Transition, TransferFailed
from .ledger import RentalLedger


@dataclass(frozen=True, slots=True)
class SettlementFailure:
    """A close the keeper attempted and an external collaborator rejected."""
    listing_id: int
    block: int
    error: TransferFailed


class SettlementKeeper:
    """
    Periodic settlement of expired leases.

    Features:
    - Deterministic order (listing id)
    - Latest rejected close kept per listing and retried on the next step
    - Full audit trail via the ledger's transition log
    """

    def __init__(self, ledger: RentalLedger, account: Account):
        """
        Args:
            ledger: The ledger to settle
            account: Account the keeper acts as when closing leases
        """
        self.ledger = ledger
        self.account = account
        self.failures: Dict[int, SettlementFailure] = {}
        self.verbose = ledger.verbose

    def due_leases(self) -> List[int]:
        """Listing ids whose open lease has expired at the ledger's current block."""
        block = self.ledger.current_block
        return [lease.listing_id for lease in self.ledger.list_open_leases() if lease.is_expired(block)]

    def step(self, block: int) -> List[Transition]:
        """
        Advance to block and close every expired lease.

        A close rejected with TransferFailed replaces any earlier failure for
        that listing in failures and the keeper moves on; the lease stays
        open and is retried next step. Entries for leases that are no longer
        due are dropped, as is the entry of a lease this step closes. Any
        other error propagates.

        Returns:
            Transitions committed during this step
        """
        self.ledger.advance_to(block)
        executed: List[Transition] = []
        due = self.due_leases()
        self.failures = {i: f for i, f in self.failures.items() if i in due}

        for listing_id in due:
            listing = self.ledger.get_listing(listing_id)
            try:
                self.ledger.close_lease(self.account, listing_id, listing.asset_ref)
            except TransferFailed as e:
                self.failures[listing_id] = SettlementFailure(listing_id, block, e)
                if self.verbose:
                    print(f"[KEEPER] close of listing #{listing_id} rejected: {e}")
                continue
            self.failures.pop(listing_id, None)
            executed.append(self.ledger.transition_log[-1])

        return executed

    def run(self, blocks: Iterable[int]) -> List[Transition]:
        """Run step() for each block in order."""
        all_transitions: List[Transition] = []
        for block in blocks:
            all_transitions.extend(self.step(block))
        return all_transitions
