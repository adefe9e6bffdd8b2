"""
ledger.py - Stateful Rental Ledger

The RentalLedger class is the central state manager for the rental system.
It is the only module that mutates state, ensuring controlled and auditable
changes.

Key responsibilities:
    - Implements the RentalView protocol for read-only access by pure functions
    - Executes transitions atomically (all transfers succeed or none persist)
    - Owns the store: listings, asset index, leases, lease counts,
      platform earnings, lease history, id counter and treasury
    - Tracks logical block height
    - Always validates and always logs
"""

from __future__ import annotations
import copy
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional, Tuple, Any, Iterator

from .core import (
    # Types
    Listing, Lease, Transfer, StateChange, RentalEvent,
    PendingTransition, Transition, TransitionOrigin, LedgerConfig, Action,
    AssetRegistry, CurrencyLedger, Account, TransferKind,
    # Constants
    CUSTODY_ACCOUNT, FIRST_LISTING_ID, RELATIONS,
    LISTINGS, ASSET_INDEX, LEASES, LEASE_COUNTS, PLATFORM_EARNINGS,
    LEASE_HISTORY, VARS, VAR_NEXT_LISTING_ID, VAR_TREASURY,
    # Exceptions
    LedgerError, RentalError, TransferFailed, CompensationFailed,
    RentalActive, AlreadyExists,
)
from .fees import FeeSplit, quote, compute_set_treasury
from .listings import compute_create_listing, compute_cancel_listing
from .leases import compute_open_lease, compute_close_lease, is_lease_expired


# A live value differing from the expected old value means another transition
# got there first. These relations map that race onto the domain error.
_STALE_ERRORS = {
    LEASES: RentalActive,
    ASSET_INDEX: AlreadyExists,
}


class RentalLedger:
    """
    Time-boxed leasing marketplace with full validation and audit trail.

    Implements the RentalView protocol, allowing the ledger to be passed to
    the pure compute_* functions, which only read from it.

    Design Principles:
        - Preconditions first: every check runs before any side effect.
        - All or nothing: external transfers are performed first; if one is
          rejected the earlier ones are reversed and the store is untouched.
          State is committed in one step only after every transfer succeeded.
        - Closed surface: transitions are computed and executed only by the
          five mutating operations, so every one has passed its checks for
          the stated caller.
        - Always logs: every committed transition is recorded in
          transition_log and its events in events.

    Thread Safety:
        Not thread-safe. Mutating calls run to completion one at a time;
        re-entrant mutation from a collaborator callback raises LedgerError.

    Example:
        usd = InMemoryCurrencyLedger("STX")
        punks = InMemoryAssetRegistry("punks")
        ledger = RentalLedger("main", admin="deployer", currency=usd)
        ledger.register_registry("punks", punks)

        listing_id = ledger.create_listing("alice", "punks", 7, 100, 144, 4320, 500)
        ledger.open_lease("bob", listing_id, 144, "punks")
        ledger.advance_blocks(144)
        ledger.close_lease("keeper", listing_id, "punks")
    """

    def __init__(
        self,
        name: str,
        admin: Account,
        currency: CurrencyLedger,
        config: Optional[LedgerConfig] = None,
        initial_block: int = 0,
        custody_account: Account = CUSTODY_ACCOUNT,
        verbose: bool = True,
    ):
        """
        Create a rental ledger.

        Args:
            name: Ledger identifier
            admin: Deploying administrator; the only account allowed to set the treasury
            currency: Base-currency ledger used for payments and collateral
            config: Fee and duration bounds (default: LedgerConfig())
            initial_block: Starting block height
            custody_account: Account that escrows collateral
            verbose: Print each transition (default: True)
        """
        if not admin:
            raise ValueError("admin cannot be empty")
        if initial_block < 0:
            raise ValueError(f"initial_block cannot be negative, got {initial_block}")
        self.name = name
        self._admin = admin
        self._currency = currency
        self._config = config or LedgerConfig()
        self._custody_account = custody_account
        self._current_block = initial_block
        self.verbose = verbose

        self._registries: Dict[str, AssetRegistry] = {}
        self._relations: Dict[str, Dict[Any, Any]] = {relation: {} for relation in RELATIONS}
        self._relations[VARS][VAR_NEXT_LISTING_ID] = FIRST_LISTING_ID
        self._relations[VARS][VAR_TREASURY] = admin

        self.transition_log: List[Transition] = []
        self.events: List[RentalEvent] = []
        self._next_sequence: int = 0
        self._executing = False

    # ========================================================================
    # RentalView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_block(self) -> int:
        """Current logical block height of the ledger."""
        return self._current_block

    @property
    def admin(self) -> Account:
        return self._admin

    @property
    def treasury(self) -> Account:
        """Account currently receiving platform fees."""
        return self._relations[VARS][VAR_TREASURY]

    @property
    def custody_account(self) -> Account:
        return self._custody_account

    @property
    def config(self) -> LedgerConfig:
        return self._config

    @property
    def currency_symbol(self) -> str:
        return self._currency.symbol

    @property
    def next_listing_id(self) -> int:
        """Id the next created listing will receive."""
        return self._relations[VARS][VAR_NEXT_LISTING_ID]

    def get_registry(self, asset_ref: str) -> Optional[AssetRegistry]:
        return self._registries.get(asset_ref)

    def get_listing(self, listing_id: int) -> Optional[Listing]:
        return self._relations[LISTINGS].get(listing_id)

    def get_lease(self, listing_id: int) -> Optional[Lease]:
        """Current lease record of a listing (open or returned), or None."""
        return self._relations[LEASES].get(listing_id)

    def get_listing_id_for_asset(self, asset_ref: str, asset_id: int) -> Optional[int]:
        """Id of the active listing for an asset, via the asset index."""
        return self._relations[ASSET_INDEX].get((asset_ref, asset_id))

    def get_lease_id_for_asset(self, asset_ref: str, asset_id: int) -> Optional[int]:
        """
        Listing id under which the asset has a lease record.

        Leases are keyed by listing id, so this resolves the asset's active
        listing and returns its id only if a lease record exists for it.
        """
        listing_id = self.get_listing_id_for_asset(asset_ref, asset_id)
        if listing_id is None or listing_id not in self._relations[LEASES]:
            return None
        return listing_id

    def get_user_lease_count(self, account: Account) -> int:
        """Number of leases ever opened by account."""
        return self._relations[LEASE_COUNTS].get(account, 0)

    def get_platform_earnings(self, currency: Optional[str] = None) -> int:
        """Cumulative fees collected in currency (default: the settlement currency)."""
        if currency is None:
            currency = self.currency_symbol
        return self._relations[PLATFORM_EARNINGS].get(currency, 0)

    def get_lease_history(self, listing_id: int) -> Tuple[Lease, ...]:
        """All returned leases of a listing, oldest first."""
        return self._relations[LEASE_HISTORY].get(listing_id, ())

    def is_expired(self, listing_id: int) -> bool:
        """True if the listing's lease window has elapsed. False when no lease."""
        return is_lease_expired(self, listing_id)

    def preview_cost(self, listing_id: int, duration: int) -> Optional[FeeSplit]:
        """Would-be cost split for a lease; None if the listing does not exist."""
        return quote(self, listing_id, duration)

    def list_open_leases(self) -> List[Lease]:
        """Unreturned leases, ordered by listing id."""
        leases = self._relations[LEASES]
        return [leases[k] for k in sorted(leases) if leases[k].is_open]

    def list_active_listings(self) -> List[Listing]:
        """Active listings, ordered by listing id."""
        return [self._relations[LISTINGS][k] for k in sorted(self._relations[ASSET_INDEX].values())]

    def events_for(self, listing_id: int) -> List[RentalEvent]:
        return [ev for ev in self.events if ev.listing_id == listing_id]

    def snapshot(self) -> Dict[str, Dict[Any, Any]]:
        """
        Deep copy of every relation in the store.

        Two snapshots compare equal iff the store did not change between them.
        """
        return copy.deepcopy(self._relations)

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_to(self, block: int) -> None:
        """
        Move the ledger's logical clock to block.

        Raises:
            ValueError: If block is before the current block
        """
        if block < self._current_block:
            raise ValueError(f"Cannot move time backwards: {block} < {self._current_block}")
        self._current_block = block

    def advance_blocks(self, count: int) -> None:
        self.advance_to(self._current_block + count)

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register_registry(self, asset_ref: str, registry: AssetRegistry) -> None:
        """
        Make an asset registry available under asset_ref.

        Raises:
            ValueError: If asset_ref is empty or already registered
            TypeError: If registry does not implement AssetRegistry
        """
        if not asset_ref:
            raise ValueError("asset_ref cannot be empty")
        if asset_ref in self._registries:
            raise ValueError(f"Asset registry {asset_ref} already registered")
        if not isinstance(registry, AssetRegistry):
            raise TypeError(f"{type(registry).__name__} does not implement AssetRegistry")
        self._registries[asset_ref] = registry
        if self.verbose:
            print(f"📝 Registered asset registry: {asset_ref}")

    # ========================================================================
    # OPERATIONS (Mutating)
    # ========================================================================

    def create_listing(
        self,
        caller: Account,
        asset_ref: str,
        asset_id: int,
        price_per_block: int,
        min_duration: int,
        max_duration: int,
        collateral: int = 0,
    ) -> int:
        """Create a listing and return its id. See listings.compute_create_listing."""
        with self._mutation():
            listing_id = self.next_listing_id
            self._run(
                Action.CREATE_LISTING, compute_create_listing, caller, asset_ref, asset_id,
                price_per_block, min_duration, max_duration, collateral,
            )
            return listing_id

    def cancel_listing(self, caller: Account, listing_id: int) -> None:
        """Cancel a listing. See listings.compute_cancel_listing."""
        with self._mutation():
            self._run(Action.CANCEL_LISTING, compute_cancel_listing, caller, listing_id)

    def open_lease(self, caller: Account, listing_id: int, duration: int, asset_ref: str) -> Lease:
        """Open a lease and return it. See leases.compute_open_lease."""
        with self._mutation():
            self._run(Action.OPEN_LEASE, compute_open_lease, caller, listing_id, duration, asset_ref)
            return self.get_lease(listing_id)

    def close_lease(self, caller: Account, listing_id: int, asset_ref: str) -> Lease:
        """Close an expired lease and return the returned record. See leases.compute_close_lease."""
        with self._mutation():
            self._run(Action.CLOSE_LEASE, compute_close_lease, caller, listing_id, asset_ref)
            return self.get_lease(listing_id)

    def set_treasury(self, caller: Account, new_treasury: Account) -> None:
        """Point platform fees at new_treasury. Admin only."""
        with self._mutation():
            self._run(Action.SET_TREASURY, compute_set_treasury, caller, new_treasury)

    @contextmanager
    def _mutation(self) -> Iterator[None]:
        if self._executing:
            raise LedgerError("re-entrant mutation while a transition is executing")
        self._executing = True
        try:
            yield
        finally:
            self._executing = False

    def _run(self, action: Action, compute: Callable[..., PendingTransition],
             caller: Account, *args: Any) -> Transition:
        """
        Compute a transition against this ledger and execute it.

        Precondition failures and execution failures are both rejections.
        """
        try:
            return self._execute(compute(self, caller, *args))
        except RentalError as e:
            if self.verbose:
                print(f"✗ REJECTED {TransitionOrigin(action, caller)!r}: {e!r}")
            raise

    # ========================================================================
    # TRANSITION EXECUTION
    # ========================================================================

    def _execute(self, pending: PendingTransition) -> Transition:
        """
        Execute a PendingTransition atomically.

        Only reached through the mutating operations above, so every
        transition has passed its compute_* checks for the stated caller.

        Steps:
            1. The transition must have been computed at the current block.
            2. Every state change's old_value must match the live store.
            3. Transfers run in order. On the first rejection every transfer
               already performed is reversed, newest first, and
               TransferFailed is raised.
            4. State changes are applied, the transition is logged and its
               events emitted.

        Raises:
            LedgerError: Stale block
            RentalActive / AlreadyExists: The store changed under the transition
            TransferFailed: An external transfer was rejected (nothing persisted)
            CompensationFailed: A reversal was rejected too
        """
        if pending.block != self._current_block:
            raise LedgerError(
                f"transition computed at block {pending.block}, ledger is at {self._current_block}"
            )
        self._verify_state_changes(pending.state_changes)
        self._perform_transfers(pending.transfers)

        sequence = self._next_sequence
        self._next_sequence += 1
        tx = Transition(
            origin=pending.origin,
            block=self._current_block,
            transfers=pending.transfers,
            state_changes=pending.state_changes,
            events=pending.events,
            exec_id=f"exec:{self.name}:{sequence:012d}:{self._current_block}",
            ledger_name=self.name,
            sequence_number=sequence,
        )
        self._apply_state_changes(tx.state_changes)
        self.transition_log.append(tx)
        self.events.extend(tx.events)

        if self.verbose:
            print(repr(tx))
            print(f"✓ APPLIED {tx.origin!r}")
        return tx

    def _verify_state_changes(self, state_changes: Tuple[StateChange, ...]) -> None:
        """Optimistic concurrency check: the store must still look as the writer saw it."""
        for sc in state_changes:
            live = self._relations[sc.relation].get(sc.key)
            if live != sc.old_value:
                error = _STALE_ERRORS.get(sc.relation, LedgerError)
                raise error(
                    f"stale state for {sc.relation}[{sc.key!r}]: "
                    f"expected {sc.old_value!r}, found {live!r}"
                )

    def _apply_state_changes(self, state_changes: Tuple[StateChange, ...]) -> None:
        for sc in state_changes:
            relation = self._relations[sc.relation]
            if sc.new_value is None:
                relation.pop(sc.key, None)
            else:
                relation[sc.key] = sc.new_value

    def _dispatch(self, transfer: Transfer) -> bool:
        """Hand a transfer to its collaborator and report whether it was accepted."""
        if transfer.kind is TransferKind.CURRENCY:
            return bool(self._currency.transfer(transfer.amount, transfer.source, transfer.dest))
        registry = self._registries.get(transfer.asset_ref)
        if registry is None:
            return False
        return bool(registry.transfer(transfer.asset_id, transfer.source, transfer.dest))

    def _perform_transfers(self, transfers: Tuple[Transfer, ...]) -> None:
        performed: List[Transfer] = []
        for transfer in transfers:
            try:
                accepted = self._dispatch(transfer)
            except Exception as e:
                self._compensate(performed)
                if isinstance(e, LedgerError):
                    raise
                raise TransferFailed(f"{transfer!r} raised {e!r}") from e
            if not accepted:
                self._compensate(performed)
                raise TransferFailed(f"{transfer!r} rejected")
            performed.append(transfer)

    def _compensate(self, performed: List[Transfer]) -> None:
        """
        Reverse performed transfers, newest first.

        Every reversal is attempted even if an earlier one fails; the ones
        that could not be reversed are reported together.
        """
        unreversed = []
        reasons = []
        for transfer in reversed(performed):
            try:
                accepted = self._dispatch(transfer.reversed())
            except Exception as e:
                accepted = False
                reasons.append(repr(e))
            if not accepted:
                unreversed.append(transfer)
        if unreversed:
            if self.verbose:
                print(f"⚠️  COMPENSATION FAILED: {unreversed!r}")
            raise CompensationFailed(
                f"could not reverse {len(unreversed)} transfer(s): {unreversed!r} {reasons}",
                tuple(unreversed),
            )
