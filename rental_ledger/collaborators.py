"""
collaborators.py - In-memory external collaborators

Reference implementations of the two protocols the rental ledger depends on:

- InMemoryAssetRegistry: implements AssetRegistry (ownership + custody moves)
- InMemoryCurrencyLedger: implements CurrencyLedger (atomic value transfers)

Real deployments plug in adapters to an NFT contract and a payment ledger;
these are used by tests, demos and simulations.
"""

from collections import defaultdict
from typing import Dict, List, Optional


class InMemoryAssetRegistry:
    """
    Non-fungible asset registry held in a dict.

    transfer() succeeds only when the asset exists, sender is its current
    owner and sender differs from recipient.
    """

    def __init__(self, name: str):
        self.name = name
        self.owners: Dict[int, str] = {}

    def mint(self, asset_id: int, owner: str) -> None:
        """
        Create an asset owned by owner.

        Raises:
            ValueError: If the asset already exists or owner is empty
        """
        if asset_id in self.owners:
            raise ValueError(f"{self.name}#{asset_id} already minted")
        if not owner:
            raise ValueError("owner cannot be empty")
        self.owners[asset_id] = owner

    def current_owner(self, asset_id: int) -> Optional[str]:
        return self.owners.get(asset_id)

    def transfer(self, asset_id: int, sender: str, recipient: str) -> bool:
        if self.owners.get(asset_id) != sender or sender == recipient or not recipient:
            return False
        self.owners[asset_id] = recipient
        return True

    def assets_of(self, owner: str) -> List[int]:
        return sorted(a for a, o in self.owners.items() if o == owner)

    def __repr__(self):
        return f"InMemoryAssetRegistry({self.name}, {len(self.owners)} assets)"


class InMemoryCurrencyLedger:
    """
    Base-currency ledger with non-negative integer balances.

    transfer() is atomic: it either moves the full amount or nothing.
    It is rejected for non-positive amounts, self-transfers and insufficient
    balance.
    """

    def __init__(self, symbol: str = "STX"):
        self.symbol = symbol
        self.balances: Dict[str, int] = defaultdict(int)

    def mint(self, account: str, amount: int) -> None:
        """Issue amount to account (test and demo funding)."""
        if amount <= 0:
            raise ValueError(f"mint amount must be positive, got {amount}")
        self.balances[account] += amount

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def transfer(self, amount: int, sender: str, recipient: str) -> bool:
        if amount <= 0 or sender == recipient or not recipient:
            return False
        if self.balances.get(sender, 0) < amount:
            return False
        self.balances[sender] -= amount
        self.balances[recipient] += amount
        return True

    def total_supply(self) -> int:
        return sum(self.balances.values())

    def __repr__(self):
        return f"InMemoryCurrencyLedger({self.symbol}, {len(self.balances)} accounts)"
