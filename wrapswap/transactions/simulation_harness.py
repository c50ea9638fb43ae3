"""
Simulation harness for protocol testing.

Wires a ledger, an asset registry and the swap escrow together and lets tests
and traces refer to accounts by name instead of address.
"""

from typing import Dict, List, Optional

from ..chain.ledger import Ledger, address_for
from ..chain.types import Asset
from . import fees
from .asset_registry import AssetRegistry
from .escrow_swap import SwapEscrow, MIN_FEE


class SwapSimulation:
    """
    Helper class to run swap scenarios.

    Account names map to addresses with address_for(); every method takes
    names and returns object IDs.
    """

    def __init__(self, admin: str = "admin", min_fee: int = MIN_FEE, ledger: Optional[Ledger] = None):
        self.ledger = ledger or Ledger()
        self.accounts: Dict[str, str] = {}
        self.create_account(admin)
        self.admin = admin
        self.registry = AssetRegistry.bootstrap(self.ledger, self.address(admin))
        self.escrow = SwapEscrow(self.ledger, min_fee=min_fee)

    def address(self, name: str) -> str:
        """Address of a named account."""
        if name not in self.accounts:
            raise ValueError(f"Unknown account: {name}")
        return self.accounts[name]

    def create_account(self, name: str, balance: int = 0) -> str:
        """Register an account and optionally fund it with fee currency."""
        address = address_for(name)
        self.ledger.create_account(address)
        self.accounts[name] = address
        if balance:
            fees.mint(self.ledger, address, balance)
        return address

    def owner_name(self, object_id: str) -> Optional[str]:
        """Name of the account owning an object, or None."""
        owner = self.ledger.owner_of(object_id)
        for name, address in self.accounts.items():
            if address == owner:
                return name
        return owner

    # ─────────────────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────────────────

    def issue(self, magic: int, strength: int, recipient: str, sender: Optional[str] = None) -> str:
        return self.registry.issue(
            self.address(sender or self.admin), magic, strength, self.address(recipient),
        )

    def transfer(self, sender: str, asset_id: str, recipient: str):
        self.registry.transfer(self.address(sender), asset_id, self.address(recipient))

    def deposit(self, owner: str, asset_id: str, fee_amount: int, intermediary: str) -> str:
        """
        Gather exactly `fee_amount` from the owner's fees and deposit it with the asset.

        If the deposit fails, the gathered fee stays with the owner, so their
        balance is unchanged.
        """
        sender = self.address(owner)
        fee_id = fees.gather(self.ledger, sender, fee_amount)
        return self.escrow.deposit(sender, asset_id, fee_id, self.address(intermediary))

    def execute(self, executor: str, wrapper_a: str, wrapper_b: str):
        self.escrow.execute(self.address(executor), wrapper_a, wrapper_b)

    # ─────────────────────────────────────────────────────────────────────────
    # Views
    # ─────────────────────────────────────────────────────────────────────────

    def balance(self, name: str) -> int:
        return fees.balance_of(self.ledger, self.address(name))

    def holdings(self, name: str) -> List[Asset]:
        """Assets owned by a named account."""
        return self.ledger.objects_owned_by(self.address(name), Asset)

    def attributes(self, name: str) -> List[tuple]:
        """(magic, strength) pairs of the assets a named account owns, sorted."""
        return sorted((a.magic, a.strength) for a in self.holdings(name))
