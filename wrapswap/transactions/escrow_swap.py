"""
Escrow Swap Transaction

Two owners each deposit an asset plus a fee into a wrapper held by a trusted
intermediary. The intermediary consumes both wrappers in one transaction,
delivering each asset to the other depositor and keeping the combined fee.

Wrapper lifecycle: CREATED -> PENDING (deposit) -> CONSUMED (execute).

Actors:
- Depositor: owns an asset and enough fee currency
- Intermediary: receives wrappers, executes the swap, collects the fees
"""

import logging
from typing import List

from ..chain.ledger import Ledger
from ..chain.errors import ObjectNotFound
from ..chain.primitives import BlockType
from ..chain.types import Asset, Fee, EscrowWrapper, WrapperState


logger = logging.getLogger(__name__)


# =============================================================================
# Parameters
# =============================================================================

MIN_FEE = 1000


# =============================================================================
# Errors
# =============================================================================

class EscrowError(Exception):
    """Base class for escrow protocol failures."""


class InsufficientFee(EscrowError):
    """The fee offered with a deposit is below the protocol minimum."""

    def __init__(self, amount: int, minimum: int):
        self.amount = amount
        self.minimum = minimum
        super().__init__(f"Fee {amount} is below the minimum of {minimum}")


# =============================================================================
# Protocol
# =============================================================================

class SwapEscrow:
    """Deposit and execute operations of the swap-via-wrapper protocol."""

    def __init__(self, ledger: Ledger, min_fee: int = MIN_FEE):
        self.ledger = ledger
        self.min_fee = min_fee

    def deposit(self, sender: str, asset_id: str, fee_id: str, intermediary: str) -> str:
        """
        Wrap an asset and a fee for `intermediary`.

        Raises InsufficientFee, leaving everything with the sender, if the fee
        is below the minimum. Returns the wrapper ID.
        """
        with self.ledger.transaction(sender) as tx:
            fee = self.ledger.borrow(tx, fee_id, Fee)
            if fee.amount < self.min_fee:
                raise InsufficientFee(fee.amount, self.min_fee)

            asset = self.ledger.take(tx, asset_id, Asset)
            fee = self.ledger.take(tx, fee_id, Fee)

            wrapper = EscrowWrapper.wrap(tx.new_id(), sender, asset, fee).sealed()
            self.ledger.transfer(tx, wrapper, intermediary)
            self.ledger.record(tx, BlockType.ESCROW_DEPOSIT, {
                "wrapper_id": wrapper.wrapper_id,
                "intermediary": intermediary,
                "fee": fee.amount,
            })

        logger.info("%s deposited asset %s with fee %d into wrapper %s for %s",
                    sender, asset_id, fee.amount, wrapper.wrapper_id, intermediary)
        return wrapper.wrapper_id

    def execute(self, sender: str, wrapper_a_id: str, wrapper_b_id: str) -> None:
        """
        Consume two wrappers the sender holds and cross-deliver their contents.

        The asset from each wrapper goes to the other wrapper's original owner;
        the two fees are merged and go to the sender. Passing the same wrapper
        twice fails with InvalidOwnership, since the first take consumes it.
        """
        with self.ledger.transaction(sender) as tx:
            wrapper_a = self.ledger.take(tx, wrapper_a_id, EscrowWrapper)
            wrapper_b = self.ledger.take(tx, wrapper_b_id, EscrowWrapper)

            owner_a, asset_a, fee_a, shell_a = wrapper_a.unwrap()
            owner_b, asset_b, fee_b, shell_b = wrapper_b.unwrap()

            self.ledger.transfer(tx, asset_a, owner_b)
            self.ledger.transfer(tx, asset_b, owner_a)

            fee = fee_a.join(fee_b)
            self.ledger.transfer(tx, fee, sender)
            self.ledger.destroy(tx, fee_b)

            self.ledger.destroy(tx, shell_a)
            self.ledger.destroy(tx, shell_b)
            self.ledger.record(tx, BlockType.SWAP_EXECUTED, {
                "wrappers": [wrapper_a_id, wrapper_b_id],
                "owners": [owner_a, owner_b],
                "fee": fee.amount,
            })

        logger.info("%s executed swap of wrappers %s and %s: %s <-> %s, fee %d",
                    sender, wrapper_a_id, wrapper_b_id, owner_a, owner_b, fee.amount)

    # ─────────────────────────────────────────────────────────────────────────
    # Views
    # ─────────────────────────────────────────────────────────────────────────

    def pending_wrappers(self, intermediary: str) -> List[EscrowWrapper]:
        """Opaque wrappers waiting for `intermediary` to execute them."""
        return [
            w for w in self.ledger.objects_owned_by(intermediary, EscrowWrapper)
            if w.state == WrapperState.PENDING
        ]

    def wrapper_state(self, wrapper_id: str) -> WrapperState:
        """
        State of a wrapper; consumed wrappers are looked up among tombstones.

        Raises ObjectNotFound for an ID that was never a wrapper.
        """
        try:
            return self.ledger.get(wrapper_id, EscrowWrapper).state
        except ObjectNotFound:
            shell = self.ledger.tombstone(wrapper_id)
            if shell is None:
                raise ObjectNotFound(f"Unknown wrapper: {wrapper_id}") from None
            return shell.state
