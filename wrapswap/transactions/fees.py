"""
Fee currency operations: mint, split, join, balance.

Fees are ordinary ledger objects, so splitting and joining go through the same
ownership checks as every other object.
"""

import logging

from ..chain.ledger import Ledger, SYSTEM_ACCOUNT
from ..chain.types import Fee
from ..chain.errors import InsufficientBalance


logger = logging.getLogger(__name__)


def mint(ledger: Ledger, recipient: str, amount: int) -> str:
    """Create `amount` of fee currency out of thin air for `recipient`. Returns the fee ID."""
    with ledger.transaction(SYSTEM_ACCOUNT) as tx:
        fee = Fee(fee_id=tx.new_id(), amount=amount)
        ledger.transfer(tx, fee, recipient)
    logger.debug("Minted %d to %s as %s", amount, recipient, fee.fee_id)
    return fee.fee_id


def split(ledger: Ledger, sender: str, fee_id: str, amount: int) -> str:
    """Split `amount` off a fee the sender owns into a new fee object. Returns the new ID."""
    with ledger.transaction(sender) as tx:
        fee = ledger.borrow(tx, fee_id, Fee)
        if amount > fee.amount:
            raise InsufficientBalance(sender, amount, fee.amount)
        remainder, piece = fee.split(amount, tx.new_id())
        ledger.update(tx, remainder)
        ledger.transfer(tx, piece, sender)
    return piece.fee_id


def join(ledger: Ledger, sender: str, fee_id: str, other_id: str):
    """Merge `other_id` into `fee_id`. Both must be owned by the sender."""
    with ledger.transaction(sender) as tx:
        fee = ledger.borrow(tx, fee_id, Fee)
        other = ledger.take(tx, other_id, Fee)
        ledger.update(tx, fee.join(other))
        ledger.destroy(tx, other)


def balance_of(ledger: Ledger, address: str) -> int:
    """Total fee currency held by an address."""
    return sum(fee.amount for fee in ledger.objects_owned_by(address, Fee))


def gather(ledger: Ledger, sender: str, amount: int) -> str:
    """
    Produce a single fee object worth exactly `amount` from the sender's fees.

    All of the sender's fee objects are merged into one, then `amount` is split
    off it. Runs as one transaction.
    """
    with ledger.transaction(sender) as tx:
        fees = sorted(ledger.objects_owned_by(sender, Fee), key=lambda f: f.fee_id)
        available = sum(f.amount for f in fees)
        if amount > available or not fees:
            raise InsufficientBalance(sender, amount, available)

        merged = ledger.borrow(tx, fees[0].fee_id, Fee)
        for other in fees[1:]:
            taken = ledger.take(tx, other.fee_id, Fee)
            merged = merged.join(taken)
            ledger.destroy(tx, taken)

        remainder, piece = merged.split(amount, tx.new_id())
        ledger.update(tx, remainder)
        ledger.transfer(tx, piece, sender)
    return piece.fee_id
