"""
Ledger: the execution substrate for the swap protocol.

Manages:
- Account identities and their chains
- The top-level object store and the ownership map
- Atomic, serialized transactions with rollback
- Tombstones of destroyed objects
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Type

from .primitives import Chain, Block, BlockType, hash_data, derive_id
from .errors import (
    LedgerError,
    UnknownAccount,
    InvalidOwnership,
    ObjectNotFound,
    WrongObjectType,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Parameters
# =============================================================================

SYSTEM_ACCOUNT = "system"


def address_for(name: str) -> str:
    """Address of the account created for a human-readable name."""
    return f"pk_{name}"


@dataclass
class TxContext:
    """
    Context of one ledger transaction.

    Carries the sender identity and the digest that object IDs created by the
    transaction are derived from.
    """
    sender: str
    digest: str
    timestamp: float
    _counter: int = field(default=0, repr=False)

    def new_id(self) -> str:
        """Allocate a fresh, globally unique object ID."""
        object_id = derive_id(self.digest, self._counter)
        self._counter += 1
        return object_id


@dataclass
class _Snapshot:
    objects: Dict[str, Any]
    owners: Dict[str, str]
    tombstones: Dict[str, Any]
    chain_lengths: Dict[str, int]


class Ledger:
    """
    Object ledger with exclusive ownership.

    Every top-level object has exactly one owner. Transactions are serialized
    by a lock; an exception anywhere inside a transaction restores the state
    from before it started and propagates. An object taken by a transaction
    leaves the ownership map, so it can be the input of at most one
    successful transaction. Queries take the same lock, so a reader sees the
    state before or after a transaction, never a partial one.
    """

    def __init__(self, current_time: float = 0.0):
        self.chains: Dict[str, Chain] = {}
        self.current_time: float = current_time

        self._objects: Dict[str, Any] = {}
        self._owners: Dict[str, str] = {}
        self._tombstones: Dict[str, Any] = {}

        self._lock = threading.RLock()
        self._active: Optional[TxContext] = None
        self._tx_seq = 0
        self.committed: List[str] = []

        self.create_account(SYSTEM_ACCOUNT)

    # ─────────────────────────────────────────────────────────────────────────
    # Accounts
    # ─────────────────────────────────────────────────────────────────────────

    def create_account(self, address: str) -> Chain:
        """Register an account with a fresh chain. Idempotent."""
        with self._lock:
            chain = self.chains.get(address)
            if chain is None:
                chain = Chain(address, f"sk_{address}", self.current_time)
                self.chains[address] = chain
                logger.debug("Registered account %s", address)
            return chain

    def get_chain(self, address: str) -> Optional[Chain]:
        """Get a chain by address."""
        return self.chains.get(address)

    def has_account(self, address: str) -> bool:
        return address in self.chains

    def advance_time(self, seconds: float):
        """Advance ledger time."""
        if seconds < 0:
            raise ValueError(f"Cannot go backwards in time: {seconds}")
        self.current_time += seconds

    # ─────────────────────────────────────────────────────────────────────────
    # Transactions
    # ─────────────────────────────────────────────────────────────────────────

    @contextmanager
    def transaction(self, sender: str) -> Iterator[TxContext]:
        """
        Run a block of ledger operations as one atomic transaction.

        Usage:
            with ledger.transaction(sender) as tx:
                asset = ledger.take(tx, asset_id, Asset)
                ledger.transfer(tx, asset, recipient)
        """
        with self._lock:
            if self._active is not None:
                raise LedgerError(f"Transaction {self._active.digest} is already open")
            if sender not in self.chains:
                raise UnknownAccount(f"Unknown account: {sender}")

            self._tx_seq += 1
            tx = TxContext(
                sender=sender,
                digest=hash_data({
                    "sender": sender,
                    "seq": self._tx_seq,
                    "time": self.current_time,
                }),
                timestamp=self.current_time,
            )
            snapshot = self._snapshot()
            self._active = tx
            try:
                yield tx
            except BaseException as e:
                self._restore(snapshot)
                logger.warning("Transaction %s from %s rolled back: %s: %s",
                               tx.digest, sender, type(e).__name__, e)
                raise
            else:
                self.committed.append(tx.digest)
                logger.debug("Transaction %s from %s committed", tx.digest, sender)
            finally:
                self._active = None

    def _snapshot(self) -> _Snapshot:
        return _Snapshot(
            objects=dict(self._objects),
            owners=dict(self._owners),
            tombstones=dict(self._tombstones),
            chain_lengths={addr: len(chain) for addr, chain in self.chains.items()},
        )

    def _restore(self, snapshot: _Snapshot):
        self._objects = snapshot.objects
        self._owners = snapshot.owners
        self._tombstones = snapshot.tombstones
        for addr in list(self.chains):
            length = snapshot.chain_lengths.get(addr)
            if length is None:
                # Account was registered by the failed transaction
                del self.chains[addr]
            else:
                self.chains[addr].truncate(length)

    def _check_active(self, tx: TxContext):
        if self._active is not tx:
            raise LedgerError(f"Transaction {tx.digest} is not open")

    # ─────────────────────────────────────────────────────────────────────────
    # Object Operations (inside a transaction)
    # ─────────────────────────────────────────────────────────────────────────

    def _owned(self, tx: TxContext, object_id: str, obj_type: Type) -> Any:
        self._check_active(tx)
        owner = self._owners.get(object_id)
        if owner != tx.sender:
            raise InvalidOwnership(object_id, tx.sender, owner)
        obj = self._objects[object_id]
        if obj_type is not None and not isinstance(obj, obj_type):
            raise WrongObjectType(
                f"Object {object_id} is a {type(obj).__name__}, expected {obj_type.__name__}"
            )
        return obj

    def borrow(self, tx: TxContext, object_id: str, obj_type: Type = None) -> Any:
        """Read an object the sender owns without consuming it."""
        return self._owned(tx, object_id, obj_type)

    def take(self, tx: TxContext, object_id: str, obj_type: Type = None) -> Any:
        """
        Consume an object the sender owns.

        The object leaves the ownership map and now exists only as a value in
        the transaction; it must be transferred, wrapped or destroyed.
        """
        obj = self._owned(tx, object_id, obj_type)
        del self._objects[object_id]
        del self._owners[object_id]
        self._record(tx, tx.sender, BlockType.OBJECT_RELEASED, {
            "object_id": object_id,
            "kind": type(obj).__name__,
        })
        return obj

    def update(self, tx: TxContext, obj: Any):
        """Replace a borrowed object with a new value under the same ID."""
        object_id = obj.object_id
        self._owned(tx, object_id, type(obj))
        self._objects[object_id] = obj

    def transfer(self, tx: TxContext, obj: Any, recipient: str):
        """Give exclusive ownership of an object to `recipient`. Unknown recipients are registered."""
        self._check_active(tx)
        object_id = obj.object_id
        if object_id in self._owners:
            raise LedgerError(f"Object {object_id} is still owned by {self._owners[object_id]}")
        if recipient not in self.chains:
            self.create_account(recipient)
        self._objects[object_id] = obj
        self._owners[object_id] = recipient
        self._record(tx, recipient, BlockType.OBJECT_RECEIVED, {
            "object_id": object_id,
            "kind": type(obj).__name__,
            "from": tx.sender,
        })

    def destroy(self, tx: TxContext, tombstone: Any):
        """Retire a taken object for good, keeping its final value for audit."""
        self._check_active(tx)
        object_id = tombstone.object_id
        if object_id in self._owners:
            raise LedgerError(f"Object {object_id} must be taken before it is destroyed")
        self._tombstones[object_id] = tombstone

    def record(self, tx: TxContext, block_type: BlockType, payload: dict) -> Block:
        """Append a protocol record to the sender's chain."""
        self._check_active(tx)
        return self._record(tx, tx.sender, block_type, payload)

    def _record(self, tx: TxContext, address: str, block_type: BlockType, payload: dict) -> Block:
        payload = dict(payload, tx=tx.digest)
        return self.chains[address].append(block_type, payload, tx.timestamp)

    # ─────────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────────

    def exists(self, object_id: str) -> bool:
        with self._lock:
            return object_id in self._objects

    def get(self, object_id: str, obj_type: Type = None) -> Any:
        """Read a top-level object by ID."""
        with self._lock:
            obj = self._objects.get(object_id)
        if obj is None:
            raise ObjectNotFound(f"No object {object_id}")
        if obj_type is not None and not isinstance(obj, obj_type):
            raise WrongObjectType(
                f"Object {object_id} is a {type(obj).__name__}, expected {obj_type.__name__}"
            )
        return obj

    def owner_of(self, object_id: str) -> Optional[str]:
        with self._lock:
            return self._owners.get(object_id)

    def objects_owned_by(self, address: str, obj_type: Type = None) -> List[Any]:
        """All top-level objects owned by an address, optionally filtered by type."""
        with self._lock:
            return [
                self._objects[oid]
                for oid, owner in self._owners.items()
                if owner == address
                and (obj_type is None or isinstance(self._objects[oid], obj_type))
            ]

    def tombstone(self, object_id: str) -> Optional[Any]:
        with self._lock:
            return self._tombstones.get(object_id)

    def summary(self) -> dict:
        """Counts for logging and reports."""
        with self._lock:
            per_account: Dict[str, int] = {}
            for owner in self._owners.values():
                per_account[owner] = per_account.get(owner, 0) + 1
            return {
                "accounts": len(self.chains),
                "objects": len(self._objects),
                "tombstones": len(self._tombstones),
                "transactions": len(self.committed),
                "objects_per_account": per_account,
            }
