"""
Core chain primitives: hashing, identifiers, Block, and Chain.

Every account on the ledger keeps a Chain: an append-only, hash-linked log of
what happened to the objects it owns. The chain is an audit record only; the
authoritative ownership map lives in the Ledger.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import List, Optional, Set
from enum import Enum


GENESIS_PREVIOUS = "0" * 16


# =============================================================================
# Hashing and Identifiers
# =============================================================================

class _EnumEncoder(json.JSONEncoder):
    """JSON encoder that writes Enum members by name."""
    def default(self, obj):
        if isinstance(obj, Enum):
            return obj.name
        return super().default(obj)


def hash_data(data) -> str:
    """Deterministic 16 hex digit digest of a JSON-serializable value."""
    canonical = json.dumps(data, sort_keys=True, separators=(',', ':'), cls=_EnumEncoder)
    return hashlib.sha256(canonical.encode()).hexdigest()[:16]


def sign(signing_key: str, digest: str) -> str:
    """Keyed digest standing in for an account signature. Not secure."""
    return hashlib.sha256(f"{signing_key}:{digest}".encode()).hexdigest()[:16]


def derive_id(tx_digest: str, counter: int) -> str:
    """Object ID for the `counter`-th object created by a transaction."""
    return hash_data({"tx": tx_digest, "n": counter})


# =============================================================================
# Block Types
# =============================================================================

class BlockType(Enum):
    """What an account's chain can record."""
    GENESIS = "genesis"
    OBJECT_RECEIVED = "object_received"   # Ownership of an object moved to this account
    OBJECT_RELEASED = "object_released"   # This account gave up an object to a transaction

    # Protocol records
    ASSET_ISSUED = "asset_issued"         # Issuer admin minted an asset
    ESCROW_DEPOSIT = "escrow_deposit"     # Owner wrapped an asset + fee for an intermediary
    SWAP_EXECUTED = "swap_executed"       # Intermediary consumed a pair of wrappers


# =============================================================================
# Block Structure
# =============================================================================

@dataclass
class Block:
    """
    One entry in an account's chain.

    Blocks are unilateral: each account records what happened to its own
    objects. The transaction digest in the payload ties together the blocks
    written by a single ledger transaction across several chains.
    """
    owner: str                    # Address of the account
    sequence: int
    previous_hash: str

    block_type: BlockType
    timestamp: float              # Ledger time of the transaction
    payload: dict

    signature: str = ""
    block_hash: str = ""

    def __post_init__(self):
        if not self.block_hash:
            self.block_hash = self.compute_hash()

    def _hashed_fields(self) -> dict:
        return {
            "owner": self.owner,
            "sequence": self.sequence,
            "previous_hash": self.previous_hash,
            "block_type": self.block_type.value,
            "timestamp": self.timestamp,
            "payload": self.payload,
        }

    def compute_hash(self) -> str:
        return hash_data(self._hashed_fields())

    def to_dict(self) -> dict:
        data = self._hashed_fields()
        data["signature"] = self.signature
        data["block_hash"] = self.block_hash
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Block':
        fields = dict(data)
        fields["block_type"] = BlockType(fields["block_type"])
        return cls(**fields)


# =============================================================================
# Account Chain
# =============================================================================

class Chain:
    """
    A single account's chain.

    Records:
    - Genesis (account creation)
    - Objects received and released
    - Assets issued (if issuer admin)
    - Escrow deposits (if depositor)
    - Swaps executed (if intermediary)

    Replaying the RECEIVED and RELEASED blocks gives the set of objects the
    account owns, which must always match the ledger.
    """

    def __init__(self, address: str, signing_key: str, created_at: float):
        self.address = address
        self._signing_key = signing_key
        self.blocks: List[Block] = []
        self._seal(Block(
            owner=address,
            sequence=0,
            previous_hash=GENESIS_PREVIOUS,
            block_type=BlockType.GENESIS,
            timestamp=created_at,
            payload={"created": created_at},
        ))

    def _seal(self, block: Block) -> Block:
        block.signature = sign(self._signing_key, block.block_hash)
        self.blocks.append(block)
        return block

    @property
    def head(self) -> Block:
        return self.blocks[-1]

    @property
    def head_hash(self) -> str:
        return self.head.block_hash

    def __len__(self) -> int:
        return len(self.blocks)

    def append(self, block_type: BlockType, payload: dict, timestamp: float) -> Block:
        """Append and sign a new block."""
        return self._seal(Block(
            owner=self.address,
            sequence=len(self.blocks),
            previous_hash=self.head_hash,
            block_type=block_type,
            timestamp=timestamp,
            payload=payload,
        ))

    def truncate(self, length: int):
        """Drop every block past `length`. Used when a transaction is rolled back."""
        if length < 1:
            raise ValueError("Cannot truncate genesis block")
        del self.blocks[length:]

    def get_blocks_by_type(self, block_type: BlockType) -> List[Block]:
        return [b for b in self.blocks if b.block_type == block_type]

    def get_blocks_for_tx(self, tx_digest: str) -> List[Block]:
        """Get all blocks written by one ledger transaction."""
        return [b for b in self.blocks if b.payload.get("tx") == tx_digest]

    def verify_chain(self) -> bool:
        """Check links, sequence numbers, hashes and signatures."""
        if not self.blocks or self.blocks[0].previous_hash != GENESIS_PREVIOUS:
            return False

        previous = GENESIS_PREVIOUS
        for i, block in enumerate(self.blocks):
            if block.sequence != i or block.previous_hash != previous:
                return False
            if block.owner != self.address:
                return False
            if block.block_hash != block.compute_hash():
                return False
            if block.signature != sign(self._signing_key, block.block_hash):
                return False
            previous = block.block_hash

        return True

    def holdings(self, before_time: Optional[float] = None) -> Set[str]:
        """
        Replay the chain and return the IDs of the objects this account holds.

        If before_time is specified, only blocks before that time are replayed.
        """
        held: Set[str] = set()
        for block in self.blocks:
            if before_time is not None and block.timestamp >= before_time:
                break
            if block.block_type == BlockType.OBJECT_RECEIVED:
                held.add(block.payload["object_id"])
            elif block.block_type == BlockType.OBJECT_RELEASED:
                held.discard(block.payload["object_id"])
        return held

    def to_dict(self) -> dict:
        """Serializable export of the whole chain for audit."""
        return {
            "address": self.address,
            "head": self.head_hash,
            "blocks": [b.to_dict() for b in self.blocks],
        }
