"""
wrapswap chain - the ledger substrate the swap protocol runs on.

This package provides:
- primitives: hashing, ID derivation, Block, and Chain
- types: Asset, Fee, EscrowWrapper, IssuerRecord
- ledger: the object Ledger with atomic transactions and exclusive ownership
- errors: substrate exceptions
"""

from .primitives import (
    hash_data,
    sign,
    derive_id,
    GENESIS_PREVIOUS,
    Block,
    BlockType,
    Chain,
)

from .types import (
    UINT64_MAX,
    Asset,
    Fee,
    IssuerRecord,
    WrapperState,
    WrapperStateError,
    EscrowWrapper,
)

from .errors import (
    LedgerError,
    UnknownAccount,
    InvalidOwnership,
    ObjectNotFound,
    WrongObjectType,
    InsufficientBalance,
)

from .ledger import (
    SYSTEM_ACCOUNT,
    TxContext,
    Ledger,
    address_for,
)

__all__ = [
    # Primitives
    "hash_data",
    "sign",
    "derive_id",
    "GENESIS_PREVIOUS",
    "Block",
    "BlockType",
    "Chain",
    # Types
    "UINT64_MAX",
    "Asset",
    "Fee",
    "IssuerRecord",
    "WrapperState",
    "WrapperStateError",
    "EscrowWrapper",
    # Errors
    "LedgerError",
    "UnknownAccount",
    "InvalidOwnership",
    "ObjectNotFound",
    "WrongObjectType",
    "InsufficientBalance",
    # Ledger
    "SYSTEM_ACCOUNT",
    "TxContext",
    "Ledger",
    "address_for",
]
