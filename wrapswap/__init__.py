"""
wrapswap - swap two unique assets through a trusted intermediary.

Two owners each wrap an asset and a fee for the intermediary, who consumes
both wrappers in one transaction: each asset goes to the other owner and the
fees go to the intermediary.
"""

from .chain import Ledger, Asset, Fee, EscrowWrapper, WrapperState, InvalidOwnership
from .transactions import (
    MIN_FEE,
    AssetRegistry,
    SwapEscrow,
    InsufficientFee,
    SwapSimulation,
)

__all__ = [
    "Ledger",
    "Asset",
    "Fee",
    "EscrowWrapper",
    "WrapperState",
    "InvalidOwnership",
    "MIN_FEE",
    "AssetRegistry",
    "SwapEscrow",
    "InsufficientFee",
    "SwapSimulation",
]
