"""
Transaction implementations for the wrapswap ledger.

- asset_registry: issue and transfer assets
- fees: mint, split and join fee currency
- escrow_swap: deposit into and execute the swap-via-wrapper escrow
"""

from .asset_registry import AssetRegistry
from .escrow_swap import (
    MIN_FEE,
    EscrowError,
    InsufficientFee,
    SwapEscrow,
)
from .simulation_harness import SwapSimulation

__all__ = [
    "AssetRegistry",
    "MIN_FEE",
    "EscrowError",
    "InsufficientFee",
    "SwapEscrow",
    "SwapSimulation",
]
