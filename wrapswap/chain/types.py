"""
Type definitions for the objects held on the ledger: assets, fees, escrow
wrappers and the issuer record.

All ledger objects are frozen. A "mutation" replaces the stored object with a
new value carrying the same ID, which keeps transaction rollback a matter of
restoring the previous mapping.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Tuple


UINT64_MAX = 2**64 - 1


def _check_uint64(name: str, value: int):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0 or value > UINT64_MAX:
        raise ValueError(f"{name} out of uint64 range: {value}")


# =============================================================================
# Assets
# =============================================================================

@dataclass(frozen=True)
class Asset:
    """A unique, non-fungible asset with two opaque attributes."""
    asset_id: str
    magic: int
    strength: int

    def __post_init__(self):
        _check_uint64("magic", self.magic)
        _check_uint64("strength", self.strength)

    @property
    def object_id(self) -> str:
        return self.asset_id

    def to_dict(self) -> dict:
        return {
            "asset_id": self.asset_id,
            "magic": self.magic,
            "strength": self.strength,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Asset':
        return cls(
            asset_id=data["asset_id"],
            magic=data["magic"],
            strength=data["strength"],
        )


@dataclass(frozen=True)
class IssuerRecord:
    """
    Counts the assets issued so far.

    Owned by the admin account created at bootstrap; only its owner can issue.
    """
    issuer_id: str
    admin: str
    issued_count: int = 0

    @property
    def object_id(self) -> str:
        return self.issuer_id

    def incremented(self) -> 'IssuerRecord':
        return replace(self, issued_count=self.issued_count + 1)

    def to_dict(self) -> dict:
        return {
            "issuer_id": self.issuer_id,
            "admin": self.admin,
            "issued_count": self.issued_count,
        }


# =============================================================================
# Fees
# =============================================================================

@dataclass(frozen=True)
class Fee:
    """A fungible amount of the fee currency, in minor units."""
    fee_id: str
    amount: int

    def __post_init__(self):
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError(f"Fee amount must be an integer, got {self.amount!r}")
        if self.amount < 0:
            raise ValueError(f"Fee amount cannot be negative: {self.amount}")

    @property
    def object_id(self) -> str:
        return self.fee_id

    def join(self, other: 'Fee') -> 'Fee':
        """Absorb another fee. The result keeps this fee's ID."""
        return replace(self, amount=self.amount + other.amount)

    def split(self, amount: int, new_id: str) -> Tuple['Fee', 'Fee']:
        """Return (remainder, piece) where piece holds exactly `amount`."""
        if amount < 0 or amount > self.amount:
            raise ValueError(f"Cannot split {amount} from a fee of {self.amount}")
        return replace(self, amount=self.amount - amount), Fee(fee_id=new_id, amount=amount)

    def to_dict(self) -> dict:
        return {"fee_id": self.fee_id, "amount": self.amount}


# =============================================================================
# Escrow Wrapper
# =============================================================================

class WrapperState(Enum):
    """Lifecycle of an escrow wrapper."""
    CREATED = "created"
    PENDING = "pending"
    CONSUMED = "consumed"


class WrapperStateError(Exception):
    """A wrapper was driven through an illegal state transition."""


@dataclass(frozen=True)
class EscrowWrapper:
    """
    Single-use custody record binding a deposited asset and fee to the
    account that deposited them.

    The contents are private: nothing reads them except unwrap(), and unwrap()
    only works on a pending wrapper. A consumed wrapper is an empty shell.
    """
    wrapper_id: str
    original_owner: str
    _asset: Asset = field(default=None, repr=False, compare=False)
    _fee: Fee = field(default=None, repr=False, compare=False)
    state: WrapperState = WrapperState.CREATED

    @classmethod
    def wrap(cls, wrapper_id: str, original_owner: str, asset: Asset, fee: Fee) -> 'EscrowWrapper':
        return cls(wrapper_id, original_owner, asset, fee)

    @property
    def object_id(self) -> str:
        return self.wrapper_id

    def sealed(self) -> 'EscrowWrapper':
        """CREATED -> PENDING."""
        if self.state != WrapperState.CREATED:
            raise WrapperStateError(f"Wrapper {self.wrapper_id} is {self.state.name}, expected CREATED")
        return replace(self, state=WrapperState.PENDING)

    def unwrap(self) -> Tuple[str, Asset, Fee, 'EscrowWrapper']:
        """
        PENDING -> CONSUMED.

        Returns (original_owner, asset, fee, consumed_shell).
        """
        if self.state != WrapperState.PENDING:
            raise WrapperStateError(f"Wrapper {self.wrapper_id} is {self.state.name}, expected PENDING")
        shell = replace(self, _asset=None, _fee=None, state=WrapperState.CONSUMED)
        return self.original_owner, self._asset, self._fee, shell

    def to_dict(self) -> dict:
        return {
            "wrapper_id": self.wrapper_id,
            "original_owner": self.original_owner,
            "state": self.state.value,
        }
