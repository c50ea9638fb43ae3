"""
Trace schema definitions.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# Actions a trace may schedule, with the params each one requires
ACTION_PARAMS = {
    "issue": ("magic", "strength", "recipient"),
    "transfer": ("asset", "recipient"),
    "mint": ("amount",),
    "deposit": ("asset", "fee", "intermediary"),
    "execute": ("wrappers",),
}


@dataclass
class TraceAction:
    """A single action in a trace."""
    time: float
    actor: str
    action: str
    params: Dict[str, Any] = field(default_factory=dict)
    expected_result: Optional[str] = None   # "ok" or an error class name
    bind: Optional[str] = None              # Label for the object ID the action returns


@dataclass
class TraceAccountSpec:
    """Initial state of a named account."""
    balance: int = 0


@dataclass
class TraceSetup:
    """Initial setup for a trace."""
    admin: str
    accounts: Dict[str, TraceAccountSpec]
    min_fee: Optional[int] = None


@dataclass
class TraceAssertion:
    """An assertion to check at the end of a trace."""
    type: str
    description: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Trace:
    """A recorded sequence of actions for replay."""
    name: str
    description: str
    setup: TraceSetup
    actions: List[TraceAction]
    assertions: List[TraceAssertion]


class ValidationError(Exception):
    """Error during trace validation."""
    pass
