"""
Trace module for describing and replaying swap scenarios.
"""

from .schema import (
    ACTION_PARAMS,
    Trace, TraceAction, TraceAssertion,
    TraceAccountSpec, TraceSetup,
    ValidationError,
)
from .parser import parse_trace, load_trace

__all__ = [
    # Schema
    "ACTION_PARAMS",
    "Trace",
    "TraceAction",
    "TraceAssertion",
    "TraceAccountSpec",
    "TraceSetup",
    "ValidationError",
    # Parser
    "parse_trace",
    "load_trace",
]
