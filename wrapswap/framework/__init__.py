"""
wrapswap trace framework

Replays YAML scenario traces against a fresh ledger and checks assertions.
"""

from .engine import (
    ScheduledAction,
    ActionQueue,
    LedgerClock,
)
from .traces import (
    Trace,
    TraceAction,
    TraceAssertion,
    TraceSetup,
    ValidationError,
    parse_trace,
    load_trace,
)
from .assertions import (
    ASSERTION_HANDLERS,
    AssertionResult,
    register_assertion_handler,
    evaluate_assertion,
    evaluate_all_assertions,
    assertions_passed,
    format_assertion_results,
)
from .runner import (
    ActionOutcome,
    TraceRunner,
    TraceRunResult,
    run_trace,
)

__all__ = [
    # Engine
    "ScheduledAction",
    "ActionQueue",
    "LedgerClock",
    # Traces
    "Trace",
    "TraceAction",
    "TraceAssertion",
    "TraceSetup",
    "ValidationError",
    "parse_trace",
    "load_trace",
    # Assertions
    "ASSERTION_HANDLERS",
    "AssertionResult",
    "register_assertion_handler",
    "evaluate_assertion",
    "evaluate_all_assertions",
    "assertions_passed",
    "format_assertion_results",
    # Runner
    "ActionOutcome",
    "TraceRunner",
    "TraceRunResult",
    "run_trace",
]
