"""
Assertion evaluation module.

Provides functions to evaluate trace assertions against the state a trace
run leaves behind.
"""

from .evaluator import (
    AssertionResult,
    evaluate_assertion,
    evaluate_all_assertions,
    assertions_passed,
    format_assertion_results,
)
from .registry import (
    ASSERTION_HANDLERS,
    register_assertion_handler,
)

__all__ = [
    "AssertionResult",
    "evaluate_assertion",
    "evaluate_all_assertions",
    "assertions_passed",
    "format_assertion_results",
    "ASSERTION_HANDLERS",
    "register_assertion_handler",
]
