"""
Assertion Evaluator

Evaluates trace assertions against the state a trace run leaves behind.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from ..traces.schema import TraceAssertion
from .registry import ASSERTION_HANDLERS


logger = logging.getLogger(__name__)


@dataclass
class AssertionResult:
    """Result of evaluating a single assertion."""
    assertion_type: str
    description: str
    passed: bool
    message: str

    def __str__(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        label = self.description or self.assertion_type
        return f"[{status}] {label}: {self.message}"


def evaluate_assertion(
    assertion: TraceAssertion,
    state: Dict[str, Any],
) -> AssertionResult:
    """
    Evaluate a single assertion against run state.

    A handler that raises counts as a failed assertion; the error is logged
    and reported in the result message.
    """
    handler = ASSERTION_HANDLERS.get(assertion.type)

    if handler is None:
        return AssertionResult(
            assertion_type=assertion.type,
            description=assertion.description,
            passed=False,
            message=f"Unknown assertion type: {assertion.type}",
        )

    try:
        passed, message = handler(assertion.params, state)
    except Exception as e:
        logger.exception("Assertion %s raised", assertion.type)
        passed, message = False, f"Error evaluating assertion: {type(e).__name__}: {e}"

    return AssertionResult(
        assertion_type=assertion.type,
        description=assertion.description,
        passed=passed,
        message=message,
    )


def evaluate_all_assertions(
    assertions: List[TraceAssertion],
    state: Dict[str, Any],
) -> List[AssertionResult]:
    """Evaluate all assertions against run state, in trace order."""
    return [evaluate_assertion(a, state) for a in assertions]


def assertions_passed(results: List[AssertionResult]) -> bool:
    """Check if all assertions passed."""
    return all(r.passed for r in results)


def format_assertion_results(results: List[AssertionResult]) -> str:
    """Format assertion results for display."""
    lines = ["Assertion Results:", "-" * 50]
    lines.extend(str(result) for result in results)
    passed = sum(1 for r in results if r.passed)
    lines.append("-" * 50)
    lines.append(f"Total: {passed} passed, {len(results) - passed} failed")
    return "\n".join(lines)
