"""
Trace Runner

Orchestrates running a trace against a fresh ledger.
This is the main integration point that ties together:
- Trace parsing
- Account and issuer setup
- Timed action execution
- Assertion evaluation
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .engine import ActionQueue, LedgerClock
from .traces.schema import Trace, TraceAction, ValidationError
from .traces.parser import load_trace
from .assertions.evaluator import (
    AssertionResult,
    evaluate_all_assertions,
    assertions_passed,
    format_assertion_results,
)
from ..chain.errors import LedgerError
from ..chain.types import WrapperStateError
from ..transactions.escrow_swap import EscrowError, MIN_FEE
from ..transactions.simulation_harness import SwapSimulation
from ..transactions import fees


logger = logging.getLogger(__name__)

OK = "ok"

# Failures an action may legitimately end with; anything else aborts the run
PROTOCOL_ERRORS = (LedgerError, EscrowError, WrapperStateError, ValueError)


@dataclass
class ActionOutcome:
    """What happened when one trace action was executed."""
    index: int
    time: float
    actor: str
    action: str
    result: str                       # "ok" or the error class name
    expected: Optional[str] = None    # None means the action must succeed
    object_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.result == (self.expected or OK)


@dataclass
class TraceRunResult:
    """Result of running a trace."""
    trace_name: str
    completed: bool
    final_time: float
    assertion_results: List[AssertionResult]
    all_passed: bool
    outcomes: List[ActionOutcome] = field(default_factory=list)
    bindings: Dict[str, str] = field(default_factory=dict)
    sim: Optional[SwapSimulation] = None
    error: Optional[str] = None

    def __str__(self) -> str:
        status = "PASSED" if self.all_passed else "FAILED"
        failed_actions = sum(1 for o in self.outcomes if o.result != OK)
        lines = [
            f"Trace '{self.trace_name}': {status}",
            f"  Actions: {len(self.outcomes)} ({failed_actions} failed)",
            f"  Final time: {self.final_time:.2f}s",
            f"  Assertions: {sum(1 for a in self.assertion_results if a.passed)}/{len(self.assertion_results)} passed",
        ]
        if self.error:
            lines.append(f"  Error: {self.error}")
        return "\n".join(lines)


class TraceRunner:
    """
    Runs traces against a SwapSimulation.

    Handles:
    - Creating accounts, balances and the issuer from the trace setup
    - Executing trace actions in time order
    - Binding returned object IDs to trace labels
    - Evaluating assertions
    """

    def __init__(self, trace: Trace):
        self.trace = trace
        setup = trace.setup

        min_fee = setup.min_fee if setup.min_fee is not None else MIN_FEE
        self.sim = SwapSimulation(admin=setup.admin, min_fee=min_fee)
        for name, spec in setup.accounts.items():
            if name == setup.admin:
                if spec.balance:
                    fees.mint(self.sim.ledger, self.sim.address(name), spec.balance)
                continue
            self.sim.create_account(name, balance=spec.balance)

        self.clock = LedgerClock(self.sim.ledger)
        self.queue = ActionQueue(trace.actions)

        self.bindings: Dict[str, str] = {}
        self.outcomes: List[ActionOutcome] = []

        self._handlers: Dict[str, Callable[[TraceAction], Optional[str]]] = {
            "issue": self._do_issue,
            "transfer": self._do_transfer,
            "mint": self._do_mint,
            "deposit": self._do_deposit,
            "execute": self._do_execute,
        }

    def run(self) -> TraceRunResult:
        """Run the trace to completion."""
        try:
            while not self.queue.is_empty():
                scheduled = self.queue.pop()
                self.clock.advance_to(scheduled.time)
                self.outcomes.append(self._execute_trace_action(scheduled.index, scheduled.action))

            assertion_results = evaluate_all_assertions(self.trace.assertions, self._get_state())
            return TraceRunResult(
                trace_name=self.trace.name,
                completed=True,
                final_time=self.clock.current_time,
                assertion_results=assertion_results,
                all_passed=assertions_passed(assertion_results),
                outcomes=self.outcomes,
                bindings=self.bindings,
                sim=self.sim,
            )

        except Exception as e:
            logger.exception("Trace '%s' aborted", self.trace.name)
            return TraceRunResult(
                trace_name=self.trace.name,
                completed=False,
                final_time=self.clock.current_time,
                assertion_results=[],
                all_passed=False,
                outcomes=self.outcomes,
                bindings=self.bindings,
                sim=self.sim,
                error=f"{type(e).__name__}: {e}",
            )

    def _execute_trace_action(self, index: int, action: TraceAction) -> ActionOutcome:
        """Execute a trace action, recording protocol failures as outcomes."""
        outcome = ActionOutcome(
            index=index,
            time=action.time,
            actor=action.actor,
            action=action.action,
            result=OK,
            expected=action.expected_result,
        )
        try:
            object_id = self._handlers[action.action](action)
        except PROTOCOL_ERRORS as e:
            outcome.result = type(e).__name__
            outcome.error = str(e)
        else:
            outcome.object_id = object_id
            if action.bind and object_id is not None:
                self.bindings[action.bind] = object_id

        if outcome.matched:
            logger.debug("#%d %s by %s -> %s", index, action.action, action.actor, outcome.result)
        else:
            logger.warning("#%d %s by %s -> %s, expected %s",
                           index, action.action, action.actor, outcome.result, outcome.expected or OK)
        return outcome

    def _ref(self, label: str) -> str:
        """Resolve a trace label to an object ID."""
        if label not in self.bindings:
            raise ValidationError(f"Unbound trace label: {label}")
        return self.bindings[label]

    # ─────────────────────────────────────────────────────────────────────────
    # Action Handlers
    # ─────────────────────────────────────────────────────────────────────────

    def _do_issue(self, action: TraceAction) -> str:
        p = action.params
        return self.sim.issue(p["magic"], p["strength"], p["recipient"], sender=action.actor)

    def _do_transfer(self, action: TraceAction) -> None:
        p = action.params
        self.sim.transfer(action.actor, self._ref(p["asset"]), p["recipient"])

    def _do_mint(self, action: TraceAction) -> str:
        return fees.mint(self.sim.ledger, self.sim.address(action.actor), action.params["amount"])

    def _do_deposit(self, action: TraceAction) -> str:
        p = action.params
        return self.sim.deposit(action.actor, self._ref(p["asset"]), p["fee"], p["intermediary"])

    def _do_execute(self, action: TraceAction) -> None:
        wrappers = action.params["wrappers"]
        if len(wrappers) != 2:
            raise ValidationError(f"execute takes exactly two wrappers, got {len(wrappers)}")
        self.sim.execute(action.actor, self._ref(wrappers[0]), self._ref(wrappers[1]))

    def _get_state(self) -> Dict[str, Any]:
        """Get run state for assertion evaluation."""
        return {
            "sim": self.sim,
            "bindings": self.bindings,
            "results": self.outcomes,
            "current_time": self.clock.current_time,
        }


def run_trace(trace: Trace) -> TraceRunResult:
    """
    Convenience function to run a trace.

    Args:
        trace: The trace to run

    Returns:
        TraceRunResult
    """
    return TraceRunner(trace).run()


def main(argv: Optional[List[str]] = None) -> int:
    """Run trace files from the command line. Returns the process exit code."""
    parser = argparse.ArgumentParser(
        prog="wrapswap",
        description="Replay swap scenario traces and check their assertions.",
    )
    parser.add_argument("traces", nargs="+", help="YAML trace files")
    parser.add_argument("-v", "--verbose", action="store_true", help="log every ledger operation")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    all_passed = True
    for path in args.traces:
        try:
            trace = load_trace(path)
        except (OSError, ValidationError) as e:
            print(f"Cannot load {path}: {e}", file=sys.stderr)
            return 2
        result = run_trace(trace)
        print(result)
        print(format_assertion_results(result.assertion_results))
        all_passed = all_passed and result.all_passed

    return 0 if all_passed else 1


if __name__ == "__main__":
    sys.exit(main())
