"""
Timed replay of trace actions.

Contains:
- ActionQueue, handing out trace actions in time order
- LedgerClock, which moves a ledger's time forward with the replay
"""

import heapq
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..chain.ledger import Ledger
from .traces.schema import TraceAction


@dataclass(order=True)
class ScheduledAction:
    """A trace action waiting to be replayed. `index` is its position in the trace."""
    time: float
    index: int
    action: TraceAction = field(compare=False)


class ActionQueue:
    """Trace actions ordered by time; actions at the same time keep trace order."""

    def __init__(self, actions: Iterable[TraceAction] = ()):
        self._heap: List[ScheduledAction] = []
        self._pushed = 0
        for action in actions:
            self.push(action)

    def push(self, action: TraceAction) -> ScheduledAction:
        item = ScheduledAction(action.time, self._pushed, action)
        heapq.heappush(self._heap, item)
        self._pushed += 1
        return item

    def pop(self) -> Optional[ScheduledAction]:
        """Remove and return the next action, or None when the trace is exhausted."""
        if self._heap:
            return heapq.heappop(self._heap)
        return None

    def peek_time(self) -> Optional[float]:
        if self._heap:
            return self._heap[0].time
        return None

    def __len__(self) -> int:
        return len(self._heap)

    def is_empty(self) -> bool:
        return not self._heap


class LedgerClock:
    """
    Trace time, starting at zero.

    Advancing the clock advances the ledger by the same amount, so blocks
    written by an action carry the ledger time at which it ran.
    """

    def __init__(self, ledger: Ledger):
        self.ledger = ledger
        self.current_time = 0.0

    def advance_to(self, time: float):
        if time < self.current_time:
            raise ValueError(f"Cannot go backwards in time: {time} < {self.current_time}")
        delta = time - self.current_time
        if delta:
            self.ledger.advance_time(delta)
        self.current_time = time

    def ledger_time(self) -> float:
        return self.ledger.current_time
