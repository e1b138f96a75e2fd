from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional


@dataclass
class Step:
    """Named step for the request pipeline runner."""
    name: str
    fn: Callable[[object], None]
    skip_if: Optional[Callable[[object], bool]] = None
    always_run: bool = False


class StepRunner:
    """Runs request steps in order until one marks the context finished."""

    def __init__(self, steps: List[Step], is_finished: Optional[Callable[[object], bool]] = None) -> None:
        """Purpose: Initialize the runner with an ordered list of steps.
        Inputs/Outputs: Inputs are the steps and an optional finished predicate; no return.
        Side Effects / State: Stores the step list for later execution.
        Dependencies: None beyond Step definitions.
        Failure Modes: None; assumes valid callables in steps.
        If Removed: The assistant cannot sequence intent routing and answer assembly.
        Testing Notes: Provide a minimal step list and ensure order is preserved.
        """
        self._steps = steps
        self._is_finished = is_finished

    def run(self, context: object) -> None:
        """Purpose: Execute steps in order with skip, always-run, and finish rules.
        Inputs/Outputs: Input is a mutable context object; no return value.
        Side Effects / State: Invokes step functions that may mutate context.
        Dependencies: Depends on Step.fn, Step.skip_if, and the finished predicate.
        Failure Modes: Exceptions in step functions propagate to the caller.
        If Removed: Requests are never routed or answered.
        Testing Notes: A finished context still runs always_run steps.
        """
        # Once finished, only always_run steps (history, logging) still execute.
        for step in self._steps:
            if step.always_run:
                step.fn(context)
                continue
            if self._is_finished and self._is_finished(context):
                continue
            if step.skip_if and step.skip_if(context):
                continue
            step.fn(context)
