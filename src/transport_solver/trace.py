"""Step recording and trace event emission."""

from __future__ import annotations

import logging

from .data import EventKind, StepRecord, TraceCallback, TraceEvent


class StepRecorder:
    """Append-only trace of a solve.

    Every phase hands its step records to the recorder. The recorder stores
    them, logs them at DEBUG level and forwards a TraceEvent to the optional
    callback so callers can display, log or discard progress as they see fit.

    Attributes:
        steps: Recorded steps, in order.
        callback: Optional function receiving a TraceEvent per recorded step.
    """

    def __init__(self, callback: TraceCallback | None = None):
        self.steps: list[StepRecord] = []
        self.callback = callback
        self.logger = logging.getLogger(__name__)

    def record(
        self,
        step: StepRecord,
        kind: EventKind,
        delta: float | None = None,
    ) -> StepRecord:
        self.steps.append(step)
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                step.note,
                extra={
                    "phase": step.phase.value,
                    "step_index": len(self.steps) - 1,
                    "chosen": step.chosen,
                    "quantity": step.quantity,
                    "total_cost": step.total_cost,
                },
            )
        if self.callback is not None:
            self.callback(
                TraceEvent(
                    kind=kind,
                    step_index=len(self.steps) - 1,
                    message=step.note,
                    cell=step.chosen,
                    quantity=step.quantity,
                    delta=delta,
                    total_cost=step.total_cost,
                )
            )
        return step
