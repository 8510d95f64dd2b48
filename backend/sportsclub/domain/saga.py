"""
Minimal saga runner for workflows that span independently committing stores.

Steps run strictly in order. When a step raises, the compensations of the
steps that already completed run in reverse order, then the original error
is re-raised unchanged. A compensation that itself fails is reported as an
inconsistency (module logger at CRITICAL plus a ``saga.inconsistency`` audit
record) and the remaining compensations still run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from ..utils.audit_log import emit_audit_log

logger = logging.getLogger(__name__)

StepAction = Callable[[dict[str, Any]], Awaitable[Any]]
Compensation = Callable[[Any], Awaitable[None]]


@dataclass(frozen=True)
class SagaStep:
    name: str
    action: StepAction
    compensation: Optional[Compensation] = None


class Saga:
    def __init__(self, name: str, **context: Any) -> None:
        self.name = name
        self.context = context
        self._steps: list[SagaStep] = []

    def step(self, name: str, action: StepAction, compensation: Optional[Compensation] = None) -> Saga:
        """Append a step. ``action`` receives the results of earlier steps keyed by step name."""
        self._steps.append(SagaStep(name, action, compensation))
        return self

    async def run(self) -> dict[str, Any]:
        results: dict[str, Any] = {}
        completed: list[SagaStep] = []
        for step in self._steps:
            try:
                results[step.name] = await step.action(results)
            except Exception as exc:
                logger.info("saga %s: step %s failed (%s), compensating", self.name, step.name, type(exc).__name__)
                await self._compensate(completed, results, exc)
                raise
            completed.append(step)
        return results

    async def _compensate(self, completed: list[SagaStep], results: dict[str, Any], cause: Exception) -> None:
        for step in reversed(completed):
            if step.compensation is None:
                continue
            try:
                await step.compensation(results[step.name])
            except Exception as comp_exc:
                logger.critical(
                    "saga %s: compensation for step %s failed; manual cleanup required (context=%s)",
                    self.name,
                    step.name,
                    self.context,
                    exc_info=comp_exc,
                )
                self._report_inconsistency(step, cause, comp_exc)

    def _report_inconsistency(self, step: SagaStep, cause: Exception, comp_exc: Exception) -> None:
        try:
            emit_audit_log(
                action="saga.inconsistency",
                initiator="system",
                entity_id=self.context.get("entity_id"),
                event_kind=self.context.get("event_kind"),
                message=f"compensation '{step.name}' failed",
                extra={
                    "saga": self.name,
                    "original_error": type(cause).__name__,
                    "compensation_error": type(comp_exc).__name__,
                },
                level=logging.CRITICAL,
            )
        except RuntimeError:
            logger.exception("saga %s: could not write inconsistency audit record", self.name)
