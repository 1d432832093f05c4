# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/pipeline/runner.py
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional, Sequence, Set

from .errors import CollaboratorError, OperatorDeclined, StepError, StepFailure
from .models import ActionTaken, ProbeResult, RunReport, Step, StepOutcome
from .planner import plan
from ..config.models import RunContext

# Observer bits
from ..observers.dispatcher import EventBus
from ..observers.events import (
    new_ctx,
    StepStarted,
    StepProbed,
    StepApplied,
    StepSkipped,
    StepWarned,
    StepFailed,
    RunSummary,
)

log = logging.getLogger("archconfigs")

# ValueError covers malformed tool output and undecodable files
STEP_ERRORS = (StepError, OSError, ValueError)


def _needs_apply(step: Step, result: ProbeResult) -> bool:
    return not (step.skip_when_satisfied and result.is_correct)


class PipelineRunner:
    """
    Visits steps in their fixed order: probe, then apply when the probe
    says the resource is not in its desired state.

    Fail-fast with no rollback. A failing step raises StepFailure carrying
    the partial report; steps after it never run.
    """

    def __init__(
        self,
        ctx: RunContext,
        *,
        confirm: Callable[[str], bool],
        bus: Optional[EventBus] = None,
        observers: Optional[List] = None,
    ):
        self.ctx = ctx
        self.confirm = confirm
        self.bus = bus or EventBus(observers or [])
        self.run_ctx: Dict = new_ctx(pipeline=ctx.pipeline, root=str(ctx.root), run_id=ctx.run_id)

    # ------------------------------------------------------------------
    def _confirm_destructive(self, steps: Sequence[Step], report: RunReport) -> Set[str]:
        """
        Probe every destructive step before anything runs and ask the
        operator about each one that would apply. Declining aborts with
        nothing mutated.
        """
        confirmed: Set[str] = set()
        for step in steps:
            if not step.destructive:
                continue
            try:
                result = step.probe(self.ctx)
            except STEP_ERRORS as e:
                raise self._fail(step, report, e) from e
            if not _needs_apply(step, result):
                continue
            if self.ctx.assume_yes:
                log.warning(f"{step.id}: destructive step confirmed by --yes ({result})")
                confirmed.add(step.id)
                continue
            question = f"{step.description or step.id} [{result}]. This is destructive. Continue?"
            if not self.confirm(question):
                raise OperatorDeclined(f"operator declined destructive step '{step.id}'")
            confirmed.add(step.id)
        return confirmed

    def _summary(self, report: RunReport, status: str, failed_step: Optional[str] = None) -> None:
        self.bus.emit(RunSummary(
            created=report.count(ActionTaken.CREATED),
            modified=report.count(ActionTaken.MODIFIED),
            skipped=report.count(ActionTaken.SKIPPED),
            warned=report.count(ActionTaken.WARNED),
            status=status,
            failed_step=failed_step,
            **self.run_ctx,
        ))

    def _fail(self, step: Step, report: RunReport, error: Exception) -> StepFailure:
        message = str(error)
        log.error(f"{step.id}: {message}")
        self.bus.emit(StepFailed(name=step.id, error=message, **self.run_ctx))
        self._summary(report, "FAILED", step.id)
        return StepFailure(step.id, message, report)

    # ------------------------------------------------------------------
    def _run_step(self, step: Step, confirmed: Set[str]) -> StepOutcome:
        ctx = self.ctx
        result = step.probe(ctx)
        log.debug(f"{step.id}: probe -> {result}")
        self.bus.emit(StepProbed(name=step.id, state=result.state.value, detail=result.detail, **self.run_ctx))

        if not _needs_apply(step, result):
            log.info(f"✓ {step.id}: already configured")
            self.bus.emit(StepSkipped(name=step.id, **self.run_ctx))
            return StepOutcome(step.id, ActionTaken.SKIPPED, result.detail)

        if ctx.dry_run:
            log.info(f"~ {step.id}: would apply ({result})")
            self.bus.emit(StepApplied(name=step.id, action=ActionTaken.PLANNED.value, duration_ms=0, **self.run_ctx))
            return StepOutcome(step.id, ActionTaken.PLANNED, str(result))

        if step.destructive and step.id not in confirmed:
            # state changed since the up-front probe
            if not (ctx.assume_yes or self.confirm(f"{step.description or step.id}. This is destructive. Continue?")):
                raise OperatorDeclined(f"operator declined destructive step '{step.id}'")

        t0 = time.time()
        try:
            action = step.apply(ctx, result)
        except CollaboratorError as e:
            if not step.optional:
                raise
            log.warning(f"⚠ {step.id}: {e}")
            self.bus.emit(StepWarned(name=step.id, error=str(e), **self.run_ctx))
            return StepOutcome(step.id, ActionTaken.WARNED, str(e))
        duration_ms = int((time.time() - t0) * 1000)

        if step.skip_when_satisfied:
            after = step.probe(ctx)
            if not after.is_correct:
                raise StepError(f"resource still {after} after apply")

        log.info(f"✓ {step.id}: {action.value}")
        self.bus.emit(StepApplied(name=step.id, action=action.value, duration_ms=duration_ms, **self.run_ctx))
        return StepOutcome(step.id, action, result.detail, duration_ms)

    # ------------------------------------------------------------------
    def run(self, steps: Sequence[Step]) -> RunReport:
        ordered = plan(steps, bus=self.bus, run_ctx=self.run_ctx)
        report = RunReport()

        confirmed: Set[str] = set()
        if not self.ctx.dry_run:
            confirmed = self._confirm_destructive(ordered, report)

        for step in ordered:
            log.info(f"==> {step.description or step.id}")
            self.bus.emit(StepStarted(name=step.id, description=step.description, **self.run_ctx))
            try:
                outcome = self._run_step(step, confirmed)
            except STEP_ERRORS as e:
                raise self._fail(step, report, e) from e
            report.add(outcome)

        self._summary(report, "OK")
        return report
