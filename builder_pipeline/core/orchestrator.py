"""Per-target retry state machine and batch driver."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional

from builder_pipeline.core.csp import CSPCheck
from builder_pipeline.core.duplicates import DuplicateResolver
from builder_pipeline.core.pipeline import AttemptProgress, BuilderPipeline
from builder_pipeline.core.report import RunReport, TargetResult
from builder_pipeline.models import BuilderRecord, ProcessingOutcome, Target

logger = logging.getLogger(__name__)

Sink = Callable[[BuilderRecord], None]


class TargetState(str, Enum):
    PENDING = "pending"
    ATTEMPTING = "attempting"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


_TRANSITIONS = {
    TargetState.PENDING: {TargetState.ATTEMPTING},
    TargetState.ATTEMPTING: {
        TargetState.ATTEMPTING,
        TargetState.SUCCESS,
        TargetState.PARTIAL,
        TargetState.FAILED,
        TargetState.SKIPPED,
    },
    TargetState.SUCCESS: set(),
    TargetState.PARTIAL: set(),
    TargetState.FAILED: set(),
    TargetState.SKIPPED: set(),
}

_OUTCOMES = {
    TargetState.SUCCESS: ProcessingOutcome.SUCCESS,
    TargetState.PARTIAL: ProcessingOutcome.PARTIAL,
    TargetState.FAILED: ProcessingOutcome.FAILED,
    TargetState.SKIPPED: ProcessingOutcome.SKIPPED,
}


class InvalidTransition(RuntimeError):
    """Raised on a state change the retry state machine does not allow."""


@dataclass
class TargetRun:
    target: Target
    state: TargetState = TargetState.PENDING
    attempts: int = 0
    best_record: Optional[BuilderRecord] = None
    best_csp: Optional[CSPCheck] = None
    last_error: Optional[str] = None
    history: List[TargetState] = field(default_factory=lambda: [TargetState.PENDING])

    @property
    def terminal(self) -> bool:
        return not _TRANSITIONS[self.state]

    def transition(self, new_state: TargetState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.target.url}: cannot move from {self.state.value} to {new_state.value}")
        if new_state is TargetState.ATTEMPTING:
            self.attempts += 1
        self.state = new_state
        self.history.append(new_state)


class BatchOrchestrator:
    def __init__(
        self,
        pipeline: BuilderPipeline,
        sink: Sink,
        resolver: DuplicateResolver,
        *,
        max_retries: int = 3,
        retry_delay: float = 5.0,
        target_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.pipeline = pipeline
        self.sink = sink
        self.resolver = resolver
        self.max_attempts = max_retries + 1
        self.retry_delay = retry_delay
        self.target_delay = target_delay
        self.sleep = sleep

    def _finish(
        self,
        run: TargetRun,
        state: TargetState,
        reason: str,
        record: Optional[BuilderRecord] = None,
        csp: Optional[CSPCheck] = None,
    ) -> TargetResult:
        run.transition(state)
        log = logger.info if state in (TargetState.SUCCESS, TargetState.SKIPPED) else logger.warning
        log("%s -> %s after %d attempt(s): %s", run.target.url, state.value, run.attempts, reason)
        return TargetResult(
            target=run.target,
            outcome=_OUTCOMES[state],
            attempts=run.attempts,
            reason=reason,
            record=record,
            csp=csp,
        )

    def process_target(self, target: Target) -> TargetResult:
        run = TargetRun(target)
        while True:
            run.transition(TargetState.ATTEMPTING)
            progress = AttemptProgress()
            logger.info("Processing %s (%s), attempt %d/%d", target.url, target.state, run.attempts, self.max_attempts)
            try:
                record = self.pipeline.run(target, progress)
                decision = self.resolver.resolve(record)
                if decision.proceed:
                    self.sink(decision.record)
            except Exception as exc:  # noqa: BLE001
                run.last_error = f"{type(exc).__name__}: {exc}"
                if progress.record is not None:
                    run.best_record = progress.record
                    run.best_csp = progress.csp
                logger.warning("Attempt %d/%d for %s failed: %s", run.attempts, self.max_attempts, target.url, run.last_error)
            else:
                state = TargetState.SUCCESS if decision.proceed else TargetState.SKIPPED
                return self._finish(run, state, decision.reason, decision.record, progress.csp)

            if run.attempts >= self.max_attempts:
                return self._save_partial(run)
            self.sleep(self.retry_delay)

    def _save_partial(self, run: TargetRun) -> TargetResult:
        record = run.best_record
        if record is None:
            return self._finish(
                run, TargetState.FAILED, f"nothing extracted after {run.attempts} attempts; last error {run.last_error}"
            )
        try:
            if run.best_csp is None:
                run.best_csp = self.pipeline.check_csp(record)
            decision = self.resolver.resolve(record)
            if decision.proceed:
                self.sink(decision.record)
        except Exception as exc:  # noqa: BLE001
            return self._finish(
                run, TargetState.FAILED, f"partial save failed: {type(exc).__name__}: {exc}", record, run.best_csp
            )
        if not decision.proceed:
            return self._finish(run, TargetState.SKIPPED, decision.reason, decision.record, run.best_csp)
        return self._finish(
            run,
            TargetState.PARTIAL,
            f"saved partial data after {run.attempts} attempts; last error {run.last_error}",
            decision.record,
            run.best_csp,
        )

    def run(self, targets: Iterable[Target]) -> RunReport:
        report = RunReport()
        for index, target in enumerate(targets):
            if index:
                self.sleep(self.target_delay)
            report.add(self.process_target(target))
        report.finish()
        return report
