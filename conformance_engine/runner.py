"""Sequence runner: executes the units of one sequence in declaration order."""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Literal

from conformance_engine.client.base import EvidenceClient
from conformance_engine.context import ContextSnapshot, RunContext
from conformance_engine.models.result import SequenceResult, Status, TestResult
from conformance_engine.sequence import TestContext, TestSequence, TestUnit
from conformance_engine.signals import TestSignal
from conformance_engine.validation.ledger import ProfileLedger
from conformance_engine.validation.validator import ProfileValidator

log = logging.getLogger(__name__)

type RunnerState = Literal["not_started", "running", "completed"]

REQUIRED_INPUT_MISSING = "required input missing"
CANCELLED_MESSAGE = "Run cancelled before this test started"
NOT_IMPLEMENTED_MESSAGE = "Test is not implemented"


class CancelToken:
    """Cancellation flag an operator can set from any thread.

    Checked between units; a unit that already started runs to completion.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(kw_only=True)
class ConformanceRun:
    """State exclusively owned by one run."""

    run_id: str
    context: RunContext
    client: EvidenceClient
    validator: ProfileValidator
    ledger: ProfileLedger = field(default_factory=ProfileLedger)
    cancel_token: CancelToken = field(default_factory=CancelToken)
    unit_timeout: float | None = None


@dataclass(frozen=True, kw_only=True)
class _Outcome:
    status: Status
    message: str = ""
    details: tuple[str, ...] = ()


@dataclass(kw_only=True)
class SequenceRunner:
    """Runs one sequence against one run, once.

    Every unit yields exactly one result. Faults are contained at the unit
    boundary, so the runner itself never raises because of a unit.
    """

    sequence: TestSequence
    state: RunnerState = "not_started"

    async def run(self, run: ConformanceRun) -> SequenceResult:
        """Execute all units and return the sequence result.

        Raises:
            RuntimeError: If the runner was already used

        """
        if self.state != "not_started":
            raise RuntimeError(
                f"Sequence {self.sequence.sequence_id} runner is already {self.state}"
            )
        self.state = "running"
        definition = self.sequence.definition
        log.info(
            "Running sequence %s (%d test(s))",
            definition.sequence_id,
            len(self.sequence.units),
        )

        run.context.reset_short_circuit()
        missing = run.context.missing(definition.requires)
        state: dict[str, Any] = {}
        results: list[TestResult] = []
        short_circuited = False

        for unit in self.sequence.units:
            if run.cancel_token.cancelled:
                outcome = _Outcome(status="cancel", message=CANCELLED_MESSAGE)
                results.append(self._result(unit, outcome))
                continue

            if missing:
                outcome = _Outcome(
                    status="skip",
                    message=f"{REQUIRED_INPUT_MISSING}: {', '.join(missing)}",
                )
                results.append(self._result(unit, outcome))
                continue

            if (reason := run.context.short_circuit_reason) is not None:
                short_circuited = True
                outcome = _Outcome(status="skip", message=reason)
                results.append(self._result(unit, outcome))
                continue

            results.append(await self._execute(unit, run, state))

        if run.context.short_circuit_reason is not None:
            short_circuited = True
        run.context.reset_short_circuit()

        if not missing:
            for key in run.context.missing(definition.defines):
                log.warning(
                    "Sequence %s did not produce declared output %r",
                    definition.sequence_id,
                    key,
                )

        self.state = "completed"
        result = SequenceResult(
            sequence_id=definition.sequence_id,
            title=definition.title,
            results=tuple(results),
            gated=bool(missing),
            short_circuited=short_circuited,
        )
        log.info(
            "Sequence %s completed: status=%s required=%d/%d",
            definition.sequence_id,
            result.status,
            result.required_passed,
            result.required_total,
        )
        return result

    async def _execute(
        self, unit: TestUnit, run: ConformanceRun, state: dict[str, Any]
    ) -> TestResult:
        """Run one unit body under the containment rules."""
        if unit.body is None:
            outcome = _Outcome(status="todo", message=NOT_IMPLEMENTED_MESSAGE)
            return self._result(unit, outcome)

        ctx = TestContext(
            run=run.context,
            client=run.client,
            ledger=run.ledger,
            validator=run.validator,
            sequence=self.sequence.definition,
            test_id=self.sequence.display_id(unit),
            state=state,
        )
        snapshot: ContextSnapshot | None = None
        transcript_length = len(run.client.transcript)
        deadline = asyncio.timeout(run.unit_timeout)
        started = time.monotonic()

        try:
            snapshot = run.context.snapshot()
            async with deadline:
                await unit.body(ctx)
            outcome = _Outcome(status="pass")
        except TestSignal as signal:
            outcome = _Outcome(
                status=signal.status, message=signal.message, details=signal.details
            )
        except TimeoutError as e:
            log.warning("Test %s timed out", ctx.test_id)
            if deadline.expired():
                message = f"Timed out after {run.unit_timeout} seconds"
            else:
                message = str(e) or "Timed out waiting for the server"
            outcome = _Outcome(status="error", message=message)
        except Exception as e:
            log.exception("Test %s raised an unexpected error", ctx.test_id)
            outcome = _Outcome(status="error", message=str(e) or type(e).__name__)

        if outcome.status == "error" and snapshot is not None:
            run.context.restore(snapshot)

        evidence_ref = None
        if len(run.client.transcript) > transcript_length:
            evidence_ref = run.client.transcript[-1].id

        result = self._result(
            unit,
            outcome,
            evidence_ref=evidence_ref,
            duration=time.monotonic() - started,
        )
        log.info(
            "Test %s %s: %s", ctx.test_id, result.status, result.message or unit.title
        )
        return result

    def _result(
        self,
        unit: TestUnit,
        outcome: _Outcome,
        *,
        evidence_ref: str | None = None,
        duration: float = 0.0,
    ) -> TestResult:
        return TestResult(
            sequence_id=unit.sequence_id,
            test_id=self.sequence.display_id(unit),
            title=unit.title,
            status=outcome.status,
            message=outcome.message,
            link=unit.link,
            optional=unit.optional,
            details=outcome.details,
            evidence_ref=evidence_ref,
            duration=duration,
        )
