"""Run orchestrator: executes the sequences of a run in order."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from conformance_engine.aggregator import aggregate
from conformance_engine.models.report import RunReport
from conformance_engine.models.result import SequenceResult
from conformance_engine.runner import ConformanceRun, SequenceRunner
from conformance_engine.sequence import TestSequence

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class RunOrchestrator:
    """Runs an ordered list of sequences against any number of runs.

    Sequences of one run execute one after another because later sequences
    read run context values earlier ones produced. Independent runs share
    nothing and execute concurrently.
    """

    sequences: Sequence[TestSequence]

    async def run(self, run: ConformanceRun) -> RunReport:
        """Execute every sequence against ``run`` and aggregate the results.

        Args:
            run: Run state; its context and ledger are mutated

        Returns:
            The run report

        """
        log.info(
            "Starting run %s with %d sequence(s)", run.run_id, len(self.sequences)
        )
        sequence_results: list[SequenceResult] = []
        for sequence in self.sequences:
            runner = SequenceRunner(sequence=sequence)
            sequence_results.append(await runner.run(run))

        report = aggregate(run.run_id, sequence_results, run.ledger)
        log.info(
            "Run %s completed: status=%s required=%d/%d",
            run.run_id,
            report.status,
            report.required_passed,
            report.required_total,
        )
        return report

    async def run_many(self, runs: Sequence[ConformanceRun]) -> Sequence[RunReport]:
        """Execute independent runs concurrently, one report per run."""
        if not runs:
            log.info("No runs provided")
            return []

        log.info("Dispatching %d run(s)...", len(runs))
        results = await asyncio.gather(
            *(self.run(run) for run in runs), return_exceptions=True
        )
        log.info("All runs completed")

        return self._process_results(runs, results)

    def _process_results(
        self,
        runs: Sequence[ConformanceRun],
        results: Sequence[RunReport | BaseException],
    ) -> Sequence[RunReport]:
        """Turn exceptions escaping a run into error reports."""
        reports: list[RunReport] = []

        for run, result in zip(runs, results, strict=True):
            if isinstance(result, RunReport):
                reports.append(result)
            elif isinstance(result, Exception):
                log.error("Run %s failed: %s", run.run_id, result, exc_info=result)
                reports.append(RunReport(run_id=run.run_id, status="error"))
            else:
                raise result

        return reports
