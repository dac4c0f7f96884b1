"""Combine sequence results and ledger state into a run report."""

from collections.abc import Sequence

from conformance_engine.models.report import (
    ProfileEntry,
    ResultEntry,
    RunReport,
    SequenceEntry,
)
from conformance_engine.models.result import SequenceResult, Status
from conformance_engine.validation.ledger import ProfileLedger

SEVERITY_ORDER: tuple[Status, ...] = ("fail", "cancel", "pending", "skip")


def run_status(sequence_results: Sequence[SequenceResult]) -> Status:
    """Overall status of a run.

    A run passes only when every sequence passes. Otherwise the most severe
    sequence status is reported.
    """
    statuses = {result.status for result in sequence_results}
    for status in SEVERITY_ORDER:
        if status in statuses:
            return status
    return "pass"


def sequence_entry(result: SequenceResult) -> SequenceEntry:
    return SequenceEntry(
        sequence_id=result.sequence_id,
        title=result.title,
        status=result.status,
        required_total=result.required_total,
        required_passed=result.required_passed,
        results=[
            ResultEntry(
                test_id=test_result.test_id,
                title=test_result.title,
                status=test_result.status,
                message=test_result.message,
                link=test_result.link,
                optional=test_result.optional,
                details=tuple(test_result.details),
                evidence_ref=test_result.evidence_ref,
            )
            for test_result in result.results
        ],
    )


def aggregate(
    run_id: str,
    sequence_results: Sequence[SequenceResult],
    ledger: ProfileLedger,
) -> RunReport:
    """Build the report of one run from its sequence results and ledger."""
    return RunReport(
        run_id=run_id,
        status=run_status(sequence_results),
        required_total=sum(result.required_total for result in sequence_results),
        required_passed=sum(result.required_passed for result in sequence_results),
        sequences=[sequence_entry(result) for result in sequence_results],
        profile_summary={
            profile_id: ProfileEntry(
                encountered=tally.encountered,
                failed=tally.failed,
                messages=tuple(tally.messages),
            )
            for profile_id, tally in ledger.summary().items()
        },
    )
