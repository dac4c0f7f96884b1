"""Tests for run aggregation."""

from conformance_engine.aggregator import aggregate, run_status
from conformance_engine.models.result import SequenceResult
from conformance_engine.testing.factories import (
    SequenceResultFactory,
    TestResultFactory,
)
from conformance_engine.validation.ledger import ProfileLedger


def passing(sequence_id: str) -> SequenceResult:
    return SequenceResult(
        sequence_id=sequence_id,
        title=sequence_id.title(),
        results=[
            TestResultFactory.build(test_id=f"{sequence_id}-01", status="pass"),
            TestResultFactory.build(
                test_id=f"{sequence_id}-02", status="fail", optional=True
            ),
        ],
    )


def failing(sequence_id: str) -> SequenceResult:
    return SequenceResult(
        sequence_id=sequence_id,
        title=sequence_id.title(),
        results=[
            TestResultFactory.build(test_id=f"{sequence_id}-01", status="pass"),
            TestResultFactory.build(test_id=f"{sequence_id}-02", status="error"),
        ],
    )


def test_run_passes_only_when_every_sequence_passes() -> None:
    """One failing sequence fails the run."""
    assert run_status([passing("a"), passing("b")]) == "pass"
    assert run_status([passing("a"), failing("b")]) == "fail"
    assert run_status([]) == "pass"


def test_run_status_prefers_most_severe() -> None:
    """Skipped and cancelled sequences keep the run from passing."""
    skipped = SequenceResultFactory.build(results=(), gated=True)
    cancelled = SequenceResultFactory.build(
        results=[TestResultFactory.build(status="cancel")]
    )

    assert run_status([passing("a"), skipped]) == "skip"
    assert run_status([skipped, cancelled]) == "cancel"
    assert run_status([cancelled, failing("f")]) == "fail"


def test_aggregate_totals_and_entries() -> None:
    """Totals sum required units and entries keep result order."""
    report = aggregate("run-1", [passing("a"), failing("b")], ProfileLedger())

    assert report.run_id == "run-1"
    assert report.status == "fail"
    assert report.required_total == 3
    assert report.required_passed == 2
    assert [s.sequence_id for s in report.sequences] == ["a", "b"]
    assert [r.test_id for r in report.sequences[0].results] == ["a-01", "a-02"]
    assert report.sequences[0].results[1].optional is True
    assert report.sequences[0].status == "pass"
    assert report.sequences[1].status == "fail"


def test_aggregate_profile_summary() -> None:
    """The profile summary mirrors the ledger."""
    ledger = ProfileLedger()
    ledger.record("urn:a", "Patient/1")
    ledger.record("urn:a", "Patient/2", ["Patient/2: name missing"])
    ledger.record("urn:b", "Patient/1")

    report = aggregate("run-1", [], ledger)

    summary = report.to_dict()["profile_summary"]
    assert summary == {
        "urn:a": {
            "encountered": 2,
            "failed": True,
            "messages": ["Patient/2: name missing"],
        },
        "urn:b": {"encountered": 1, "failed": False, "messages": []},
    }


def test_report_dict_layout() -> None:
    """The serialized report carries every field consumers rely on."""
    result = TestResultFactory.build(
        test_id="a-01",
        title="Reads",
        status="fail",
        message="bad",
        link="https://example.com",
        evidence_ref="exchange-1",
        details=("x",),
    )
    sequence = SequenceResult(sequence_id="a", title="A", results=[result])

    data = aggregate("run-1", [sequence], ProfileLedger()).to_dict()

    assert data["run_id"] == "run-1"
    assert data["sequences"][0]["sequence_id"] == "a"
    assert data["sequences"][0]["status"] == "fail"
    assert data["sequences"][0]["results"] == [
        {
            "test_id": "a-01",
            "title": "Reads",
            "status": "fail",
            "message": "bad",
            "link": "https://example.com",
            "optional": False,
            "details": ["x"],
            "evidence_ref": "exchange-1",
        }
    ]
