"""Models for test and sequence execution results."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

type Status = Literal[
    "pass",
    "fail",
    "skip",
    "error",
    "cancel",
    "todo",
    "wait",
    "pending",
]

FAILING_STATUSES: frozenset[Status] = frozenset({"fail", "error"})
WAITING_STATUSES: frozenset[Status] = frozenset({"wait", "pending"})


@dataclass(frozen=True, kw_only=True)
class TestResult:
    """Outcome of a single executed test unit.

    Exactly one result exists per declared unit, whatever happened to it.
    """

    __test__ = False

    sequence_id: str
    test_id: str
    title: str
    status: Status
    message: str = ""
    link: str | None = None
    optional: bool = False
    details: Sequence[str] = ()
    evidence_ref: str | None = None
    duration: float = 0.0

    @property
    def counts_against_sequence(self) -> bool:
        """Whether this result makes its sequence fail."""
        return not self.optional and self.status in FAILING_STATUSES


@dataclass(frozen=True, kw_only=True)
class SequenceResult:
    """Ordered results of one sequence execution plus derived totals."""

    sequence_id: str
    title: str
    results: Sequence[TestResult] = field(default_factory=tuple)
    gated: bool = False
    short_circuited: bool = False

    @property
    def required(self) -> Sequence[TestResult]:
        return [result for result in self.results if not result.optional]

    @property
    def required_total(self) -> int:
        return len(self.required)

    @property
    def required_passed(self) -> int:
        return sum(1 for result in self.required if result.status == "pass")

    @property
    def status(self) -> Status:
        """Overall status of the sequence.

        Optional units never influence it. Failures win over cancellation so a
        partially cancelled run still reports the defects it found.
        """
        required = self.required
        if any(result.status in FAILING_STATUSES for result in required):
            return "fail"
        if any(result.status == "cancel" for result in self.results):
            return "cancel"
        if self.gated or self.short_circuited:
            return "skip"
        if any(result.status in WAITING_STATUSES for result in required):
            return "pending"
        if self.required_passed == 0 and any(
            result.status == "skip" for result in required
        ):
            return "skip"
        return "pass"
