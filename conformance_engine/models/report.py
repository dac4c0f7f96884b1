"""Serializable run report handed to presentation layers."""

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import Field

from conformance_engine.models.base import Model
from conformance_engine.models.result import Status


class ResultEntry(Model):
    """One test result as it appears in the report."""

    test_id: str
    title: str
    status: Status
    message: str = ""
    link: str | None = None
    optional: bool = False
    details: Sequence[str] = ()
    evidence_ref: str | None = None


class SequenceEntry(Model):
    """One sequence result as it appears in the report."""

    sequence_id: str
    title: str
    status: Status
    required_total: int
    required_passed: int
    results: Sequence[ResultEntry] = ()


class ProfileEntry(Model):
    """Conformance summary of one profile."""

    encountered: int
    failed: bool
    messages: Sequence[str] = ()


class RunReport(Model):
    """Report emitted once per completed run."""

    run_id: str
    status: Status
    required_total: int = Field(default=0, description="Required units in the run")
    required_passed: int = Field(default=0, description="Required units that passed")
    sequences: Sequence[SequenceEntry] = ()
    profile_summary: Mapping[str, ProfileEntry] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-compatible representation."""
        return self.model_dump(mode="json")
