"""Profile validation and the ledger that accumulates its evidence."""

from conformance_engine.validation.ledger import ProfileLedger, ProfileTally
from conformance_engine.validation.source import (
    DirectoryProfileSource,
    MappingProfileSource,
    ProfileSource,
)
from conformance_engine.validation.validator import (
    ProfileValidator,
    ValidationIssue,
    ValidationOutcome,
)

__all__ = [
    "DirectoryProfileSource",
    "MappingProfileSource",
    "ProfileLedger",
    "ProfileSource",
    "ProfileTally",
    "ProfileValidator",
    "ValidationIssue",
    "ValidationOutcome",
]
