"""Structural validation of records against profile definitions."""

import hashlib
import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from conformance_engine.errors import ProfileError
from conformance_engine.models.profile import (
    ElementDefinition,
    ProfileDefinition,
    ValueSetBinding,
)
from conformance_engine.validation.ledger import ProfileLedger
from conformance_engine.validation.source import ProfileSource

log = logging.getLogger(__name__)

type Record = Mapping[str, Any]

RECORD_TYPE_KEY = "resourceType"
CHOICE_SUFFIX = "[x]"


@dataclass(frozen=True, kw_only=True)
class ValidationIssue:
    """A single problem found in a record."""

    severity: Literal["error", "warning"]
    location: str
    message: str

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"


@dataclass(frozen=True, kw_only=True)
class ValidationOutcome:
    """Result of validating one record against one profile."""

    profile_id: str
    instance: str | None = None
    issues: Sequence[ValidationIssue] = field(default_factory=tuple)

    @property
    def errors(self) -> Sequence[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> Sequence[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]

    @property
    def valid(self) -> bool:
        return not self.errors


def instance_key(record: Record) -> str:
    """Identity of a record for the ledger's encountered set.

    Records without an id are identified by a digest of their content.
    """
    record_type = record.get(RECORD_TYPE_KEY, "Unknown")
    if record_id := record.get("id"):
        return f"{record_type}/{record_id}"
    content = json.dumps(record, sort_keys=True, default=str).encode()
    return f"{record_type}#{hashlib.sha256(content).hexdigest()[:16]}"


def _children(node: Any, segment: str) -> list[Any]:
    """Values of ``segment`` below ``node``, with lists flattened."""
    if not isinstance(node, Mapping):
        return []
    if segment.endswith(CHOICE_SUFFIX):
        prefix = segment.removesuffix(CHOICE_SUFFIX)
        values = [
            value
            for key, value in node.items()
            if key.startswith(prefix) and key[len(prefix) : len(prefix) + 1].isupper()
        ]
    elif segment in node:
        values = [node[segment]]
    else:
        values = []

    flattened: list[Any] = []
    for value in values:
        if isinstance(value, list):
            flattened.extend(item for item in value if item is not None)
        elif value is not None:
            flattened.append(value)
    return flattened


def _resolve(nodes: Iterable[Any], segments: Sequence[str]) -> list[Any]:
    current = list(nodes)
    for segment in segments:
        current = [child for node in current for child in _children(node, segment)]
    return current


def _codes(value: Any) -> list[str]:
    """Codes carried by a coded value."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, Mapping):
        if "coding" in value:
            return [code for coding in value["coding"] or [] for code in _codes(coding)]
        if isinstance(code := value.get("code"), str):
            return [code]
    return []


@dataclass(frozen=True, kw_only=True)
class ProfileValidator:
    """Validates records against a fixed table of profiles.

    The table is resolved when the validator is built. Every validation is
    recorded in the ledger passed in, which belongs to the calling run.
    """

    profiles: Mapping[str, ProfileDefinition]

    @classmethod
    def from_source(
        cls, source: ProfileSource, profile_ids: Iterable[str]
    ) -> "ProfileValidator":
        """Build a validator for ``profile_ids`` loaded from ``source``.

        Raises:
            ProfileError: If a profile cannot be loaded

        """
        profiles = {
            profile_id: source.load_profile(profile_id) for profile_id in profile_ids
        }
        log.info("Loaded %d profile(s)", len(profiles))
        return cls(profiles=profiles)

    def profile(self, profile_id: str) -> ProfileDefinition:
        try:
            return self.profiles[profile_id]
        except KeyError:
            raise ProfileError(f"Unknown profile: {profile_id}") from None

    def supports(self, record_type: str) -> bool:
        return any(
            definition.record_type == record_type
            for definition in self.profiles.values()
        )

    def profile_for(self, record_type: str) -> ProfileDefinition:
        """First profile declared for a record type."""
        for definition in self.profiles.values():
            if definition.record_type == record_type:
                return definition
        raise ProfileError(f"No profile declared for record type {record_type}")

    def validate(
        self, record: Record | None, profile_id: str, ledger: ProfileLedger
    ) -> ValidationOutcome:
        """Validate ``record`` against ``profile_id`` and record it in ``ledger``.

        Absent and empty records are ignored and leave the ledger untouched.

        Raises:
            ProfileError: If the profile is unknown

        """
        if not record:
            return ValidationOutcome(profile_id=profile_id)

        definition = self.profile(profile_id)
        instance = instance_key(record)
        issues = self._check(record, definition)
        outcome = ValidationOutcome(
            profile_id=profile_id, instance=instance, issues=tuple(issues)
        )

        failures: list[str] = []
        if not outcome.valid:
            failures.append(
                f"{instance}: " + "; ".join(str(issue) for issue in outcome.errors)
            )
            log.info(
                "%s failed %s with %d error(s)",
                instance,
                profile_id,
                len(outcome.errors),
            )
        ledger.record(profile_id, instance, failures)

        return outcome

    def validate_all(
        self, records: Iterable[Record | None], profile_id: str, ledger: ProfileLedger
    ) -> Sequence[ValidationOutcome]:
        return [
            self.validate(record, profile_id, ledger) for record in records if record
        ]

    def _check(
        self, record: Record, definition: ProfileDefinition
    ) -> list[ValidationIssue]:
        record_type = record.get(RECORD_TYPE_KEY)
        if record_type != definition.record_type:
            return [
                ValidationIssue(
                    severity="error",
                    location=str(record_type or "(root)"),
                    message=(
                        f"Expected a {definition.record_type} record, "
                        f"got {record_type or 'a record without type'}"
                    ),
                )
            ]

        issues: list[ValidationIssue] = []
        for element in definition.elements:
            issues.extend(self._check_element(record, definition.record_type, element))
        return issues

    def _check_element(
        self, record: Record, record_type: str, element: ElementDefinition
    ) -> list[ValidationIssue]:
        *parent_path, name = element.path.split(".")
        location = f"{record_type}.{element.path}"
        issues: list[ValidationIssue] = []

        # Cardinality applies per occurrence of the parent element.
        for parent in _resolve([record], parent_path):
            values = _children(parent, name)
            if len(values) < element.min:
                issues.append(
                    ValidationIssue(
                        severity="error",
                        location=location,
                        message=(
                            "Missing required element"
                            if element.min == 1
                            else f"Expected at least {element.min} occurrence(s), "
                            f"found {len(values)}"
                        ),
                    )
                )
            if element.max is not None and len(values) > element.max:
                issues.append(
                    ValidationIssue(
                        severity="error",
                        location=location,
                        message=(
                            f"Expected at most {element.max} occurrence(s), "
                            f"found {len(values)}"
                        ),
                    )
                )
            if element.binding is not None:
                issues.extend(
                    self._check_binding(values, location, element.binding)
                )
        return issues

    def _check_binding(
        self, values: Sequence[Any], location: str, binding: ValueSetBinding
    ) -> list[ValidationIssue]:
        allowed = set(binding.codes)
        severity: Literal["error", "warning"] = (
            "error" if binding.strength == "required" else "warning"
        )
        issues = []
        for value in values:
            codes = _codes(value)
            if not any(code in allowed for code in codes):
                shown = ", ".join(codes) if codes else "no code"
                issues.append(
                    ValidationIssue(
                        severity=severity,
                        location=location,
                        message=(
                            f"Value ({shown}) is not in the "
                            f"{binding.value_set or 'bound'} value set"
                        ),
                    )
                )
        return issues
