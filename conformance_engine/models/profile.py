"""Models for profile definitions records are validated against."""

from collections.abc import Sequence
from typing import Literal

from pydantic import Field, NonNegativeInt, model_validator

from conformance_engine.models.base import Model


class ValueSetBinding(Model):
    """Codes an element's value must be drawn from."""

    codes: Sequence[str] = Field(..., min_length=1, description="Allowed codes")
    strength: Literal["required", "extensible", "preferred"] = Field(
        default="required", description="How strictly the binding applies"
    )
    value_set: str | None = Field(default=None, description="Value set URL")


class ElementDefinition(Model):
    """Constraints on one element of a record."""

    path: str = Field(
        ...,
        min_length=1,
        description="Dot path below the record root, e.g. 'code.coding'",
    )
    min: NonNegativeInt = Field(default=0, description="Minimum occurrences")
    max: NonNegativeInt | None = Field(
        default=None, description="Maximum occurrences (None means unbounded)"
    )
    binding: ValueSetBinding | None = Field(default=None, description="Value set")

    @model_validator(mode="after")
    def _check_cardinality(self) -> "ElementDefinition":
        if self.max is not None and self.max < self.min:
            raise ValueError(
                f"Element {self.path}: max ({self.max}) is lower than min ({self.min})"
            )
        return self


class ProfileDefinition(Model):
    """Named schema a record of one type is expected to conform to."""

    profile_id: str = Field(..., min_length=1, description="Profile identifier (URL)")
    record_type: str = Field(..., min_length=1, description="Record type it applies to")
    title: str = Field(default="", description="Human-readable name")
    elements: Sequence[ElementDefinition] = Field(
        default_factory=list, description="Element constraints"
    )
