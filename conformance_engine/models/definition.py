"""Models for sequence metadata and run plans loaded from plan.yaml files."""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import Field, PositiveFloat, SecretStr

from conformance_engine.models.base import Model


class SequenceDefinition(Model):
    """Static metadata declared by a sequence."""

    sequence_id: str = Field(..., min_length=1, description="Unique sequence id")
    title: str = Field(..., description="Human-readable sequence title")
    description: str = Field(default="", description="One-line summary")
    details: str = Field(default="", description="Longer background text")
    group: str | None = Field(default=None, description="Display grouping")
    test_id_prefix: str = Field(
        ..., min_length=1, description="Prefix of every test id (e.g. 'ARMS')"
    )
    requires: Sequence[str] = Field(
        default=(), description="Run context keys read by the sequence"
    )
    defines: Sequence[str] = Field(
        default=(), description="Run context keys written by the sequence"
    )
    supports: Sequence[str] = Field(
        default=(), description="Record types the sequence exercises"
    )


class ServerConfig(Model):
    """Target server configuration."""

    base_url: str = Field(..., description="Base URL of the server under test")
    timeout: PositiveFloat = Field(
        default=30, description="Seconds to wait for a single response"
    )
    unit_timeout: PositiveFloat = Field(
        default=300, description="Seconds a single test unit may run"
    )
    verify_tls: bool = Field(default=True, description="Verify TLS certificates")


class RunPlan(Model):
    """Complete run plan loaded from plan.yaml."""

    version: str = Field(..., description="Run plan schema version")
    run_id: str | None = Field(default=None, description="Explicit run id")
    server: ServerConfig = Field(..., description="Server under test")
    inputs: Mapping[str, Any] = Field(
        default_factory=dict, description="Initial run context values"
    )
    token: SecretStr | None = Field(
        default=None, description="Bearer token, stored as the 'token' input"
    )
    profiles: Path | None = Field(
        default=None, description="Directory holding profile definitions"
    )
    profile_packs: Sequence[str] = Field(
        default_factory=list, description="Registered profile packs to load"
    )
    sequences: Sequence[str] = Field(
        default_factory=list, description="Sequence keys, in execution order"
    )

    def initial_inputs(self) -> dict[str, Any]:
        """Run context values the run starts with."""
        inputs = dict(self.inputs)
        if self.token is not None:
            inputs["token"] = self.token.get_secret_value()
        return inputs
