"""Shared fixtures."""

from collections.abc import Generator

import pytest
from aioresponses import aioresponses as aioresponses_cls

from conformance_engine.context import RunContext
from conformance_engine.runner import ConformanceRun
from conformance_engine.testing.clients import ScriptedEvidenceClient
from conformance_engine.testing.profiles import sample_profile_source
from conformance_engine.validation.validator import ProfileValidator


@pytest.fixture
def aioresponses() -> Generator[aioresponses_cls, None, None]:
    """Intercept aiohttp requests."""
    with aioresponses_cls() as mocked:
        yield mocked


@pytest.fixture
def validator() -> ProfileValidator:
    """Validator holding the sample Argonaut profiles."""
    return ProfileValidator.from_source(
        sample_profile_source, sample_profile_source.profile_ids
    )


@pytest.fixture
def client() -> ScriptedEvidenceClient:
    """Scripted client with an empty route table."""
    return ScriptedEvidenceClient(bearer_token="secret")


@pytest.fixture
def conformance_run(
    client: ScriptedEvidenceClient, validator: ProfileValidator
) -> ConformanceRun:
    """Run with a token and patient id already provided."""
    return ConformanceRun(
        run_id="run-1",
        context=RunContext({"token": "secret", "patient_id": "123"}),
        client=client,
        validator=validator,
    )
