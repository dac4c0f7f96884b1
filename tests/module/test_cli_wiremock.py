"""Module test running the CLI against a record server mocked by WireMock."""

import json
from pathlib import Path
from typing import Any

import pytest
from wiremock.client import (
    HttpMethods,
    Mapping,
    MappingRequest,
    MappingResponse,
    Mappings,
)
from wiremock.testing.testcontainer import WireMockContainer

from conformance_engine.cli import run
from conformance_engine.testing.payloads import (
    bundle,
    care_team,
    medication_statement,
)
from conformance_engine.testing.profiles import CARE_TEAM_URL, MEDICATION_STATEMENT_URL

pytestmark = pytest.mark.module

AUTHORIZED = {"Authorization": {"equalTo": "Bearer module-token"}}


def record_route(
    url_path: str,
    body: dict[str, Any],
    *,
    query: dict[str, str] | None = None,
) -> None:
    """Answer authorized GETs on ``url_path`` with ``body``."""
    Mappings.create_mapping(
        Mapping(
            priority=1,
            request=MappingRequest(
                method=HttpMethods.GET,
                url_path=url_path,
                headers=AUTHORIZED,
                query_parameters={
                    key: {"equalTo": value} for key, value in (query or {}).items()
                },
            ),
            response=MappingResponse(
                status=200,
                headers={"Content-Type": "application/json+fhir"},
                json_body=body,
            ),
        )
    )


def write_plan(tmp_path: Path, server_url: str) -> Path:
    plan_path = tmp_path / "plan.yaml"
    plan_path.write_text(f"""version: "1.0"
run_id: module-run
server:
  base_url: "{server_url}"
  timeout: 10
  unit_timeout: 30
token: module-token
inputs:
  patient_id: "123"
profile_packs:
  - argonaut-sample
sequences:
  - argonaut-medication-statement
  - argonaut-care-team
""")
    return plan_path


async def test_run_against_conforming_server(
    tmp_path: Path,
    wiremock_server: WireMockContainer,
    server_url: str,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Both sample sequences pass against a conforming server."""
    # Clear any existing mappings
    Mappings.delete_all_mappings()

    # Requests without the token are rejected
    Mappings.create_mapping(
        Mapping(
            priority=10,
            request=MappingRequest(
                method=HttpMethods.GET, url_path_pattern="/fhir/.*"
            ),
            response=MappingResponse(status=401),
        )
    )

    statement = medication_statement()
    record_route(
        "/fhir/MedicationStatement", bundle([statement]), query={"patient": "123"}
    )
    record_route("/fhir/MedicationStatement/ms-1", statement)
    record_route(
        "/fhir/MedicationStatement/ms-1/_history",
        bundle([statement], bundle_type="history"),
    )
    record_route("/fhir/MedicationStatement/ms-1/_history/1", statement)
    record_route(
        "/fhir/CarePlan",
        bundle([care_team()]),
        query={"patient": "123", "category": "careteam"},
    )

    exit_code = await run(write_plan(tmp_path, server_url))

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 0, json.dumps(output, indent=2)
    assert output["run_id"] == "module-run"
    assert output["status"] == "pass"
    assert [s["status"] for s in output["sequences"]] == ["pass", "pass"]
    assert output["required_total"] == 8
    assert output["profile_summary"][MEDICATION_STATEMENT_URL]["encountered"] == 1
    assert output["profile_summary"][CARE_TEAM_URL]["failed"] is False


async def test_run_reports_nonconforming_server(
    tmp_path: Path,
    wiremock_server: WireMockContainer,
    server_url: str,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """A server answering without a token and with bad records fails the run."""
    Mappings.delete_all_mappings()

    statement = medication_statement(status="bogus")
    Mappings.create_mapping(
        Mapping(
            request=MappingRequest(
                method=HttpMethods.GET, url_path="/fhir/MedicationStatement"
            ),
            response=MappingResponse(status=200, json_body=bundle([statement])),
        )
    )

    exit_code = await run(write_plan(tmp_path, server_url))

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert output["status"] == "fail"

    results = {r["test_id"]: r for r in output["sequences"][0]["results"]}
    assert results["ARMS-01"]["status"] == "fail"
    assert results["ARMS-01"]["evidence_ref"] == "exchange-1"
    assert results["ARMS-02"]["status"] == "pass"
    assert results["ARMS-03"]["status"] == "fail"
    assert results["ARMS-06"]["status"] == "fail"
    assert output["profile_summary"][MEDICATION_STATEMENT_URL]["failed"] is True
