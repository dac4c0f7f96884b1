"""CLI entry point for running conformance sequences against a server."""

import argparse
import asyncio
import json
import logging
import sys
import uuid
from collections.abc import Sequence
from pathlib import Path

from pydantic import SecretStr

from conformance_engine.client.config import ClientConfig
from conformance_engine.client.http import HttpEvidenceClient
from conformance_engine.context import RunContext
from conformance_engine.errors import ConformanceError
from conformance_engine.loading import (
    ProfilePackNotFoundError,
    SequenceNotFoundError,
    load_profile_pack,
    load_sequences,
    validate_sequences,
)
from conformance_engine.models.definition import RunPlan
from conformance_engine.models.profile import ProfileDefinition
from conformance_engine.models.report import RunReport
from conformance_engine.orchestrator import RunOrchestrator
from conformance_engine.plan_loader import load_run_plan
from conformance_engine.runner import ConformanceRun
from conformance_engine.validation.source import (
    DirectoryProfileSource,
    ProfileSource,
)
from conformance_engine.validation.validator import ProfileValidator

EXIT_PASSED = 0
EXIT_NOT_PASSED = 1
EXIT_CONFIGURATION_ERROR = 2

STATUS_SYMBOLS = {
    "pass": "✓",
    "fail": "✗",
    "error": "!",
    "skip": "-",
    "cancel": "⊘",
    "todo": "…",
    "wait": "⏱",
    "pending": "⏱",
}


def log_report_summary(log: logging.Logger, report: RunReport) -> None:
    """Log a formatted summary of a run report."""
    log.info("=" * 80)
    log.info("Run %s: %s", report.run_id, report.status)
    log.info("=" * 80)

    for sequence in report.sequences:
        log.info(
            "%s %s: %s (%d/%d required passed)",
            STATUS_SYMBOLS.get(sequence.status, "?"),
            sequence.title,
            sequence.status,
            sequence.required_passed,
            sequence.required_total,
        )
        for result in sequence.results:
            log.info(
                "  %s %s %s%s",
                STATUS_SYMBOLS.get(result.status, "?"),
                result.test_id,
                result.title,
                " (optional)" if result.optional else "",
            )
            if result.message:
                log.info("    Message: %s", result.message)
            for detail in result.details:
                log.info("    - %s", detail)

    for profile_id, entry in report.profile_summary.items():
        log.info(
            "%s %s: %d record(s)",
            STATUS_SYMBOLS["fail" if entry.failed else "pass"],
            profile_id,
            entry.encountered,
        )


def profile_sources(plan: RunPlan) -> Sequence[ProfileSource]:
    """Profile packs named by the plan, then its profile directory."""
    sources: list[ProfileSource] = [
        load_profile_pack(key) for key in plan.profile_packs
    ]
    if plan.profiles is not None:
        sources.append(DirectoryProfileSource(path=plan.profiles))
    return sources


def build_validator(plan: RunPlan) -> ProfileValidator:
    """Resolve every profile the plan provides up front.

    Later sources override profiles with the same id from earlier ones.
    """
    profiles: dict[str, ProfileDefinition] = {}
    for source in profile_sources(plan):
        validator = ProfileValidator.from_source(source, source.profile_ids)
        profiles.update(validator.profiles)
    return ProfileValidator(profiles=profiles)


async def run(plan_path: Path, run_id: str | None = None) -> int:
    """Run the sequences of a plan and return the exit code."""
    log = logging.getLogger("conformance_engine")

    log.info("Loading run plan: %s", plan_path)
    try:
        plan = await load_run_plan(plan_path)
        sequences = load_sequences(plan.sequences)
        inputs = plan.initial_inputs()
        validate_sequences(sequences, inputs)
        validator = build_validator(plan)
    except (
        FileNotFoundError,
        ValueError,
        SequenceNotFoundError,
        ProfilePackNotFoundError,
        ConformanceError,
    ) as e:
        log.error("Configuration error: %s", e)
        return EXIT_CONFIGURATION_ERROR

    run_id = run_id or plan.run_id or str(uuid.uuid4())
    if not sequences:
        log.info("No sequences to run")
        empty = RunReport(run_id=run_id, status="pass")
        print(json.dumps(empty.to_dict(), indent=2))
        return EXIT_PASSED

    client_config = ClientConfig(
        base_url=plan.server.base_url,
        timeout=plan.server.timeout,
        token=SecretStr(inputs["token"]) if inputs.get("token") else None,
        verify_tls=plan.server.verify_tls,
    )

    log.info(
        "Running %d sequence(s) against %s", len(sequences), plan.server.base_url
    )
    async with HttpEvidenceClient.from_config(client_config) as client:
        conformance_run = ConformanceRun(
            run_id=run_id,
            context=RunContext(inputs),
            client=client,
            validator=validator,
            unit_timeout=plan.server.unit_timeout,
        )
        report = await RunOrchestrator(sequences=sequences).run(conformance_run)

    log_report_summary(log, report)
    print(json.dumps(report.to_dict(), indent=2))

    return EXIT_PASSED if report.status == "pass" else EXIT_NOT_PASSED


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run conformance sequences against a server"
    )
    parser.add_argument(
        "--plan",
        type=Path,
        required=True,
        help="Path to the run plan YAML file",
    )
    parser.add_argument(
        "--run-id",
        default=None,
        help="Run identifier (defaults to the plan's run_id or a random UUID)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every request and response",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(run(plan_path=args.plan, run_id=args.run_id))
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
