"""Loading of run plans from YAML files."""

import asyncio
from pathlib import Path

import yaml
from pydantic import ValidationError

from conformance_engine.models.definition import RunPlan


def parse_run_plan(path: Path) -> RunPlan:
    """Parse a run plan file synchronously.

    Relative profile directories are resolved against the plan's directory.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is empty, not YAML, or violates the schema

    """
    if not path.is_file():
        raise FileNotFoundError(f"Run plan not found: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty run plan: {path}")

    try:
        plan = RunPlan.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid run plan schema in {path}: {e}") from e

    if plan.profiles is not None and not plan.profiles.is_absolute():
        plan = plan.model_copy(update={"profiles": path.parent / plan.profiles})
    return plan


async def load_run_plan(path: Path) -> RunPlan:
    """Load a run plan without blocking the event loop."""
    return await asyncio.to_thread(parse_run_plan, path)
