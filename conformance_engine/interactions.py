"""Interactions and assertions test bodies use against record servers.

Records are JSON objects carrying a ``resourceType`` and an ``id``. Searches
return ``Bundle`` records whose ``entry`` items wrap the matching records.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from yarl import URL

from conformance_engine.client.base import Exchange
from conformance_engine.sequence import TestContext
from conformance_engine.signals import assert_that, fail, skip_unless
from conformance_engine.validation.validator import (
    RECORD_TYPE_KEY,
    Record,
    ValidationOutcome,
)

log = logging.getLogger(__name__)

UNAUTHORIZED_STATUSES = frozenset({401, 406})
RECORDS_STATE_KEY = "records"


async def search(
    ctx: TestContext, record_type: str, params: Mapping[str, str]
) -> Exchange:
    url = URL(record_type).with_query(dict(params))
    return await ctx.client.send("GET", str(url))


async def read(ctx: TestContext, record_type: str, record_id: str) -> Exchange:
    return await ctx.client.send("GET", f"{record_type}/{record_id}")


async def vread(
    ctx: TestContext, record_type: str, record_id: str, version_id: str
) -> Exchange:
    return await ctx.client.send(
        "GET", f"{record_type}/{record_id}/_history/{version_id}"
    )


async def history(ctx: TestContext, record_type: str, record_id: str) -> Exchange:
    return await ctx.client.send("GET", f"{record_type}/{record_id}/_history")


def assert_response_ok(exchange: Exchange) -> None:
    assert_that(
        exchange.status == 200,
        f"Bad response code: expected 200, but found {exchange.status}",
    )


def assert_response_unauthorized(exchange: Exchange) -> None:
    assert_that(
        exchange.status in UNAUTHORIZED_STATUSES,
        f"Bad response code: expected 401 or 406, but found {exchange.status}",
    )


def response_record(exchange: Exchange) -> Record:
    """Decode a response body that must be a single record."""
    try:
        data = exchange.json()
    except ValueError as e:
        fail(str(e))
    assert_that(isinstance(data, dict), "Response body is not a JSON object")
    return data


def assert_bundle_response(exchange: Exchange) -> Record:
    """Assert a 200 response carrying a Bundle and return the bundle."""
    assert_response_ok(exchange)
    bundle = response_record(exchange)
    assert_that(
        bundle.get(RECORD_TYPE_KEY) == "Bundle",
        f"Expected a Bundle, but found {bundle.get(RECORD_TYPE_KEY)}",
    )
    return bundle


def bundle_records(bundle: Record) -> list[Record]:
    return [
        entry["resource"]
        for entry in bundle.get("entry") or []
        if isinstance(entry, Mapping) and entry.get("resource")
    ]


def reference_target(reference: Mapping[str, Any] | str) -> str | None:
    """The ``Type/id`` a reference points at, or None for contained ones."""
    value = reference if isinstance(reference, str) else reference.get("reference")
    if not value or value.startswith("#"):
        return None
    return "/".join(value.rstrip("/").split("/")[-2:])


def is_contained(reference: Mapping[str, Any] | str) -> bool:
    """Whether a reference points at a record embedded in its parent."""
    return reference_target(reference) is None


def _references_subject(record: Record, subject_id: str) -> bool:
    for key in ("patient", "subject"):
        if isinstance(reference := record.get(key), Mapping):
            return reference_target(reference) == f"Patient/{subject_id}"
    return True


def validate_search_reply(
    ctx: TestContext,
    record_type: str,
    exchange: Exchange,
    *,
    subject_id: str | None = None,
) -> list[Record]:
    """Check a search reply and validate every record it returned.

    Validation failures are not asserted here; they accumulate in the ledger
    and are asserted by the unit checking profile conformance.
    """
    bundle = assert_bundle_response(exchange)
    records = bundle_records(bundle)

    for record in records:
        assert_that(
            record.get(RECORD_TYPE_KEY) == record_type,
            f"Expected {record_type} records, but found "
            f"{record.get(RECORD_TYPE_KEY)}",
        )
        if subject_id is not None:
            assert_that(
                _references_subject(record, subject_id),
                f"{record_type}/{record.get('id')} does not reference "
                f"Patient/{subject_id}",
            )

    if records and ctx.validator.supports(record_type):
        profile = ctx.validator.profile_for(record_type)
        ctx.validator.validate_all(records, profile.profile_id, ctx.ledger)
    return records


def save_record_ids_in_bundle(
    ctx: TestContext, record_type: str, bundle: Record
) -> None:
    ids = [
        record["id"]
        for record in bundle_records(bundle)
        if record.get(RECORD_TYPE_KEY) == record_type and record.get("id")
    ]
    ctx.run.save_record_ids(record_type, ids)


def remember_records(
    ctx: TestContext, record_type: str, records: Iterable[Record]
) -> None:
    """Keep records for later units of the same sequence."""
    ctx.state.setdefault(RECORDS_STATE_KEY, {})[record_type] = list(records)


def remembered_records(ctx: TestContext, record_type: str) -> list[Record]:
    return list(ctx.state.get(RECORDS_STATE_KEY, {}).get(record_type, []))


async def validate_read_reply(
    ctx: TestContext, record_type: str, record: Record | Mapping[str, Any]
) -> Record | None:
    """Assert the record a search returned, or a reference points at, is readable.

    Contained references have no identity of their own and are exempt.
    """
    if "reference" in record:
        target = reference_target(record)
        if target is None:
            log.debug("Skipping read of contained reference %s", record["reference"])
            return None
        target_type, record_id = target.split("/")
        assert_that(
            target_type == record_type,
            f"Expected a reference to {record_type}, but found {target}",
        )
    else:
        record_id = record.get("id")

    assert_that(record_id, f"{record_type} has no id and cannot be read")
    exchange = await read(ctx, record_type, str(record_id))
    assert_response_ok(exchange)
    fetched = response_record(exchange)
    assert_that(
        fetched.get(RECORD_TYPE_KEY) == record_type,
        f"Expected {record_type}, but read returned {fetched.get(RECORD_TYPE_KEY)}",
    )
    assert_that(
        fetched.get("id") == record_id,
        f"Expected {record_type}/{record_id}, but read returned id {fetched.get('id')}",
    )
    return fetched


async def validate_history_reply(
    ctx: TestContext, record_type: str, record: Record
) -> None:
    exchange = await history(ctx, record_type, str(record.get("id")))
    bundle = assert_bundle_response(exchange)
    assert_that(
        bundle.get("type") == "history",
        f"Expected a history Bundle, but found type {bundle.get('type')}",
    )
    assert_that(
        bundle_records(bundle),
        f"History of {record_type}/{record.get('id')} is empty",
    )


async def validate_vread_reply(
    ctx: TestContext, record_type: str, record: Record
) -> None:
    version_id = (record.get("meta") or {}).get("versionId")
    skip_unless(
        version_id,
        f"{record_type}/{record.get('id')} has no version id to read",
    )
    exchange = await vread(ctx, record_type, str(record.get("id")), str(version_id))
    assert_response_ok(exchange)
    fetched = response_record(exchange)
    assert_that(
        (fetched.get("meta") or {}).get("versionId") == version_id,
        f"Expected version {version_id} of {record_type}/{record.get('id')}",
    )


def check_record_against_profile(
    ctx: TestContext, record: Record | None, profile_id: str
) -> ValidationOutcome:
    """Validate a single record and fail the unit on any error."""
    outcome = ctx.validator.validate(record, profile_id, ctx.ledger)
    errors = tuple(str(issue) for issue in outcome.errors)
    assert_that(
        not errors,
        f"{outcome.instance} does not conform to {profile_id}",
        errors,
    )
    return outcome


def assert_profile_conforms(
    ctx: TestContext, profile_id: str, *, missing: str | None = None
) -> None:
    """Assert the run has seen ``profile_id`` and recorded no failures for it."""
    skip_unless(
        ctx.ledger.encountered(profile_id),
        missing or f"No records validated against {profile_id}",
    )
    failures = tuple(ctx.ledger.failures(profile_id))
    assert_that(
        not failures,
        f"{len(failures)} record(s) failed validation against {profile_id}",
        failures,
    )


def check_records_against_profile(
    ctx: TestContext,
    record_type: str,
    profile_id: str | None = None,
    *,
    records: Sequence[Record] | None = None,
) -> None:
    """Validate the records a sequence fetched and assert the profile conforms."""
    if profile_id is None:
        profile_id = ctx.validator.profile_for(record_type).profile_id
    if records is None:
        records = remembered_records(ctx, record_type)
    ctx.validator.validate_all(records, profile_id, ctx.ledger)
    assert_profile_conforms(
        ctx, profile_id, missing=f"No {record_type} records found"
    )

