"""Payload helpers for record server responses in tests."""

from collections.abc import Sequence
from typing import Any


def bundle(
    records: Sequence[dict[str, Any]] = (),
    *,
    bundle_type: str = "searchset",
) -> dict[str, Any]:
    """Create a Bundle wrapping ``records``."""
    return {
        "resourceType": "Bundle",
        "id": "bundle-1",
        "type": bundle_type,
        "total": len(records),
        "entry": [
            {
                "fullUrl": f"http://records.test/{r['resourceType']}/{r.get('id')}",
                "resource": r,
            }
            for r in records
        ],
    }


def medication_statement(
    *,
    record_id: str = "ms-1",
    patient_id: str = "123",
    status: str = "active",
    medication: dict[str, Any] | None = None,
    version_id: str = "1",
) -> dict[str, Any]:
    """Create a MedicationStatement conforming to the sample profile."""
    return {
        "resourceType": "MedicationStatement",
        "id": record_id,
        "meta": {"versionId": version_id},
        "patient": {"reference": f"Patient/{patient_id}"},
        "status": status,
        "effectiveDateTime": "2024-03-01",
        **(
            medication
            if medication is not None
            else {
                "medicationCodeableConcept": {
                    "coding": [
                        {
                            "system": "http://www.nlm.nih.gov/research/umls/rxnorm",
                            "code": "1049502",
                        }
                    ]
                }
            }
        ),
    }


def medication(*, record_id: str = "med-1") -> dict[str, Any]:
    """Create a Medication conforming to the sample profile."""
    return {
        "resourceType": "Medication",
        "id": record_id,
        "code": {
            "coding": [
                {
                    "system": "http://www.nlm.nih.gov/research/umls/rxnorm",
                    "code": "1049502",
                    "display": "Acetaminophen 325 MG Oral Tablet",
                }
            ]
        },
    }


def care_team(
    *,
    record_id: str = "ct-1",
    patient_id: str = "123",
    status: str = "active",
) -> dict[str, Any]:
    """Create a CarePlan of category careteam conforming to the sample profile."""
    return {
        "resourceType": "CarePlan",
        "id": record_id,
        "subject": {"reference": f"Patient/{patient_id}"},
        "status": status,
        "category": [
            {
                "coding": [
                    {
                        "system": "http://argonaut.hl7.org",
                        "code": "careteam",
                    }
                ]
            }
        ],
        "participant": [
            {
                "role": {"text": "Primary care physician"},
                "member": {"reference": "Practitioner/pr-1"},
            }
        ],
    }


def operation_outcome(message: str = "Unauthorized") -> dict[str, Any]:
    """Create an OperationOutcome error body."""
    return {
        "resourceType": "OperationOutcome",
        "issue": [{"severity": "error", "code": "security", "diagnostics": message}],
    }
