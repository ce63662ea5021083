"""Content fingerprints for notification deduplication."""

import hashlib
import json

from .events import RecordKind
from .normalizer import normalize_status, normalize_text

APPLICATION_FINGERPRINT_FIELDS = (
    "status",
    "adminNotes",
    "needsActionNote",
    "rejectionReason",
)
PAY_STUB_FINGERPRINT_FIELDS = ("hash", "generatedAt", "netPay", "payPeriodId")


def fingerprint(kind: RecordKind, fields: dict) -> str:
    """Compute a SHA-256 digest over the given fields.

    Keys are sorted before hashing so equal content always gives an equal
    digest regardless of insertion order.

    Args:
        kind: Record kind the fields belong to
        fields: The meaningful fields (see fingerprint_fields)

    Returns:
        Hex digest
    """
    canonical = json.dumps(
        {"kind": kind.value, **fields},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def fingerprint_fields(kind: RecordKind, record: dict) -> dict:
    """Extract exactly the fields that define meaningful content for a kind."""
    if kind == RecordKind.APPLICATION:
        return {
            "status": normalize_status(record.get("status")).value,
            "adminNotes": normalize_text(record.get("adminNotes")),
            "needsActionNote": normalize_text(record.get("needsActionNote")),
            "rejectionReason": normalize_text(record.get("rejectionReason")),
        }
    return {name: record.get(name) for name in PAY_STUB_FINGERPRINT_FIELDS}


def fingerprint_record(kind: RecordKind, record: dict) -> str:
    """Fingerprint a full record by its meaningful fields."""
    return fingerprint(kind, fingerprint_fields(kind, record))
