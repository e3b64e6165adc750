"""
Normalization of agency records for the compliance rollups.

Two layers live here. The payload decoders accept an agency's open-data
payload dict (field names differ per agency) and return a RawViolationRecord
with the status flag in that agency's own polarity. ``normalize`` then turns
any RawViolationRecord into a NormalizedRecord: canonical date, a single
``is_active`` flag and, where the agency has a classification rule, a
severity.
"""
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

from compliance_core.records import Agency, NormalizedRecord, RawViolationRecord, Severity
from compliance_core.utils import (
    coerce_flag,
    ensure_utc,
    parse_record_date,
    safe_float,
    safe_str,
    utc_now,
)


class StatusPolarity(NamedTuple):
    inverted: bool
    missing: bool


# inverted: the agency flag reports the opposite of "active".
# missing: flag value assumed when the agency left it out or it is unreadable.
STATUS_POLARITY: Dict[Agency, StatusPolarity] = {
    Agency.PERMIT: StatusPolarity(inverted=True, missing=False),
    Agency.SANITATION_VIOLATION: StatusPolarity(inverted=False, missing=False),
    Agency.HOUSING_VIOLATION: StatusPolarity(inverted=False, missing=False),
    Agency.EMISSIONS_FILING: StatusPolarity(inverted=True, missing=True),
}


def is_active(agency: Agency, status_flag) -> bool:
    polarity = STATUS_POLARITY[agency]
    flag = coerce_flag(status_flag)
    if flag is None:
        flag = polarity.missing
    return not flag if polarity.inverted else flag


def _housing_severity(raw: RawViolationRecord, active: bool) -> Severity:
    description = safe_str(raw.description).lower()
    if "immediately hazardous" in description or "lead" in description:
        return Severity.CRITICAL
    if "hazardous" in description:
        return Severity.HIGH
    return Severity.MEDIUM


def _permit_severity(raw: RawViolationRecord, active: bool) -> Severity:
    if not active:
        return Severity.CRITICAL
    if "pending" in safe_str(raw.status_text).lower():
        return Severity.MEDIUM
    return Severity.LOW


SEVERITY_RULES = {
    Agency.HOUSING_VIOLATION: _housing_severity,
    Agency.PERMIT: _permit_severity,
}


def normalize(raw: RawViolationRecord) -> NormalizedRecord:
    """Normalize a raw agency record. Malformed dates become ``None``."""
    active = is_active(raw.agency, raw.status_flag)
    rule = SEVERITY_RULES.get(raw.agency)
    return NormalizedRecord(
        building_id=raw.building_id,
        date=parse_record_date(raw.raw_date),
        is_active=active,
        agency=raw.agency,
        record_id=raw.record_id,
        severity=rule(raw, active) if rule else None,
        fine_amount=raw.fine_amount,
    )


def normalize_all(raws: Iterable[RawViolationRecord]) -> List[NormalizedRecord]:
    return [normalize(raw) for raw in raws]


def _building_id(payload: dict, *keys: str) -> str:
    for key in keys:
        value = safe_str(payload.get(key))
        if value:
            return value
    return ""


def _optional_str(value) -> Optional[str]:
    return safe_str(value) or None


def decode_permit(payload: dict, now: datetime) -> RawViolationRecord:
    """Decode a DOB permit payload. Expired means the expiration date has passed."""
    expiration = parse_record_date(payload.get("expiration_date"))
    return RawViolationRecord(
        agency=Agency.PERMIT,
        building_id=_building_id(payload, "building_id", "bin"),
        raw_date=_optional_str(
            payload.get("issuance_date")
            or payload.get("issuanceDate")
            or payload.get("filing_date")
        ),
        status_flag=expiration is not None and expiration < now,
        record_id=_optional_str(payload.get("job__") or payload.get("job_number")),
        description=_optional_str(payload.get("job_description")),
        status_text=_optional_str(payload.get("permit_status")),
    )


def decode_sanitation_violation(payload: dict, now: datetime) -> RawViolationRecord:
    """Decode a DSNY violation payload."""
    status = safe_str(payload.get("status")).lower()
    disposed = bool(safe_str(payload.get("disposition_date")))
    return RawViolationRecord(
        agency=Agency.SANITATION_VIOLATION,
        building_id=_building_id(payload, "building_id", "bin"),
        raw_date=_optional_str(payload.get("issue_date") or payload.get("issueDate")),
        status_flag=not disposed and status != "closed",
        record_id=_optional_str(payload.get("violation_id")),
        description=_optional_str(
            payload.get("violation_details") or payload.get("violation_type")
        ),
        status_text=_optional_str(payload.get("status")),
        fine_amount=safe_float(payload.get("fine_amount")),
    )


def decode_housing_violation(payload: dict, now: datetime) -> RawViolationRecord:
    """Decode an HPD violation payload."""
    status = safe_str(payload.get("violationstatus")).lower()
    status_dated = bool(safe_str(payload.get("currentstatusdate")))
    return RawViolationRecord(
        agency=Agency.HOUSING_VIOLATION,
        building_id=_building_id(payload, "building_id", "buildingid", "bin"),
        raw_date=_optional_str(
            payload.get("inspectiondate") or payload.get("inspectionDate")
        ),
        status_flag=not status_dated and status != "close",
        record_id=_optional_str(payload.get("violationid")),
        description=_optional_str(payload.get("novdescription")),
        status_text=_optional_str(payload.get("currentstatus")),
    )


def decode_emissions_filing(payload: dict, now: datetime) -> RawViolationRecord:
    """Decode an LL97 emissions filing. Compliant unless reported over the limit."""
    over_limit = safe_float(payload.get("emissions_over_limit_metric_tons_co2e"))
    raw_date = safe_str(payload.get("reporting_year") or payload.get("filing_date"))
    if len(raw_date) == 4 and raw_date.isdigit():
        raw_date = f"{raw_date}-01-01"
    return RawViolationRecord(
        agency=Agency.EMISSIONS_FILING,
        building_id=_building_id(payload, "building_id", "bbl", "bin"),
        raw_date=raw_date or None,
        status_flag=(over_limit or 0) <= 0,
        record_id=_optional_str(payload.get("bbl")),
        description=_optional_str(payload.get("property_name")),
        fine_amount=safe_float(payload.get("potential_fine")),
    )


DECODERS = {
    Agency.PERMIT: decode_permit,
    Agency.SANITATION_VIOLATION: decode_sanitation_violation,
    Agency.HOUSING_VIOLATION: decode_housing_violation,
    Agency.EMISSIONS_FILING: decode_emissions_filing,
}


def dispatch_payload(
    agency: Any, payload: dict, now: Optional[datetime] = None
) -> RawViolationRecord:
    """Route an agency payload to the matching decoder."""
    try:
        agency = Agency(agency)
    except ValueError:
        raise ValueError(
            f"Unsupported agency: '{agency}'. Supported: {[a.value for a in DECODERS]}"
        ) from None
    now = ensure_utc(now) if now is not None else utc_now()
    return DECODERS[agency](payload, now)
