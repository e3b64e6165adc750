"""Tests for record normalization and agency payload decoding."""
from datetime import datetime, timezone

import pytest
from compliance_core.normalizers import (
    dispatch_payload,
    is_active,
    normalize,
    normalize_all,
)
from compliance_core.records import Agency, RawViolationRecord, Severity
from compliance_core.utils import parse_record_date


NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def raw(agency=Agency.SANITATION_VIOLATION, **kwargs):
    kwargs.setdefault("building_id", "b1")
    return RawViolationRecord(agency=agency, **kwargs)


class TestParseRecordDate:
    @pytest.mark.parametrize(
        "value",
        ["2024-01-05T10:00:00.000", "2024-01-05T10:00:00", "2024-01-05", "01/05/2024"],
    )
    def test_supported_formats(self, value):
        result = parse_record_date(value)
        assert result is not None
        assert result.date() == datetime(2024, 1, 5).date()
        assert result.tzinfo is not None

    def test_fractional_seconds_kept(self):
        result = parse_record_date("2024-01-05T10:00:00.250")
        assert result.hour == 10
        assert result.microsecond == 250000

    @pytest.mark.parametrize("value", ["13/45/2024", "yesterday", "2024/01/05", "", "   ", None])
    def test_unrecognized_returns_none(self, value):
        assert parse_record_date(value) is None

    def test_surrounding_whitespace_ignored(self):
        assert parse_record_date("  2024-01-05 ").day == 5


class TestStatusPolarity:
    def test_permit_active_when_not_expired(self):
        assert is_active(Agency.PERMIT, False) is True
        assert is_active(Agency.PERMIT, True) is False

    def test_violations_follow_active_flag(self):
        for agency in (Agency.SANITATION_VIOLATION, Agency.HOUSING_VIOLATION):
            assert is_active(agency, True) is True
            assert is_active(agency, False) is False

    def test_emissions_active_when_not_compliant(self):
        assert is_active(Agency.EMISSIONS_FILING, True) is False
        assert is_active(Agency.EMISSIONS_FILING, False) is True

    def test_missing_flag_defaults(self):
        assert is_active(Agency.PERMIT, None) is True
        assert is_active(Agency.SANITATION_VIOLATION, None) is False
        assert is_active(Agency.HOUSING_VIOLATION, None) is False
        assert is_active(Agency.EMISSIONS_FILING, None) is False

    def test_string_flags(self):
        assert is_active(Agency.HOUSING_VIOLATION, "Y") is True
        assert is_active(Agency.HOUSING_VIOLATION, "false") is False
        assert is_active(Agency.PERMIT, "yes") is False
        assert is_active(Agency.SANITATION_VIOLATION, "maybe") is False


class TestNormalize:
    def test_basic_fields(self):
        record = normalize(raw(raw_date="2024-01-05", status_flag=True, record_id="v-1", fine_amount=100.0))
        assert record.building_id == "b1"
        assert record.agency == Agency.SANITATION_VIOLATION
        assert record.is_active is True
        assert record.date == datetime(2024, 1, 5, tzinfo=timezone.utc)
        assert record.record_id == "v-1"
        assert record.fine_amount == 100.0

    def test_idempotent(self):
        source = raw(raw_date="01/05/2024", status_flag="true")
        assert normalize(source) == normalize(source)

    def test_unparseable_date_does_not_raise(self):
        record = normalize(raw(raw_date="13/45/2024", status_flag=True))
        assert record.date is None
        assert record.is_active is True

    def test_missing_date(self):
        assert normalize(raw(raw_date=None)).date is None

    def test_same_day_in_every_format(self):
        dates = ["2024-01-05T10:00:00.000", "2024-01-05", "01/05/2024"]
        records = normalize_all(raw(raw_date=d) for d in dates)
        assert {r.date.date() for r in records} == {datetime(2024, 1, 5).date()}

    def test_normalize_all_keeps_order(self):
        records = normalize_all([raw(building_id="a"), raw(building_id="b"), raw(building_id="c")])
        assert [r.building_id for r in records] == ["a", "b", "c"]


class TestSeverity:
    def test_housing_lead_is_critical(self):
        record = normalize(raw(Agency.HOUSING_VIOLATION, description="Abate the LEAD-based paint"))
        assert record.severity == Severity.CRITICAL

    def test_housing_immediately_hazardous_is_critical(self):
        record = normalize(raw(Agency.HOUSING_VIOLATION, description="Immediately hazardous condition"))
        assert record.severity == Severity.CRITICAL

    def test_housing_hazardous_is_high(self):
        record = normalize(raw(Agency.HOUSING_VIOLATION, description="Hazardous stair tread"))
        assert record.severity == Severity.HIGH

    def test_housing_default_is_medium(self):
        record = normalize(raw(Agency.HOUSING_VIOLATION, description="Repair the broken door"))
        assert record.severity == Severity.MEDIUM

    def test_expired_permit_is_critical(self):
        assert normalize(raw(Agency.PERMIT, status_flag=True)).severity == Severity.CRITICAL

    def test_pending_permit_is_medium(self):
        record = normalize(raw(Agency.PERMIT, status_flag=False, status_text="Pending review"))
        assert record.severity == Severity.MEDIUM

    def test_issued_permit_is_low(self):
        record = normalize(raw(Agency.PERMIT, status_flag=False, status_text="ISSUED"))
        assert record.severity == Severity.LOW

    def test_sanitation_and_emissions_unclassified(self):
        assert normalize(raw(Agency.SANITATION_VIOLATION)).severity is None
        assert normalize(raw(Agency.EMISSIONS_FILING)).severity is None


class TestDecodePermit:
    def test_basic_fields(self):
        payload = {
            "bin": "1001",
            "job__": "J-1",
            "issuance_date": "2024-03-01T00:00:00.000",
            "expiration_date": "2025-03-01T00:00:00.000",
            "permit_status": "ISSUED",
        }
        result = dispatch_payload("permit", payload, NOW)
        assert result.agency == Agency.PERMIT
        assert result.building_id == "1001"
        assert result.raw_date == "2024-03-01T00:00:00.000"
        assert result.status_flag is False
        assert result.record_id == "J-1"

    def test_past_expiration_is_expired(self):
        payload = {"bin": "1001", "issuance_date": "2022-01-01", "expiration_date": "2023-01-01"}
        result = dispatch_payload("permit", payload, NOW)
        assert result.status_flag is True
        assert normalize(result).is_active is False

    def test_missing_expiration_is_not_expired(self):
        result = dispatch_payload("permit", {"bin": "1001"}, NOW)
        assert result.status_flag is False
        assert result.raw_date is None

    def test_falls_back_to_filing_date(self):
        result = dispatch_payload("permit", {"bin": "1001", "filing_date": "01/05/2024"}, NOW)
        assert result.raw_date == "01/05/2024"


class TestDecodeSanitationViolation:
    def test_open_violation(self):
        payload = {
            "bin": "2002",
            "violation_id": "D-9",
            "issue_date": "2024-05-20",
            "status": "Open",
            "fine_amount": "300",
        }
        result = dispatch_payload("sanitation_violation", payload, NOW)
        assert result.building_id == "2002"
        assert result.status_flag is True
        assert result.fine_amount == 300.0

    def test_disposed_violation_is_inactive(self):
        payload = {"bin": "2002", "status": "Open", "disposition_date": "2024-05-25"}
        assert dispatch_payload("sanitation_violation", payload, NOW).status_flag is False

    def test_closed_violation_is_inactive(self):
        payload = {"bin": "2002", "status": "CLOSED"}
        assert dispatch_payload("sanitation_violation", payload, NOW).status_flag is False

    def test_bad_fine_amount(self):
        payload = {"bin": "2002", "fine_amount": "n/a"}
        assert dispatch_payload("sanitation_violation", payload, NOW).fine_amount is None


class TestDecodeHousingViolation:
    def test_open_violation(self):
        payload = {
            "buildingid": "3003",
            "violationid": "H-1",
            "inspectiondate": "2024-02-02T00:00:00.000",
            "violationstatus": "Open",
            "novdescription": "Immediately hazardous: lead paint",
        }
        result = dispatch_payload("housing_violation", payload, NOW)
        assert result.building_id == "3003"
        assert result.status_flag is True
        record = normalize(result)
        assert record.severity == Severity.CRITICAL
        assert record.is_active is True

    def test_status_date_means_resolved(self):
        payload = {"buildingid": "3003", "violationstatus": "Open", "currentstatusdate": "2024-03-01"}
        assert dispatch_payload("housing_violation", payload, NOW).status_flag is False

    def test_close_status_means_resolved(self):
        payload = {"buildingid": "3003", "violationstatus": "Close"}
        assert dispatch_payload("housing_violation", payload, NOW).status_flag is False


class TestDecodeEmissionsFiling:
    def test_over_limit_is_not_compliant(self):
        payload = {
            "bbl": "1000010001",
            "reporting_year": "2024",
            "emissions_over_limit_metric_tons_co2e": 12.5,
            "potential_fine": 3350.0,
        }
        result = dispatch_payload("emissions_filing", payload, NOW)
        assert result.building_id == "1000010001"
        assert result.raw_date == "2024-01-01"
        assert result.status_flag is False
        assert normalize(result).is_active is True

    def test_missing_over_limit_is_compliant(self):
        result = dispatch_payload("emissions_filing", {"bbl": "1"}, NOW)
        assert result.status_flag is True
        assert result.raw_date is None

    def test_building_id_override(self):
        payload = {"building_id": "b7", "bbl": "1", "emissions_over_limit_metric_tons_co2e": 0}
        result = dispatch_payload("emissions_filing", payload, NOW)
        assert result.building_id == "b7"
        assert result.status_flag is True


class TestDispatcher:
    def test_accepts_enum(self):
        result = dispatch_payload(Agency.HOUSING_VIOLATION, {"buildingid": "x"}, NOW)
        assert result.agency == Agency.HOUSING_VIOLATION

    def test_naive_now_is_treated_as_utc(self):
        payload = {"bin": "1", "expiration_date": "2024-05-31"}
        result = dispatch_payload("permit", payload, datetime(2024, 6, 1))
        assert result.status_flag is True

    def test_unsupported_agency_raises(self):
        with pytest.raises(ValueError, match="Unsupported agency"):
            dispatch_payload("fire_inspection", {}, NOW)
