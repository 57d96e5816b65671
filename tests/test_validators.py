"""
Report and profile input validation
"""
import pytest

from core.exceptions import ValidationFailed
from core.validators import (
    normalize_email, parse_incident_type, validate_min_length,
    validate_profile_update, validate_report_input
)
from database.models import IncidentType


def test_valid_report_input_returns_type():
    assert validate_report_input("GBV", "Residence B", "Someone followed me home") == IncidentType.GBV


def test_report_input_collects_every_error():
    with pytest.raises(ValidationFailed) as exc:
        validate_report_input("Flood", "Lab", "too short")
    fields = [e.field for e in exc.value.errors]
    assert fields == ["incidentType", "locationDetails", "detailedDescription"]


def test_report_minimums_are_inclusive():
    # exactly 5 and 10 characters pass
    assert validate_report_input("Crime", "Gate1", "0123456789") == IncidentType.CRIME
    with pytest.raises(ValidationFailed):
        validate_report_input("Crime", "Gate", "0123456789")


def test_missing_report_fields_are_rejected():
    with pytest.raises(ValidationFailed) as exc:
        validate_report_input(None, None, None)
    assert len(exc.value.errors) == 3


def test_incident_type_is_a_closed_set():
    assert parse_incident_type("Bullying") == IncidentType.BULLYING
    assert parse_incident_type("fire") is None
    assert parse_incident_type("Other") is None


def test_validate_min_length_messages():
    assert validate_min_length("ab", 2, "Name") == (True, None)
    ok, message = validate_min_length("a", 2, "Name")
    assert not ok
    assert "at least 2" in message


def test_profile_update_accepts_partial_changes():
    accepted = validate_profile_update({"contactPhoneNumber": "0821234567", "medicalInformation": None})
    assert accepted == {"contactPhoneNumber": "0821234567"}


def test_profile_update_rejects_short_values():
    with pytest.raises(ValidationFailed) as exc:
        validate_profile_update({"contactName": "A", "emergencyContactPhoneNumber": "12345"})
    assert {e.field for e in exc.value.errors} == {"contactName", "emergencyContactPhoneNumber"}


@pytest.mark.parametrize("field", ["userType", "studentNumber", "id"])
def test_profile_update_rejects_fixed_fields(field):
    with pytest.raises(ValidationFailed) as exc:
        validate_profile_update({field: "admin"})
    assert exc.value.errors[0].field == field
    assert exc.value.errors[0].message == "This field cannot be changed"


def test_medical_information_has_no_minimum():
    assert validate_profile_update({"medicalInformation": ""}) == {"medicalInformation": ""}


def test_normalize_email():
    assert normalize_email("  Thandi@Campus.AC.za ") == "thandi@campus.ac.za"
