"""
Input validation utilities for reports and profiles.
"""
from typing import Any, Dict, List, Optional, Tuple

from database.models import IncidentType
from core.exceptions import FieldError, ValidationFailed


MIN_LOCATION_LENGTH = 5
MIN_DESCRIPTION_LENGTH = 10
MIN_NAME_LENGTH = 2
MIN_PHONE_LENGTH = 10

# Fields a user may change on their own profile (userType/studentNumber are fixed at registration)
EDITABLE_PROFILE_FIELDS = (
    "contactName",
    "contactPhoneNumber",
    "emergencyContactName",
    "emergencyContactPhoneNumber",
    "medicalInformation",
)


def validate_min_length(value: Optional[str], minimum: int, label: str) -> Tuple[bool, Optional[str]]:
    """
    Validate that a text value has at least `minimum` characters.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None:
        return False, f"{label} is required"
    if not isinstance(value, str):
        return False, f"{label} must be text"
    if len(value) < minimum:
        return False, f"{label} must be at least {minimum} characters."
    return True, None


def parse_incident_type(value: Any) -> Optional[IncidentType]:
    """Map a submitted incident type onto the closed enum (exact value match)."""
    if isinstance(value, IncidentType):
        return value
    for incident_type in IncidentType:
        if incident_type.value == value:
            return incident_type
    return None


def validate_report_input(
    incident_type: Any,
    location_details: Any,
    detailed_description: Any,
) -> IncidentType:
    """
    Validate report submission fields, collecting every problem before failing.

    Returns:
        The parsed IncidentType

    Raises:
        ValidationFailed: with one FieldError per invalid field
    """
    errors: List[FieldError] = []

    parsed_type = parse_incident_type(incident_type)
    if parsed_type is None:
        allowed = ", ".join(t.value for t in IncidentType)
        errors.append(FieldError("incidentType", f"Incident type must be one of: {allowed}."))

    ok, message = validate_min_length(location_details, MIN_LOCATION_LENGTH, "Location")
    if not ok:
        errors.append(FieldError("locationDetails", message))

    ok, message = validate_min_length(detailed_description, MIN_DESCRIPTION_LENGTH, "Description")
    if not ok:
        errors.append(FieldError("detailedDescription", message))

    if errors:
        raise ValidationFailed(errors)
    return parsed_type


def validate_profile_update(changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a partial profile update. Only fields present in `changes` are checked.

    Returns:
        The accepted changes (None values dropped, so omitted and null both mean "keep")

    Raises:
        ValidationFailed: unknown/forbidden fields or fields below their minimum length
    """
    errors: List[FieldError] = []
    accepted: Dict[str, Any] = {}

    for field, value in changes.items():
        if field not in EDITABLE_PROFILE_FIELDS:
            errors.append(FieldError(field, "This field cannot be changed"))
            continue
        if value is None:
            continue
        if field in ("contactName", "emergencyContactName"):
            label = "Full name" if field == "contactName" else "Contact name"
            ok, message = validate_min_length(value, MIN_NAME_LENGTH, label)
        elif field in ("contactPhoneNumber", "emergencyContactPhoneNumber"):
            ok, message = validate_min_length(value, MIN_PHONE_LENGTH, "Phone number")
            if not ok and isinstance(value, str):
                message = "Please enter a valid phone number."
        else:
            ok, message = (True, None) if isinstance(value, str) else (False, "Medical information must be text")
        if not ok:
            errors.append(FieldError(field, message))
        else:
            accepted[field] = value

    if errors:
        raise ValidationFailed(errors)
    return accepted


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()

