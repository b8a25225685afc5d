import math
from typing import Any, Dict, Iterable, List

from .database import DuplicateStatus, TERMINAL_STATUSES
from .errors import ValidationError
from .normalize import coerce_datetime

RESOLVE_STATUSES = [s.value for s in TERMINAL_STATUSES]
ALL_STATUSES = [s.value for s in DuplicateStatus]


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def validate_threshold(value: Any) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    None is valid and means "use the configured default".
    """
    if value is None:
        return []
    if not _is_number(value) or math.isnan(value):
        return ["Field 'threshold' must be a number"]
    if not 0.0 <= value <= 1.0:
        return ["Field 'threshold' must be between 0 and 1"]
    return []


def validate_status(value: Any, allowed: Iterable[str] = ALL_STATUSES) -> List[str]:
    allowed = list(allowed)
    if isinstance(value, DuplicateStatus):
        value = value.value
    if value not in allowed:
        return [f"Field 'status' must be one of: {', '.join(allowed)}"]
    return []


def validate_resolve_request(data: Dict[str, Any]) -> List[str]:
    """Check a resolve payload: status, optional notes, optional delete flag."""
    errors: List[str] = []

    if "status" not in data:
        errors.append("Missing required field: status")
    else:
        errors.extend(validate_status(data["status"], RESOLVE_STATUSES))

    notes = data.get("resolutionNotes")
    if notes is not None and not isinstance(notes, str):
        errors.append("Field 'resolutionNotes' must be a string if provided")

    delete_flag = data.get("deleteSecondRecord")
    if delete_flag is not None and not isinstance(delete_flag, bool):
        errors.append("Field 'deleteSecondRecord' must be a boolean if provided")

    return errors


def validate_case_record(data: Dict[str, Any]) -> List[str]:
    """Check one case row before import."""
    errors: List[str] = []

    if "fullName" not in data:
        errors.append("Missing required field: fullName")
    elif not isinstance(data["fullName"], str):
        errors.append("Field 'fullName' must be a string")

    if "id" in data and not _is_non_empty_str(data["id"]):
        errors.append("Field 'id' must be a non-empty string if provided")

    for f in ("alias", "province", "municipality"):
        if data.get(f) is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    age = data.get("age")
    if age is not None and (not isinstance(age, int) or isinstance(age, bool) or age < 0):
        errors.append("Field 'age' must be a non-negative integer if provided")

    if data.get("missingDate") is not None:
        try:
            coerce_datetime(data["missingDate"])
        except (TypeError, ValueError):
            errors.append("Field 'missingDate' must be an ISO-8601 date if provided")

    approved = data.get("approved")
    if approved is not None and not isinstance(approved, bool):
        errors.append("Field 'approved' must be a boolean if provided")

    return errors


def require_valid(errors: List[str]) -> None:
    """Raise ValidationError when a validator returned messages."""
    if errors:
        raise ValidationError("; ".join(errors), {"errors": errors})
