"""Boundary checks for assessment submissions and history paging."""
from __future__ import annotations

from typing import Any, Dict, List, Tuple

from pydantic import ValidationError

from telecare.schemas.assessment import AssessmentRequest
from telecare.utils.exceptions import AssessmentValidationError, ErrorKind, FieldError


MAX_PAGE_SIZE = 100

# derived server-side from the patient record, never taken from the client
_SERVER_ONLY_FIELDS = ("patientContext", "patient_context")

_MISSING_TYPES = {"missing", "string_too_short", "none_required"}


def _field_name(loc: Tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc) or "body"


def _kind_for(loc: Tuple[Any, ...], err_type: str, raw: Dict[str, Any]) -> ErrorKind:
    root = str(loc[0]) if loc else ""
    if loc and loc[-1] == "[key]":
        return ErrorKind.INVALID_VALUE
    if root in ("patientId", "patient_id") and len(loc) == 1:
        if err_type in _MISSING_TYPES or raw.get(root) is None:
            return ErrorKind.MISSING_FIELD
        return ErrorKind.INVALID_TYPE
    if root == "symptoms" and len(loc) == 1:
        if err_type in ("missing", "too_short") or raw.get(root) is None:
            return ErrorKind.EMPTY_REQUIRED_LIST
        return ErrorKind.INVALID_TYPE
    if root == "severity" and len(loc) > 1:
        return ErrorKind.OUT_OF_RANGE
    if err_type == "missing":
        return ErrorKind.MISSING_FIELD
    if err_type.endswith("_type") or err_type in ("model_attributes_type", "is_instance_of"):
        return ErrorKind.INVALID_TYPE
    return ErrorKind.INVALID_VALUE


def _message_for(kind: ErrorKind, default: str) -> str:
    if kind is ErrorKind.MISSING_FIELD:
        return "Field is required"
    if kind is ErrorKind.EMPTY_REQUIRED_LIST:
        return "At least one entry is required"
    if kind is ErrorKind.OUT_OF_RANGE:
        return "Must be an integer between 1 and 10"
    return default


def _field_errors(exc: ValidationError, raw: Dict[str, Any]) -> List[FieldError]:
    errors: List[FieldError] = []
    seen = set()
    for err in exc.errors():
        loc = tuple(err.get("loc") or ())
        field = _field_name(loc)
        if field in seen:
            continue
        seen.add(field)
        kind = _kind_for(loc, err.get("type", ""), raw)
        errors.append(FieldError(field=field, kind=kind, message=_message_for(kind, err.get("msg", "Invalid value"))))
    return errors


def validate_assessment_request(raw: Any) -> AssessmentRequest:
    """Validate a raw submission body, reporting every failing field at once.

    Unknown fields are ignored. A client-sent patientContext is discarded.
    """
    if not isinstance(raw, dict):
        raise AssessmentValidationError(
            [FieldError(field="body", kind=ErrorKind.INVALID_TYPE, message="Request body must be a JSON object")]
        )
    data = {k: v for k, v in raw.items() if k not in _SERVER_ONLY_FIELDS}
    try:
        return AssessmentRequest.model_validate(data)
    except ValidationError as exc:
        raise AssessmentValidationError(_field_errors(exc, data)) from exc


def validate_pagination(limit: Any, offset: Any) -> Tuple[int, int]:
    """Both values must be non-negative integers and limit at most MAX_PAGE_SIZE. Never clamps."""
    errors: List[FieldError] = []
    for name, value in (("limit", limit), ("offset", offset)):
        if not isinstance(value, int) or isinstance(value, bool):
            errors.append(FieldError(field=name, kind=ErrorKind.INVALID_TYPE, message="Must be an integer"))
        elif value < 0:
            errors.append(FieldError(field=name, kind=ErrorKind.OUT_OF_RANGE, message="Must not be negative"))
        elif name == "limit" and value > MAX_PAGE_SIZE:
            errors.append(
                FieldError(field=name, kind=ErrorKind.OUT_OF_RANGE, message=f"Must be at most {MAX_PAGE_SIZE}")
            )
    if errors:
        raise AssessmentValidationError(errors, message="Invalid pagination parameters")
    return limit, offset
