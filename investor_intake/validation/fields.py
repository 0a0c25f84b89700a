"""
Field validator for investor submissions.

Pure function: no I/O, no clock access beyond an injectable ``today``.
Checks run in a fixed order (first name, last name, street address, state,
ZIP, date of birth, phone) and each field stops at its first failing check,
so the error list is deterministic and at most one entry per field.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import List, Optional

from investor_intake.schemas.investor import InvestorCreate
from investor_intake.validation.rules import (
    DATE_OF_BIRTH_PATTERN,
    MAX_AGE,
    MIN_AGE,
    NAME_MAX_LENGTH,
    PHONE_LENGTH,
    STATE_LENGTH,
    STREET_ADDRESS_MAX_LENGTH,
    ZIP_MAX,
    ZIP_MIN,
    ZIP_PATTERN,
    ErrorCode,
    FieldError,
    field_error,
    is_valid_state_code,
    normalize_phone_number,
    zip_prefix,
)


@dataclass
class InvestorSubmission:
    """The seven scalar form fields, exactly as submitted."""

    first_name: str = ""
    last_name: str = ""
    street_address: str = ""
    state: str = ""
    zip_code: str = ""
    date_of_birth: str = ""
    phone_number: str = ""


@dataclass
class FieldValidationResult:
    errors: List[FieldError] = field(default_factory=list)
    data: Optional[InvestorCreate] = None

    @property
    def is_valid(self) -> bool:
        return not self.errors


def utc_today() -> date:
    """Today in UTC, the clock the database age CHECK uses."""
    return datetime.now(timezone.utc).date()


def age_on(birth: date, today: date) -> int:
    """Whole years between ``birth`` and ``today`` (anniversary-based)."""
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


# ── Per-field checks (return the first failure or None) ──


def _check_text(name: str, value: str, max_length: int) -> Optional[FieldError]:
    if not value or not value.strip():
        return field_error(name, ErrorCode.REQUIRED)
    if len(value.strip()) == 0 or len(value) > max_length:
        return field_error(name, ErrorCode.LENGTH)
    return None


def _check_state(value: str) -> Optional[FieldError]:
    if not value:
        return field_error("state", ErrorCode.REQUIRED)
    if len(value) != STATE_LENGTH:
        return field_error("state", ErrorCode.LENGTH)
    if not is_valid_state_code(value):
        return field_error("state", ErrorCode.INVALID)
    return None


def _check_zip(value: str) -> Optional[FieldError]:
    if not value:
        return field_error("zipCode", ErrorCode.REQUIRED)
    if not ZIP_PATTERN.fullmatch(value):
        return field_error("zipCode", ErrorCode.FORMAT)
    if not ZIP_MIN <= zip_prefix(value) <= ZIP_MAX:
        return field_error("zipCode", ErrorCode.RANGE)
    return None


def _parse_date_of_birth(value: str) -> Optional[date]:
    if not DATE_OF_BIRTH_PATTERN.fullmatch(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _check_date_of_birth(value: str, today: date) -> Optional[FieldError]:
    if not value:
        return field_error("dateOfBirth", ErrorCode.REQUIRED)
    birth = _parse_date_of_birth(value)
    if birth is None:
        return field_error("dateOfBirth", ErrorCode.FORMAT)
    if not MIN_AGE <= age_on(birth, today) <= MAX_AGE:
        return field_error("dateOfBirth", ErrorCode.RANGE)
    return None


def _check_phone(value: str) -> Optional[FieldError]:
    digits = normalize_phone_number(value)
    if not digits:
        return field_error("phoneNumber", ErrorCode.REQUIRED)
    if len(digits) != PHONE_LENGTH:
        return field_error("phoneNumber", ErrorCode.LENGTH)
    return None


def validate_investor_fields(
    submission: InvestorSubmission, today: Optional[date] = None
) -> FieldValidationResult:
    """
    Validate all seven fields and return every error in field order.

    On success ``data`` holds the normalized values: strings verbatim except
    the phone number (10 digits) and the state (upper-cased).
    """
    today = today or utc_today()

    checks = (
        _check_text("firstName", submission.first_name, NAME_MAX_LENGTH),
        _check_text("lastName", submission.last_name, NAME_MAX_LENGTH),
        _check_text("streetAddress", submission.street_address, STREET_ADDRESS_MAX_LENGTH),
        _check_state(submission.state),
        _check_zip(submission.zip_code),
        _check_date_of_birth(submission.date_of_birth, today),
        _check_phone(submission.phone_number),
    )
    errors = [err for err in checks if err is not None]
    if errors:
        return FieldValidationResult(errors=errors)

    return FieldValidationResult(
        data=InvestorCreate(
            first_name=submission.first_name,
            last_name=submission.last_name,
            street_address=submission.street_address,
            state=submission.state.upper(),
            zip_code=submission.zip_code,
            date_of_birth=date.fromisoformat(submission.date_of_birth),
            phone_number=normalize_phone_number(submission.phone_number),
        )
    )
