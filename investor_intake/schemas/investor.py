"""
Pydantic schemas for Investor API request / response serialisation.

All wire payloads use camelCase (``firstName``, ``createdAt``); Python code
uses snake_case.  ``populate_by_name`` lets internal code construct models
with either spelling.
"""

from datetime import date, datetime
from typing import Dict, List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from investor_intake.validation import rules


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class InvestorCreate(_CamelModel):
    """
    Normalized investor data produced by the field validator.

    Strings are carried verbatim except ``phone_number`` (10 digits) and
    ``state`` (upper-cased).  Bounds are enforced by the validator, not here,
    so that every rejection carries the intake error codes.
    """

    first_name: str
    last_name: str
    date_of_birth: date
    phone_number: str
    street_address: str
    state: str
    zip_code: str


class InvestorCreatedResponse(_CamelModel):
    """Schema returned by ``POST /investors`` (201).  Never exposes stored paths."""

    id: UUID
    first_name: str = Field(..., examples=["Jane"])
    last_name: str = Field(..., examples=["Doe"])
    created_at: datetime
    files_count: int = Field(..., ge=1, description="Number of documents stored")


class InvestorResponse(_CamelModel):
    """Schema returned by ``GET /investors``."""

    id: UUID
    first_name: str
    last_name: str
    date_of_birth: date
    phone_number: str
    street_address: str
    state: str
    zip_code: str
    created_at: datetime
    updated_at: datetime


class InvestorStatsResponse(_CamelModel):
    """Aggregate intake counts."""

    total_investors: int
    recent_investors: int = Field(..., description="Created in the last 30 days")


# ── Form rules (client-side mirror of the validation rule set) ──


class StateOption(BaseModel):
    value: str
    label: str


class FileRules(_CamelModel):
    max_file_size: int
    max_file_size_label: str
    allowed_mime_types: List[str]
    min_filename_length: int
    max_filename_length: int
    max_mime_type_length: int
    max_stored_path_length: int


class FormRulesResponse(_CamelModel):
    """
    Every bound the server enforces, served so a client can validate with
    exactly the same limits before submitting.
    """

    states: List[StateOption]
    max_lengths: Dict[str, int]
    min_age: int
    max_age: int
    phone_pattern: str
    phone_format_example: str
    phone_digits: int
    zip_pattern: str
    zip_format_example: str
    zip_min: str
    zip_max: str
    files: FileRules
    messages: Dict[str, str]

    @classmethod
    def from_rules(cls, max_file_size: int) -> "FormRulesResponse":
        """Snapshot of :mod:`investor_intake.validation.rules`."""
        return cls(
            states=[StateOption(value=code, label=label) for code, label in rules.US_STATES.items()],
            max_lengths={
                "firstName": rules.NAME_MAX_LENGTH,
                "lastName": rules.NAME_MAX_LENGTH,
                "streetAddress": rules.STREET_ADDRESS_MAX_LENGTH,
                "state": rules.STATE_LENGTH,
                "zipCode": rules.ZIP_MAX_LENGTH,
            },
            min_age=rules.MIN_AGE,
            max_age=rules.MAX_AGE,
            phone_pattern=rules.PHONE_DISPLAY_PATTERN,
            phone_format_example=rules.PHONE_FORMAT_EXAMPLE,
            phone_digits=rules.PHONE_LENGTH,
            zip_pattern=f"^{rules.ZIP_PATTERN.pattern}$",
            zip_format_example=rules.ZIP_FORMAT_EXAMPLE,
            zip_min=f"{rules.ZIP_MIN:05d}",
            zip_max=f"{rules.ZIP_MAX:05d}",
            files=FileRules(
                max_file_size=max_file_size,
                max_file_size_label=rules.format_size(max_file_size),
                allowed_mime_types=list(rules.ALLOWED_MIME_TYPES),
                min_filename_length=rules.MIN_FILENAME_LENGTH,
                max_filename_length=rules.MAX_FILENAME_LENGTH,
                max_mime_type_length=rules.MAX_MIME_TYPE_LENGTH,
                max_stored_path_length=rules.MAX_STORED_PATH_LENGTH,
            ),
            messages=dict(rules.MESSAGES),
        )
