"""
Validation rule set — the single source of truth for investor field and
document constraints.

Consumed by:
- the field and file validators (authoritative server-side checks),
- the SQLModel table definitions (CHECK constraints mirror these bounds),
- ``GET /investors/form-rules`` (the client-side mirror).

Changing a bound here changes it at every layer at once.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

# ── US states & territories (50 states + DC) ──
US_STATES: Dict[str, str] = {
    "AL": "Alabama",
    "AK": "Alaska",
    "AZ": "Arizona",
    "AR": "Arkansas",
    "CA": "California",
    "CO": "Colorado",
    "CT": "Connecticut",
    "DE": "Delaware",
    "FL": "Florida",
    "GA": "Georgia",
    "HI": "Hawaii",
    "ID": "Idaho",
    "IL": "Illinois",
    "IN": "Indiana",
    "IA": "Iowa",
    "KS": "Kansas",
    "KY": "Kentucky",
    "LA": "Louisiana",
    "ME": "Maine",
    "MD": "Maryland",
    "MA": "Massachusetts",
    "MI": "Michigan",
    "MN": "Minnesota",
    "MS": "Mississippi",
    "MO": "Missouri",
    "MT": "Montana",
    "NE": "Nebraska",
    "NV": "Nevada",
    "NH": "New Hampshire",
    "NJ": "New Jersey",
    "NM": "New Mexico",
    "NY": "New York",
    "NC": "North Carolina",
    "ND": "North Dakota",
    "OH": "Ohio",
    "OK": "Oklahoma",
    "OR": "Oregon",
    "PA": "Pennsylvania",
    "RI": "Rhode Island",
    "SC": "South Carolina",
    "SD": "South Dakota",
    "TN": "Tennessee",
    "TX": "Texas",
    "UT": "Utah",
    "VT": "Vermont",
    "VA": "Virginia",
    "WA": "Washington",
    "WV": "West Virginia",
    "WI": "Wisconsin",
    "WY": "Wyoming",
    "DC": "District of Columbia",
}
STATE_CODES: Tuple[str, ...] = tuple(US_STATES)

# ── Field lengths ──
NAME_MAX_LENGTH = 100
STREET_ADDRESS_MAX_LENGTH = 255
STATE_LENGTH = 2
PHONE_LENGTH = 10  # after normalization
ZIP_MAX_LENGTH = 10  # "NNNNN-NNNN"

# ── Age window (inclusive) ──
MIN_AGE = 18
MAX_AGE = 120

# ── Date of birth wire format ──
DATE_OF_BIRTH_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

# ── Phone ──
# Display-level pattern only (optional +1, area-code parentheses, separators).
# The authoritative rule is "normalizes to exactly 10 digits".
PHONE_DISPLAY_PATTERN = r"^(\+?1[-.\s]?)?\(?([2-9][0-9]{2})\)?[-.\s]?([2-9][0-9]{2})[-.\s]?([0-9]{4})$"
PHONE_FORMAT_EXAMPLE = "1-951-526-3834 or (951) 526-3834"
_NON_DIGITS = re.compile(r"[^0-9]")

# ── ZIP ──
ZIP_PATTERN = re.compile(r"[0-9]{5}(-[0-9]{4})?")
ZIP_MIN = 501  # 00501 is the lowest assigned US ZIP
ZIP_MAX = 99950
ZIP_FORMAT_EXAMPLE = "12345 or 12345-6789"

# ── Files ──
DEFAULT_MAX_FILE_SIZE = 3 * 1024 * 1024
ALLOWED_MIME_TYPES: Tuple[str, ...] = (
    "application/pdf",
    "image/jpeg",
    "image/jpg",
    "image/png",
)
MIN_FILENAME_LENGTH = 1
MAX_FILENAME_LENGTH = 255
MAX_MIME_TYPE_LENGTH = 100
MAX_STORED_PATH_LENGTH = 500


class ErrorCode(str, Enum):
    """Machine-readable reason attached to every validation error."""

    REQUIRED = "REQUIRED"
    LENGTH = "LENGTH"
    INVALID = "INVALID"
    FORMAT = "FORMAT"
    RANGE = "RANGE"
    FILES_REQUIRED = "FILES_REQUIRED"
    FILE_SIZE = "FILE_SIZE"
    FILE_TYPE = "FILE_TYPE"
    FILE_NAME_LENGTH = "FILE_NAME_LENGTH"
    FILE_MIME_TYPE = "FILE_MIME_TYPE"


@dataclass(frozen=True)
class FieldError:
    """
    A single validation failure.

    ``field`` is the wire name (``firstName``, ``files``, ...).  For file
    errors ``file_name`` is the client-supplied name of the offending file.
    """

    field: str
    code: ErrorCode
    message: str
    file_name: Optional[str] = None


# ── Messages ──
MESSAGES: Dict[str, str] = {
    "firstName.REQUIRED": "First name is required",
    "firstName.LENGTH": f"First name must be between 1 and {NAME_MAX_LENGTH} characters",
    "lastName.REQUIRED": "Last name is required",
    "lastName.LENGTH": f"Last name must be between 1 and {NAME_MAX_LENGTH} characters",
    "streetAddress.REQUIRED": "Street address is required",
    "streetAddress.LENGTH": (
        f"Street address must be between 1 and {STREET_ADDRESS_MAX_LENGTH} characters"
    ),
    "state.REQUIRED": "State is required",
    "state.LENGTH": "State must be a valid 2-letter state code",
    "state.INVALID": "Invalid US state code",
    "zipCode.REQUIRED": "ZIP code is required",
    "zipCode.FORMAT": f"Invalid ZIP code format. Must be {ZIP_FORMAT_EXAMPLE}",
    "zipCode.RANGE": "ZIP code must be a valid US ZIP code (00501-99950)",
    "dateOfBirth.REQUIRED": "Date of birth is required",
    "dateOfBirth.FORMAT": "Date of birth must be a valid date (YYYY-MM-DD)",
    "dateOfBirth.RANGE": f"Age must be between {MIN_AGE} and {MAX_AGE} years",
    "phoneNumber.REQUIRED": "Phone number is required",
    "phoneNumber.LENGTH": f"Phone number must be exactly {PHONE_LENGTH} digits",
    "files.FILES_REQUIRED": "At least one document is required",
}


def field_error(field: str, code: ErrorCode) -> FieldError:
    """Build a :class:`FieldError` with the canonical message for ``field``/``code``."""
    return FieldError(field=field, code=code, message=MESSAGES[f"{field}.{code.value}"])


def file_error(code: ErrorCode, file_name: str, max_size: int = DEFAULT_MAX_FILE_SIZE) -> FieldError:
    """Build a per-file :class:`FieldError` naming the offending file."""
    if code == ErrorCode.FILE_SIZE:
        message = (
            f'File "{file_name}" exceeds maximum allowed size '
            f"({format_size(max_size)})"
        )
    elif code == ErrorCode.FILE_TYPE:
        message = f'File "{file_name}" has invalid type. Only PDF, JPG, and PNG are allowed'
    elif code == ErrorCode.FILE_NAME_LENGTH and len(file_name) < MIN_FILENAME_LENGTH:
        message = "Every uploaded file must have a name."
    elif code == ErrorCode.FILE_NAME_LENGTH:
        message = (
            f'File name "{file_name}" is too long. '
            f"Maximum {MAX_FILENAME_LENGTH} characters allowed."
        )
    elif code == ErrorCode.FILE_MIME_TYPE:
        message = f'File "{file_name}" has an invalid mime type.'
    else:
        raise ValueError(f"{code.value} is not a per-file error code")
    return FieldError(field="files", code=code, message=message, file_name=file_name)


def path_too_long_message(file_name: str) -> str:
    return (
        f'File name "{file_name}" results in a path that is too long. '
        "Please use a shorter filename."
    )


def format_size(num_bytes: int) -> str:
    """``3145728`` → ``"3MB"``; ``1572864`` → ``"1.5MB"``; ``2048`` → ``"2KB"``."""
    if num_bytes >= 1024 * 1024:
        return f"{num_bytes / (1024 * 1024):g}MB"
    if num_bytes >= 1024:
        return f"{num_bytes / 1024:g}KB"
    return f"{num_bytes}B"


# ── Helpers shared by validators and tests ──


def normalize_phone_number(value: str) -> str:
    """
    Strip every character that is not an ASCII digit.

    An 11-digit result starting with the ``1`` country code is reduced to the
    10-digit national number, so ``"1-951-526-3834"`` and ``"+1 (951)
    526-3834"`` both normalize to ``"9515263834"``.
    """
    digits = _NON_DIGITS.sub("", value)
    if len(digits) == PHONE_LENGTH + 1 and digits.startswith("1"):
        return digits[1:]
    return digits


def is_valid_state_code(value: str) -> bool:
    return value.upper() in US_STATES


def zip_prefix(value: str) -> int:
    """Numeric value of the leading five digits of a well-formed ZIP."""
    return int(value[:5])
