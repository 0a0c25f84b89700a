"""
File validator for uploaded identity documents.

Checks declared metadata only (size, MIME type, name length; a part with
an empty file name is rejected).  Content is never inspected.  Every
file is checked independently and errors accumulate across the batch.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from investor_intake.core.config import settings
from investor_intake.validation.rules import (
    ALLOWED_MIME_TYPES,
    MAX_FILENAME_LENGTH,
    MAX_MIME_TYPE_LENGTH,
    MIN_FILENAME_LENGTH,
    ErrorCode,
    FieldError,
    field_error,
    file_error,
)


@dataclass(frozen=True)
class FileDescriptor:
    name: str
    size: int
    mime_type: str


def validate_files(
    files: Sequence[FileDescriptor], max_size: Optional[int] = None
) -> List[FieldError]:
    """
    Return every file error for the batch; an empty list means accept.

    ``max_size`` defaults to the configured ``MAX_FILE_SIZE``.
    """
    if max_size is None:
        max_size = settings.MAX_FILE_SIZE

    if not files:
        return [field_error("files", ErrorCode.FILES_REQUIRED)]

    errors: List[FieldError] = []
    for f in files:
        if f.size > max_size:
            errors.append(file_error(ErrorCode.FILE_SIZE, f.name, max_size))
        if f.mime_type not in ALLOWED_MIME_TYPES:
            errors.append(file_error(ErrorCode.FILE_TYPE, f.name))
        if not MIN_FILENAME_LENGTH <= len(f.name) <= MAX_FILENAME_LENGTH:
            errors.append(file_error(ErrorCode.FILE_NAME_LENGTH, f.name))
        if len(f.mime_type) > MAX_MIME_TYPE_LENGTH:
            errors.append(file_error(ErrorCode.FILE_MIME_TYPE, f.name))
    return errors
