"""
Common / shared Pydantic schemas used across multiple endpoints.

Defines standardised error response models so that OpenAPI documentation
accurately reflects the error payloads returned by the API.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standard error envelope returned by all non-validation error handlers.

    Every error from the API follows this shape, making it predictable for
    client-side error handling.
    """

    error: bool = Field(default=True, description="Always ``true`` for errors")
    message: str = Field(
        ...,
        description="Human-readable error description",
        examples=["Failed to store uploaded files. Please try again later."],
    )


class ValidationErrorDetail(BaseModel):
    """Single field-level validation failure."""

    field: str = Field(
        ...,
        description="Wire name of the rejected field",
        examples=["zipCode"],
    )
    code: Optional[str] = Field(
        default=None,
        description="Machine-readable error code",
        examples=["RANGE"],
    )
    message: str = Field(
        ...,
        description="Explanation of the validation failure",
        examples=["ZIP code must be a valid US ZIP code (00501-99950)"],
    )


class ValidationErrorResponse(BaseModel):
    """
    Response body for 400 Bad Request (validation failure).

    ``details`` holds the first failing field only; submission validation
    is fail-fast at the boundary.
    """

    error: bool = Field(default=True, description="Always ``true`` for errors")
    message: str = Field(
        ...,
        description="The first validation error",
        examples=["First name is required"],
    )
    details: List[ValidationErrorDetail] = Field(..., description="Validation failures")
