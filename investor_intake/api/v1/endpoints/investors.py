"""
Investor API endpoints.

- POST  /investors             — Submit an investor with identity documents
- GET   /investors             — Most recent investors, newest first
- GET   /investors/stats       — Intake counts
- GET   /investors/form-rules  — Validation bounds for client-side checks
"""

import os
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from investor_intake.core.config import settings
from investor_intake.db.session import get_db
from investor_intake.repositories.investor_repo import InvestorRepository
from investor_intake.schemas.common import ErrorResponse, ValidationErrorResponse
from investor_intake.schemas.investor import (
    FormRulesResponse,
    InvestorCreatedResponse,
    InvestorResponse,
    InvestorStatsResponse,
)
from investor_intake.services.file_store import FilePayload, FileStore, get_file_store
from investor_intake.services.intake_service import IntakeService
from investor_intake.services.investor_service import InvestorService
from investor_intake.validation.fields import InvestorSubmission
from investor_intake.validation.files import FileDescriptor

router = APIRouter()


# ── Dependency injection ──
# A fresh service per request, each wired to its own DB session.  Tests swap
# ``get_db`` / ``get_file_store`` or these builders via dependency_overrides.


def _get_intake_service(
    db: AsyncSession = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
) -> IntakeService:
    return IntakeService(InvestorRepository(db), file_store)


def _get_investor_service(db: AsyncSession = Depends(get_db)) -> InvestorService:
    return InvestorService(InvestorRepository(db))


def _payload_from_upload(upload: UploadFile) -> FilePayload:
    """Describe an upload by its declared metadata; the spooled stream is passed through."""
    size = upload.size
    if size is None:
        upload.file.seek(0, os.SEEK_END)
        size = upload.file.tell()
        upload.file.seek(0)
    descriptor = FileDescriptor(
        name=upload.filename or "",
        size=size,
        mime_type=upload.content_type or "",
    )
    return FilePayload(descriptor=descriptor, content=upload.file)


# ── Endpoints ──


@router.post(
    "",
    response_model=InvestorCreatedResponse,
    status_code=201,
    summary="Submit an investor",
    description=(
        "Multipart form with the seven investor fields and one or more "
        "``files`` (PDF, JPG or PNG, 3MB each by default).  Validation is "
        "fail-fast: only the first error is reported."
    ),
    responses={
        400: {"model": ValidationErrorResponse, "description": "Validation error"},
        500: {"model": ErrorResponse, "description": "File storage or database failure"},
    },
)
async def submit_investor(
    # Missing fields default to "" so the field validator reports them as
    # REQUIRED instead of the framework answering 422.
    first_name: str = Form("", alias="firstName"),
    last_name: str = Form("", alias="lastName"),
    date_of_birth: str = Form("", alias="dateOfBirth"),
    phone_number: str = Form("", alias="phoneNumber"),
    street_address: str = Form("", alias="streetAddress"),
    state: str = Form("", alias="state"),
    zip_code: str = Form("", alias="zipCode"),
    files: Optional[List[UploadFile]] = File(None),
    service: IntakeService = Depends(_get_intake_service),
) -> InvestorCreatedResponse:
    submission = InvestorSubmission(
        first_name=first_name,
        last_name=last_name,
        street_address=street_address,
        state=state,
        zip_code=zip_code,
        date_of_birth=date_of_birth,
        phone_number=phone_number,
    )
    payloads = [_payload_from_upload(f) for f in files or []]
    return await service.submit(submission, payloads)


@router.get(
    "",
    response_model=List[InvestorResponse],
    summary="List recent investors",
    description="Returns the most recent investors, newest first.",
)
async def list_investors(
    service: InvestorService = Depends(_get_investor_service),
) -> List[InvestorResponse]:
    return await service.list_recent_investors()


@router.get(
    "/stats",
    response_model=InvestorStatsResponse,
    summary="Intake statistics",
    description="Total investors and investors created in the last 30 days.",
)
async def investor_stats(
    service: InvestorService = Depends(_get_investor_service),
) -> InvestorStatsResponse:
    return await service.get_stats()


@router.get(
    "/form-rules",
    response_model=FormRulesResponse,
    summary="Form validation rules",
    description=(
        "Every bound the server enforces on a submission, for client-side "
        "validation with identical limits."
    ),
)
async def form_rules() -> FormRulesResponse:
    return FormRulesResponse.from_rules(max_file_size=settings.MAX_FILE_SIZE)
