"""
Intake service — orchestrates a single investor submission.

One request is one attempt, executed strictly in sequence::

    RECEIVED → FIELD_VALIDATED → FILES_VALIDATED → FILES_STORED
             → PERSISTED → RESPONDED

``ERRORED`` is reachable from every step.  Validation failures never touch
the disk or the database.  A persistence failure after the files were
written leaves them on disk unreferenced; ``investor_intake.maintenance``
sweeps such orphans once they are older than the configured grace period.
"""

import logging
from datetime import date
from enum import Enum
from typing import Callable, Optional, Sequence

from investor_intake.core.config import settings
from investor_intake.core.exceptions import PersistenceError, ValidationFailed
from investor_intake.models.investor import Investor
from investor_intake.models.investor_file import InvestorFile
from investor_intake.repositories.investor_repo import InvestorRepository
from investor_intake.schemas.investor import InvestorCreatedResponse
from investor_intake.services.file_store import FilePayload, FileStore
from investor_intake.validation.fields import (
    InvestorSubmission,
    utc_today,
    validate_investor_fields,
)
from investor_intake.validation.files import validate_files

logger = logging.getLogger(__name__)


class IntakeState(str, Enum):
    RECEIVED = "received"
    FIELD_VALIDATED = "field_validated"
    FILES_VALIDATED = "files_validated"
    FILES_STORED = "files_stored"
    PERSISTED = "persisted"
    RESPONDED = "responded"
    ERRORED = "errored"


class IntakeService:
    """
    Per-request intake pipeline.

    ``state`` holds the last state reached, so a failed request can be
    inspected (and logged) after the exception has propagated.
    """

    def __init__(
        self,
        investor_repo: InvestorRepository,
        file_store: FileStore,
        max_file_size: Optional[int] = None,
        today: Callable[[], date] = utc_today,
    ):
        self._repo = investor_repo
        self._store = file_store
        self._max_file_size = max_file_size or settings.MAX_FILE_SIZE
        self._today = today
        self.state = IntakeState.RECEIVED

    def _transition(self, state: IntakeState) -> None:
        logger.debug(
            "Intake %s → %s",
            self.state.value,
            state.value,
            extra={"intake_state": state.value},
        )
        self.state = state

    async def submit(
        self, submission: InvestorSubmission, payloads: Sequence[FilePayload]
    ) -> InvestorCreatedResponse:
        """
        Validate, store and persist one submission.

        Raises
        ------
        ValidationFailed
            Field or file validation failed (400); only the first error is
            surfaced to the caller.
        StorageError
            The upload directory or a file write failed (500).
        PersistenceError
            The database rejected or failed the transaction (500).
        """
        try:
            return await self._submit(submission, payloads)
        except Exception:
            self._transition(IntakeState.ERRORED)
            raise

    async def _submit(
        self, submission: InvestorSubmission, payloads: Sequence[FilePayload]
    ) -> InvestorCreatedResponse:
        fields = validate_investor_fields(submission, today=self._today())
        if fields.errors:
            logger.info("Rejected submission: %s", fields.errors[0].message)
            raise ValidationFailed(fields.errors)
        self._transition(IntakeState.FIELD_VALIDATED)

        file_errors = validate_files(
            [p.descriptor for p in payloads], max_size=self._max_file_size
        )
        if file_errors:
            logger.info("Rejected submission: %s", file_errors[0].message)
            raise ValidationFailed(file_errors)
        self._transition(IntakeState.FILES_VALIDATED)

        stored = await self._store.save_all(payloads)
        self._transition(IntakeState.FILES_STORED)

        investor = Investor(**fields.data.model_dump())
        rows = [
            InvestorFile(
                investor_id=investor.id,
                file_path=f.stored_path,
                file_original_name=f.original_name,
                file_size=f.size,
                mime_type=f.mime_type,
            )
            for f in stored
        ]
        try:
            created = await self._repo.create_with_files(investor, rows)
        except PersistenceError:
            logger.warning(
                "%d stored file(s) left unreferenced after failed commit: %s",
                len(stored),
                ", ".join(f.stored_path for f in stored),
            )
            raise
        self._transition(IntakeState.PERSISTED)

        logger.info(
            "Created investor %s with %d document(s)",
            created.id,
            len(rows),
            extra={"investor_id": str(created.id), "files_count": len(rows)},
        )
        response = InvestorCreatedResponse(
            id=created.id,
            first_name=created.first_name,
            last_name=created.last_name,
            created_at=created.created_at,
            files_count=len(rows),
        )
        self._transition(IntakeState.RESPONDED)
        return response
