"""
Unit tests for IntakeService — the submission pipeline.

The repository and file store are mocked so each step's failure can be
injected; the validators run for real.
"""

from unittest.mock import AsyncMock

import pytest

from investor_intake.core.exceptions import (
    PersistenceError,
    PersistenceErrorCategory,
    StorageError,
    StorageErrorCode,
    ValidationFailed,
)
from investor_intake.services.file_store import StoredFile
from investor_intake.services.intake_service import IntakeService, IntakeState
from investor_intake.validation.rules import DEFAULT_MAX_FILE_SIZE, ErrorCode

from .conftest import TODAY, make_descriptor, make_payload, make_submission


def _stored(payloads):
    return [
        StoredFile(
            stored_path=f"./uploads/1718000000000-abc12{i}-{p.descriptor.name}",
            original_name=p.descriptor.name,
            size=p.descriptor.size,
            mime_type=p.descriptor.mime_type,
        )
        for i, p in enumerate(payloads)
    ]


class TestIntakeService:
    """Tests for IntakeService.submit."""

    @pytest.fixture(autouse=True)
    def _setup(self):
        self.repo = AsyncMock()
        self.repo.create_with_files.side_effect = lambda investor, files: investor
        self.store = AsyncMock()
        self.store.save_all.side_effect = _stored
        self.service = IntakeService(self.repo, self.store, today=lambda: TODAY)

    # ── Success ──

    @pytest.mark.asyncio
    async def test_success_returns_confirmation(self):
        payloads = [make_payload("passport.pdf"), make_payload("selfie.png", mime_type="image/png")]

        resp = await self.service.submit(make_submission(), payloads)

        assert resp.first_name == "Jane"
        assert resp.last_name == "Doe"
        assert resp.files_count == 2
        assert self.service.state is IntakeState.RESPONDED

    @pytest.mark.asyncio
    async def test_rows_built_from_normalized_data_and_stored_files(self):
        payloads = [make_payload("passport.pdf")]

        await self.service.submit(
            make_submission(state="ca", phone_number="1-415-555-0100"), payloads
        )

        investor, rows = self.repo.create_with_files.await_args.args
        assert investor.state == "CA"
        assert investor.phone_number == "4155550100"
        assert [r.file_original_name for r in rows] == ["passport.pdf"]
        assert rows[0].file_path.startswith("./uploads/")
        assert rows[0].investor_id == investor.id

    @pytest.mark.asyncio
    async def test_resubmission_creates_distinct_investors(self):
        first = await self.service.submit(make_submission(), [make_payload()])
        second = await IntakeService(self.repo, self.store, today=lambda: TODAY).submit(
            make_submission(), [make_payload()]
        )
        assert first.id != second.id

    # ── Validation failures ──

    @pytest.mark.asyncio
    async def test_field_failure_stops_before_storage(self):
        with pytest.raises(ValidationFailed) as exc_info:
            await self.service.submit(make_submission(first_name=""), [make_payload()])

        assert exc_info.value.message == "First name is required"
        assert self.service.state is IntakeState.ERRORED
        self.store.save_all.assert_not_awaited()
        self.repo.create_with_files.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_files_rejected_before_storage(self):
        with pytest.raises(ValidationFailed) as exc_info:
            await self.service.submit(make_submission(), [])

        assert exc_info.value.first.code == ErrorCode.FILES_REQUIRED
        self.store.save_all.assert_not_awaited()
        self.repo.create_with_files.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_field_errors_reported_before_file_errors(self):
        with pytest.raises(ValidationFailed) as exc_info:
            await self.service.submit(make_submission(zip_code="00500"), [])

        assert exc_info.value.first.field == "zipCode"

    @pytest.mark.asyncio
    async def test_oversized_file_rejected(self):
        big = make_payload("big.pdf")
        big.descriptor = make_descriptor(name="big.pdf", size=DEFAULT_MAX_FILE_SIZE + 1)

        with pytest.raises(ValidationFailed) as exc_info:
            await self.service.submit(make_submission(), [make_payload(), big])

        assert exc_info.value.first.code == ErrorCode.FILE_SIZE
        assert exc_info.value.first.file_name == "big.pdf"
        self.store.save_all.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_configured_max_size_applies(self):
        service = IntakeService(self.repo, self.store, max_file_size=10, today=lambda: TODAY)
        with pytest.raises(ValidationFailed):
            await service.submit(make_submission(), [make_payload()])

    # ── Server-side failures ──

    @pytest.mark.asyncio
    async def test_storage_failure_skips_persistence(self):
        self.store.save_all.side_effect = StorageError(
            StorageErrorCode.DIRECTORY_UNAVAILABLE, detail="EACCES"
        )

        with pytest.raises(StorageError):
            await self.service.submit(make_submission(), [make_payload()])

        assert self.service.state is IntakeState.ERRORED
        self.repo.create_with_files.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_persistence_failure_leaves_files_and_errors(self, caplog):
        self.repo.create_with_files.side_effect = PersistenceError(
            PersistenceErrorCategory.CONNECTIVITY, "Failed to connect to the database."
        )

        with pytest.raises(PersistenceError):
            await self.service.submit(make_submission(), [make_payload("passport.pdf")])

        assert self.service.state is IntakeState.ERRORED
        self.store.save_all.assert_awaited_once()
        assert "left unreferenced" in caplog.text
        assert "passport.pdf" in caplog.text

    @pytest.mark.asyncio
    async def test_single_attempt_no_retry(self):
        self.repo.create_with_files.side_effect = PersistenceError(
            PersistenceErrorCategory.UNKNOWN, "A database error occurred."
        )
        with pytest.raises(PersistenceError):
            await self.service.submit(make_submission(), [make_payload()])

        assert self.repo.create_with_files.await_count == 1
        assert self.store.save_all.await_count == 1
