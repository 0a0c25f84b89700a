"""
Shared pytest fixtures.

All tests run with ``USE_SQLITE=true`` so no PostgreSQL is needed.  Unit
tests use mocked sessions; the end-to-end tests build a private in-memory
SQLite engine and write uploads into ``tmp_path``.
"""

import os
import tempfile

# Must be set before the package (and its module-level settings) is imported.
os.environ.setdefault("USE_SQLITE", "true")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="intake-logs-"))
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="intake-uploads-"))

import uuid  # noqa: E402
from datetime import date, datetime, timezone  # noqa: E402
from typing import Optional  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import investor_intake.models  # noqa: E402,F401
from investor_intake.core.resilience import db_circuit_breaker  # noqa: E402
from investor_intake.db.session import build_engine, build_session_factory  # noqa: E402
from investor_intake.models.investor import Investor  # noqa: E402
from investor_intake.models.investor_file import InvestorFile  # noqa: E402
from investor_intake.services.file_store import FilePayload  # noqa: E402
from investor_intake.validation.fields import InvestorSubmission  # noqa: E402
from investor_intake.validation.files import FileDescriptor  # noqa: E402

# ────────────────────────────────────────────────────────────────────────────
# Factory helpers: create domain objects with sensible defaults
# ────────────────────────────────────────────────────────────────────────────

INVESTOR_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")
INVESTOR_ID_2 = uuid.UUID("55555555-5555-5555-5555-555555555555")

# Fixed "today" so age-window tests do not drift.
TODAY = date(2025, 6, 15)

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def make_submission(**overrides) -> InvestorSubmission:
    """A submission that passes every field check as of ``TODAY``."""
    values = dict(
        first_name="Jane",
        last_name="Doe",
        street_address="1 Market Street",
        state="CA",
        zip_code="94105",
        date_of_birth="1980-01-31",
        phone_number="(415) 555-0100",
    )
    values.update(overrides)
    return InvestorSubmission(**values)


def form_fields(**overrides) -> dict:
    """Multipart form fields (camelCase) for a valid submission."""
    fields = {
        "firstName": "Jane",
        "lastName": "Doe",
        "dateOfBirth": "1980-01-31",
        "phoneNumber": "(415) 555-0100",
        "streetAddress": "1 Market Street",
        "state": "CA",
        "zipCode": "94105",
    }
    fields.update(overrides)
    return fields


def make_descriptor(
    name: str = "passport.pdf", size: int = 1024, mime_type: str = "application/pdf"
) -> FileDescriptor:
    return FileDescriptor(name=name, size=size, mime_type=mime_type)


def make_payload(
    name: str = "passport.pdf", content: bytes = PDF_BYTES, mime_type: str = "application/pdf"
) -> FilePayload:
    return FilePayload(
        descriptor=FileDescriptor(name=name, size=len(content), mime_type=mime_type),
        content=content,
    )


def make_investor(
    *,
    id: uuid.UUID = INVESTOR_ID,
    first_name: str = "Jane",
    last_name: str = "Doe",
    created_at: Optional[datetime] = None,
) -> Investor:
    """Create an Investor domain object with sensible test defaults."""
    now = created_at or datetime.now(timezone.utc)
    return Investor(
        id=id,
        first_name=first_name,
        last_name=last_name,
        date_of_birth=date(1980, 1, 31),
        phone_number="4155550100",
        street_address="1 Market Street",
        state="CA",
        zip_code="94105",
        created_at=now,
        updated_at=now,
    )


def make_investor_file(
    investor_id: uuid.UUID = INVESTOR_ID, path: str = "./uploads/1-abc123-passport.pdf"
) -> InvestorFile:
    return InvestorFile(
        investor_id=investor_id,
        file_path=path,
        file_original_name="passport.pdf",
        file_size=1024,
        mime_type="application/pdf",
    )


# ────────────────────────────────────────────────────────────────────────────
# Pytest fixtures
# ────────────────────────────────────────────────────────────────────────────


@pytest.fixture()
def mock_db():
    """A mocked AsyncSession that tracks add/commit/rollback/execute calls."""
    session = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    session.commit = AsyncMock()
    session.refresh = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    return session


@pytest.fixture(autouse=True)
def _reset_circuit_breaker():
    """The breaker is process-wide; keep failures from leaking between tests."""
    db_circuit_breaker.reset()
    yield
    db_circuit_breaker.reset()


@pytest_asyncio.fixture()
async def sqlite_session_factory():
    """A private in-memory SQLite database with all tables created."""
    engine = build_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()
