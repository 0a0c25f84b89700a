"""
Seed script — populates the database with sample investors for development.

Usage:
    python -m investor_intake.seed

Every sample goes through the field validator and is written through
``InvestorRepository.create_with_files``, exactly like a real submission
(minus the upload; sample file rows point at ``<UPLOAD_DIR>/sample/``).
The script is idempotent: it does nothing if any investor already exists.
"""

import asyncio
import logging
import os
from typing import List, Tuple

from sqlmodel import SQLModel

import investor_intake.models  # noqa: F401
from investor_intake.core.config import settings
from investor_intake.core.logging import setup_logging
from investor_intake.db.session import AsyncSessionLocal, engine
from investor_intake.models.investor import Investor
from investor_intake.models.investor_file import InvestorFile
from investor_intake.repositories.investor_repo import InvestorRepository
from investor_intake.validation.fields import InvestorSubmission, validate_investor_fields

logger = logging.getLogger(__name__)

SAMPLE_INVESTORS = [
    {
        "submission": InvestorSubmission(
            first_name="John",
            last_name="Smith",
            date_of_birth="1985-03-15",
            phone_number="(310) 555-0123",
            street_address="123 Oak Street",
            state="CA",
            zip_code="90210",
        ),
        "file": ("john-smith-id.pdf", "drivers-license.pdf", "application/pdf"),
    },
    {
        "submission": InvestorSubmission(
            first_name="Sarah",
            last_name="Johnson",
            date_of_birth="1990-07-22",
            phone_number="212-555-0456",
            street_address="456 Maple Avenue",
            state="NY",
            zip_code="10001",
        ),
        "file": ("sarah-johnson-id.pdf", "passport.pdf", "application/pdf"),
    },
    {
        "submission": InvestorSubmission(
            first_name="Michael",
            last_name="Chen",
            date_of_birth="1978-11-08",
            phone_number="+1 972 555 0789",
            street_address="789 Pine Boulevard",
            state="TX",
            zip_code="75001",
        ),
        "file": ("michael-chen-id.png", "state-id.png", "image/png"),
    },
    {
        "submission": InvestorSubmission(
            first_name="Emily",
            last_name="Rodriguez",
            date_of_birth="1995-05-30",
            phone_number="305.555.0321",
            street_address="321 Cedar Lane",
            state="FL",
            zip_code="33101",
        ),
        "file": ("emily-rodriguez-id.jpg", "drivers-license.jpg", "image/jpeg"),
    },
    {
        "submission": InvestorSubmission(
            first_name="David",
            last_name="Williams",
            date_of_birth="1982-09-17",
            phone_number="2065550654",
            street_address="654 Birch Court",
            state="WA",
            zip_code="98101-1234",
        ),
        "file": ("david-williams-id.pdf", "passport.pdf", "application/pdf"),
    },
]

SAMPLE_FILE_SIZE = 240 * 1024


def build_seed_records() -> List[Tuple[Investor, List[InvestorFile]]]:
    """Validate every sample and build its rows.  Raises ``ValueError`` on an invalid sample."""
    records = []
    for sample in SAMPLE_INVESTORS:
        result = validate_investor_fields(sample["submission"])
        if result.errors:
            raise ValueError(f"Invalid seed investor: {result.errors[0].message}")

        investor = Investor(**result.data.model_dump())
        stored_name, original_name, mime_type = sample["file"]
        investor_file = InvestorFile(
            investor_id=investor.id,
            file_path=os.path.join(settings.UPLOAD_DIR, "sample", stored_name),
            file_original_name=original_name,
            file_size=SAMPLE_FILE_SIZE,
            mime_type=mime_type,
        )
        records.append((investor, [investor_file]))
    return records


async def seed() -> int:
    """Create tables and insert the samples if the database is empty.  Returns rows seeded."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    async with AsyncSessionLocal() as session:
        repo = InvestorRepository(session)
        if await repo.count() > 0:
            logger.info("Database already contains investors, skipping seed")
            return 0

        records = build_seed_records()
        for investor, files in records:
            await repo.create_with_files(investor, files)
            logger.info("Seeded %s %s", investor.first_name, investor.last_name)

    logger.info("Seeded %d investors", len(records))
    return len(records)


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed())
