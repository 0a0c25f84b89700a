"""Tests for the development seed script."""

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from investor_intake import seed as seed_module
from investor_intake.db.session import build_engine, build_session_factory
from investor_intake.models.investor import Investor
from investor_intake.models.investor_file import InvestorFile
from investor_intake.validation.fields import InvestorSubmission


@pytest_asyncio.fixture()
async def seed_session_factory(monkeypatch):
    """Point the seed script at a private in-memory database."""
    engine = build_engine("sqlite+aiosqlite://")
    factory = build_session_factory(engine)
    monkeypatch.setattr(seed_module, "engine", engine)
    monkeypatch.setattr(seed_module, "AsyncSessionLocal", factory)
    yield factory
    await engine.dispose()


class TestBuildSeedRecords:
    def test_every_sample_is_valid(self):
        records = seed_module.build_seed_records()
        assert len(records) == len(seed_module.SAMPLE_INVESTORS)
        for investor, files in records:
            assert len(investor.phone_number) == 10
            assert [f.investor_id for f in files] == [investor.id]

    def test_invalid_sample_raises(self, monkeypatch):
        monkeypatch.setattr(
            seed_module,
            "SAMPLE_INVESTORS",
            [
                {
                    "submission": InvestorSubmission(first_name="Nobody"),
                    "file": ("x.pdf", "x.pdf", "application/pdf"),
                }
            ],
        )
        with pytest.raises(ValueError, match="Invalid seed investor"):
            seed_module.build_seed_records()


class TestSeed:
    @pytest.mark.asyncio
    async def test_seeds_once(self, seed_session_factory):
        assert await seed_module.seed() == 5
        assert await seed_module.seed() == 0

        async with seed_session_factory() as session:
            investors = (await session.execute(select(func.count()).select_from(Investor))).scalar_one()
            files = (await session.execute(select(func.count()).select_from(InvestorFile))).scalar_one()

        assert investors == 5
        assert files == 5
