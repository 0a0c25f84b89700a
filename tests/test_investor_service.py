"""
Unit tests for InvestorService — read-side operations.

All repository calls are mocked.  Tests cover:
- list_recent_investors: default cap from settings, explicit limit
- get_stats: total count and the 30-day window
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from investor_intake.core.config import settings
from investor_intake.services.investor_service import InvestorService

from .conftest import make_investor

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)

# ────────────────────────────────────────────────────────────────────────────
# Fixtures
# ────────────────────────────────────────────────────────────────────────────


@pytest.fixture()
def investor_repo():
    """Mocked InvestorRepository."""
    return AsyncMock()


@pytest.fixture()
def investor_service(investor_repo):
    """InvestorService wired to the mocked repository and a fixed clock."""
    return InvestorService(investor_repo, now=lambda: NOW)


# ────────────────────────────────────────────────────────────────────────────
# list_recent_investors
# ────────────────────────────────────────────────────────────────────────────


class TestListRecentInvestors:
    @pytest.mark.asyncio
    async def test_uses_configured_cap(self, investor_service, investor_repo):
        investors = [make_investor(id=uuid4()), make_investor()]
        investor_repo.list_recent.return_value = investors

        result = await investor_service.list_recent_investors()

        investor_repo.list_recent.assert_awaited_once_with(settings.INVESTOR_LIST_LIMIT)
        assert result == investors

    @pytest.mark.asyncio
    async def test_explicit_limit(self, investor_service, investor_repo):
        investor_repo.list_recent.return_value = []
        assert await investor_service.list_recent_investors(limit=5) == []
        investor_repo.list_recent.assert_awaited_once_with(5)

    @pytest.mark.asyncio
    async def test_every_call_hits_repository(self, investor_service, investor_repo):
        investor_repo.list_recent.return_value = []
        await investor_service.list_recent_investors()
        await investor_service.list_recent_investors()
        assert investor_repo.list_recent.await_count == 2


# ────────────────────────────────────────────────────────────────────────────
# get_stats
# ────────────────────────────────────────────────────────────────────────────


class TestGetStats:
    @pytest.mark.asyncio
    async def test_counts(self, investor_service, investor_repo):
        investor_repo.count.return_value = 42
        investor_repo.count_created_since.return_value = 7

        stats = await investor_service.get_stats()

        assert stats.total_investors == 42
        assert stats.recent_investors == 7
        investor_repo.count_created_since.assert_awaited_once_with(
            datetime(2025, 5, 16, 12, 0, tzinfo=timezone.utc)
        )

    @pytest.mark.asyncio
    async def test_serializes_camel_case(self, investor_service, investor_repo):
        investor_repo.count.return_value = 0
        investor_repo.count_created_since.return_value = 0

        stats = await investor_service.get_stats()

        assert stats.model_dump(by_alias=True) == {"totalInvestors": 0, "recentInvestors": 0}
