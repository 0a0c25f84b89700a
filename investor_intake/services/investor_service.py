"""
Investor service — read-side operations.

Listing is capped at ``INVESTOR_LIST_LIMIT`` and always newest-first; the
read contract has no filter or pagination parameters.  Responses are not
cached: every call reflects committed state.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from investor_intake.core.config import settings
from investor_intake.models.investor import Investor
from investor_intake.repositories.investor_repo import InvestorRepository
from investor_intake.schemas.investor import InvestorStatsResponse

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvestorService:
    """Queries over :class:`Investor`."""

    def __init__(
        self,
        investor_repo: InvestorRepository,
        now: Callable[[], datetime] = _utcnow,
    ):
        self._repo = investor_repo
        self._now = now

    async def list_recent_investors(self, limit: Optional[int] = None) -> List[Investor]:
        """Most recent investors, newest first (default cap from settings)."""
        return await self._repo.list_recent(limit or settings.INVESTOR_LIST_LIMIT)

    async def get_stats(self) -> InvestorStatsResponse:
        """Total investors and investors created in the last 30 days."""
        total = await self._repo.count()
        recent = await self._repo.count_created_since(self._now() - RECENT_WINDOW)
        return InvestorStatsResponse(total_investors=total, recent_investors=recent)
