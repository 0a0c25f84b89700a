"""
Investor repository — the only writer of ``investors`` and ``investor_files``.

``create_with_files`` stages the investor and every document row in one
session and commits once: either all rows become durable or none do.
"""

import logging
from datetime import datetime
from typing import List, Sequence

from sqlalchemy import func
from sqlalchemy.future import select

from investor_intake.models.investor import Investor
from investor_intake.models.investor_file import InvestorFile
from investor_intake.repositories.base import (
    PERSISTENCE_FAILURES,
    BaseRepository,
    translate_persistence_error,
)

logger = logging.getLogger(__name__)


class InvestorRepository(BaseRepository[Investor]):
    """Concrete repository for :class:`Investor` entities and their documents."""

    def __init__(self, db):
        super().__init__(Investor, db)

    # ── Commands ──

    async def create_with_files(
        self, investor: Investor, files: Sequence[InvestorFile]
    ) -> Investor:
        """
        Persist ``investor`` and all of ``files`` in a single transaction.

        On any engine, driver or connectivity failure the session is rolled
        back and a :class:`PersistenceError` is raised.  The returned object
        is not refreshed: ``id`` and ``created_at`` are assigned client-side,
        and a refresh would only add a round trip.
        """
        investor.files = list(files)

        async def _create() -> Investor:
            self.db.add(investor)
            await self.db.commit()
            return investor

        try:
            created = await self._execute_with_circuit_breaker(_create)
        except PERSISTENCE_FAILURES as exc:
            await self._rollback_after(exc)
            error = translate_persistence_error(exc)
            logger.error(
                "Failed to persist investor with %d file(s) [%s]: %s",
                len(files),
                error.category.value,
                error.detail,
            )
            raise error from exc

        logger.debug("Committed investor %s with %d file row(s)", created.id, len(files))
        return created

    # ── Queries ──

    async def list_recent(self, limit: int) -> List[Investor]:
        """Return up to ``limit`` investors, newest first."""
        stmt = (
            select(Investor)
            .order_by(Investor.created_at.desc(), Investor.id.desc())
            .limit(limit)
        )
        return await self._scalars(stmt)

    async def count_created_since(self, since: datetime) -> int:
        """Number of investors created at or after ``since``."""

        async def _count() -> int:
            stmt = (
                select(func.count())
                .select_from(Investor)
                .where(Investor.created_at >= since)
            )
            result = await self.db.execute(stmt)
            return result.scalar_one()

        return await self._execute_with_circuit_breaker(_count)
