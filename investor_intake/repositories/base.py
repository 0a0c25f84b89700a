"""
Generic async repository (Data Access Layer).

Implements the Repository pattern on top of SQLAlchemy's ``AsyncSession``.
Concrete repositories inherit from ``BaseRepository[T]`` and add typed,
entity-specific operations.

- Every database call is routed through the global ``db_circuit_breaker``.
- Write failures are rolled back and translated into a
  :class:`PersistenceError` with one of a closed set of categories, so raw
  driver codes and SQL never travel past this layer.
- Read failures are left to propagate; an open circuit surfaces as 503.
"""

import asyncio
import logging
from typing import Any, Generic, List, Type, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    NoResultFound,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlmodel import SQLModel

from investor_intake.core.exceptions import PersistenceError, PersistenceErrorCategory
from investor_intake.core.resilience import CircuitBreakerError, db_circuit_breaker

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)

# ── Persistence error translation ──

PERSISTENCE_MESSAGES = {
    PersistenceErrorCategory.CONSTRAINT_VIOLATION: "Invalid data provided to the database.",
    PersistenceErrorCategory.NOT_FOUND: "The requested record was not found.",
    PersistenceErrorCategory.CONNECTIVITY: "Failed to connect to the database.",
    PersistenceErrorCategory.UNKNOWN: "A database error occurred.",
}

_CONNECTIVITY_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    PoolTimeoutError,
    CircuitBreakerError,
    ConnectionError,
    asyncio.TimeoutError,
    OSError,
)

# Everything ``create``-style operations translate; anything else is a bug
# and propagates to the catch-all handler.
PERSISTENCE_FAILURES = (SQLAlchemyError,) + _CONNECTIVITY_ERRORS


def categorize(exc: BaseException) -> PersistenceErrorCategory:
    """Map an engine/driver exception onto a persistence error category."""
    if isinstance(exc, IntegrityError):
        return PersistenceErrorCategory.CONSTRAINT_VIOLATION
    if isinstance(exc, NoResultFound):
        return PersistenceErrorCategory.NOT_FOUND
    if isinstance(exc, _CONNECTIVITY_ERRORS):
        return PersistenceErrorCategory.CONNECTIVITY
    return PersistenceErrorCategory.UNKNOWN


def translate_persistence_error(exc: BaseException) -> PersistenceError:
    category = categorize(exc)
    return PersistenceError(
        category=category,
        message=PERSISTENCE_MESSAGES[category],
        detail=f"{type(exc).__name__}: {exc}",
    )


class BaseRepository(Generic[ModelType]):
    """
    Generic repository for SQLModel entities.

    Parameters
    ----------
    model : Type[ModelType]
        The SQLModel class this repository manages.
    db : AsyncSession
        An active async database session (injected per-request).
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    # ── Internal helpers ──

    async def _execute_with_circuit_breaker(
        self, func: Any, *args: Any, **kwargs: Any
    ) -> Any:
        """Route any async callable through the database circuit breaker."""
        return await db_circuit_breaker.call(func, *args, **kwargs)

    async def _rollback_after(self, exc: BaseException) -> None:
        """Roll back a failed unit of work; a failing rollback is logged, not raised."""
        try:
            await self.db.rollback()
        except SQLAlchemyError:
            logger.exception(
                "Rollback failed after %s on %s", type(exc).__name__, self.model.__name__
            )

    # ── Generic reads ──

    async def count(self) -> int:
        """Return the total number of rows of this type."""

        async def _count() -> int:
            stmt = select(func.count()).select_from(self.model)
            result = await self.db.execute(stmt)
            return result.scalar_one()

        return await self._execute_with_circuit_breaker(_count)

    async def _scalars(self, stmt: Any) -> List[Any]:
        async def _run() -> List[Any]:
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._execute_with_circuit_breaker(_run)
