"""
Dialect-aware CHECK constraint expressions.

The validation rule set is mirrored into the schema as CHECK constraints.
Most of them (lengths, ranges, membership) are portable SQL and are written
as plain strings on the models.  Two kinds are not:

- **Pattern checks** — PostgreSQL has POSIX regex (``~``); SQLite has no
  built-in regex operator but supports ``GLOB`` character classes.
- **Age window** — PostgreSQL evaluates ``CURRENT_DATE - INTERVAL``; SQLite
  rejects non-deterministic functions such as ``date('now')`` inside CHECK,
  so it only verifies that the stored value is a real calendar date.  The
  age window is still enforced by the field validator on every write path.

Both are ``ColumnElement`` subclasses compiled per dialect with
``sqlalchemy.ext.compiler.compiles``, so ``SQLModel.metadata.create_all``
emits the right DDL for whichever engine is configured.
"""

from typing import Sequence

from sqlalchemy import Boolean
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.expression import ColumnElement


class MatchesPattern(ColumnElement):
    """``column`` matches ``regex`` (PostgreSQL) or any of ``globs`` (SQLite)."""

    inherit_cache = False
    type = Boolean()

    def __init__(self, column: str, regex: str, globs: Sequence[str]):
        self.column = column
        self.regex = regex
        self.globs = tuple(globs)


class AgeBetween(ColumnElement):
    """Date ``column`` lies ``min_age``..``max_age`` whole years before today."""

    inherit_cache = False
    type = Boolean()

    def __init__(self, column: str, min_age: int, max_age: int):
        self.column = column
        self.min_age = min_age
        self.max_age = max_age


# ── PostgreSQL ──


@compiles(MatchesPattern, "postgresql")
def _pattern_postgresql(element: MatchesPattern, compiler, **kw) -> str:
    return f"{element.column} ~ '{element.regex}'"


@compiles(AgeBetween, "postgresql")
def _age_postgresql(element: AgeBetween, compiler, **kw) -> str:
    # age <= max_age  <=>  born after (today - (max_age + 1) years)
    return (
        f"{element.column} <= CURRENT_DATE - INTERVAL '{element.min_age} years' "
        f"AND {element.column} > CURRENT_DATE - INTERVAL '{element.max_age + 1} years'"
    )


# ── SQLite ──


@compiles(MatchesPattern, "sqlite")
def _pattern_sqlite(element: MatchesPattern, compiler, **kw) -> str:
    clauses = " OR ".join(f"{element.column} GLOB '{g}'" for g in element.globs)
    return f"({clauses})"


@compiles(AgeBetween, "sqlite")
def _age_sqlite(element: AgeBetween, compiler, **kw) -> str:
    # date() passes days 29-31 through for every month; bound the day by
    # the last day of the stored month.
    col = element.column
    last_day = f"strftime('%d', date(substr({col}, 1, 7) || '-01', '+1 month', '-1 day'))"
    return (
        f"date({col}) IS {col} "
        f"AND CAST(substr({col}, 9, 2) AS INTEGER) <= CAST({last_day} AS INTEGER)"
    )


# ── Everything else (MySQL-style REGEXP, no age window) ──


@compiles(MatchesPattern)
def _pattern_default(element: MatchesPattern, compiler, **kw) -> str:
    return f"{element.column} REGEXP '{element.regex}'"


@compiles(AgeBetween)
def _age_default(element: AgeBetween, compiler, **kw) -> str:
    return f"{element.column} IS NOT NULL"


def digits_glob(count: int) -> str:
    """GLOB pattern for exactly ``count`` ASCII digits."""
    return "[0-9]" * count
