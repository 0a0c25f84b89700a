"""
Investor domain model.

Represents one intake submission persisted in the ``investors`` table.
Every bound enforced by the field validator is mirrored here as a CHECK
constraint generated from the shared rule set, so a row violating any of
them can never reach durable storage even when the API layer is bypassed.
"""

import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, List

from sqlalchemy import CheckConstraint, Date, DateTime, Index
from sqlmodel import Field, Relationship, SQLModel

from investor_intake.db.constraints import AgeBetween, MatchesPattern, digits_glob
from investor_intake.validation.rules import (
    MAX_AGE,
    MIN_AGE,
    NAME_MAX_LENGTH,
    PHONE_LENGTH,
    STATE_CODES,
    STATE_LENGTH,
    STREET_ADDRESS_MAX_LENGTH,
    ZIP_MAX,
    ZIP_MAX_LENGTH,
    ZIP_MIN,
)

if TYPE_CHECKING:
    from investor_intake.models.investor_file import InvestorFile


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _text_length_check(column: str, max_length: int) -> str:
    return f"LENGTH(TRIM({column})) >= 1 AND LENGTH({column}) <= {max_length}"


_STATE_LIST = ", ".join(f"'{code}'" for code in STATE_CODES)


class Investor(SQLModel, table=True):
    """
    SQLModel / SQLAlchemy table definition for investors.

    Design notes:
    - ``id`` is a random UUID4 so identifiers cannot be enumerated.
    - ``idx_investor_lastname_created`` serves name look-ups ordered by
      recency; ``phone_number`` is indexed for contact look-ups.
    - The service only ever creates rows; ``updated_at`` still tracks
      mutations made by operators.
    """

    __tablename__ = "investors"  # type: ignore[assignment]

    __table_args__ = (
        Index("idx_investor_lastname_created", "last_name", "created_at"),
        CheckConstraint(
            _text_length_check("first_name", NAME_MAX_LENGTH),
            name="chk_first_name_length",
        ),
        CheckConstraint(
            _text_length_check("last_name", NAME_MAX_LENGTH),
            name="chk_last_name_length",
        ),
        CheckConstraint(
            _text_length_check("street_address", STREET_ADDRESS_MAX_LENGTH),
            name="chk_street_address_length",
        ),
        CheckConstraint(
            MatchesPattern(
                "phone_number",
                regex=f"^[0-9]{{{PHONE_LENGTH}}}$",
                globs=[digits_glob(PHONE_LENGTH)],
            ),
            name="chk_phone_number_format",
        ),
        CheckConstraint(
            f"LENGTH(state) = {STATE_LENGTH} AND state IN ({_STATE_LIST})",
            name="chk_state_code",
        ),
        CheckConstraint(
            MatchesPattern(
                "zip_code",
                regex="^[0-9]{5}(-[0-9]{4})?$",
                globs=[digits_glob(5), f"{digits_glob(5)}-{digits_glob(4)}"],
            ),
            name="chk_zip_code_format",
        ),
        CheckConstraint(
            f"CAST(SUBSTR(zip_code, 1, 5) AS INTEGER) BETWEEN {ZIP_MIN} AND {ZIP_MAX}",
            name="chk_zip_code_range",
        ),
        CheckConstraint(
            AgeBetween("date_of_birth", MIN_AGE, MAX_AGE),
            name="chk_date_of_birth_age",
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    first_name: str = Field(max_length=NAME_MAX_LENGTH)
    last_name: str = Field(max_length=NAME_MAX_LENGTH)
    date_of_birth: date = Field(sa_type=Date)  # type: ignore[arg-type]
    phone_number: str = Field(index=True, max_length=PHONE_LENGTH)
    street_address: str = Field(max_length=STREET_ADDRESS_MAX_LENGTH)
    state: str = Field(max_length=STATE_LENGTH)
    zip_code: str = Field(max_length=ZIP_MAX_LENGTH)
    created_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        sa_column_kwargs={"onupdate": _utcnow},
    )

    # ── Relationships ──
    files: List["InvestorFile"] = Relationship(
        back_populates="investor",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )

    def __repr__(self) -> str:
        return f"<Investor id={self.id} name='{self.first_name} {self.last_name}'>"
