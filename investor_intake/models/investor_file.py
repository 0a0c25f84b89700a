"""
InvestorFile domain model.

One uploaded identity document belonging to exactly one investor.  Rows are
created only together with their parent, never updated, and removed only by
the ``ON DELETE CASCADE`` of the parent.  ``file_path`` is a back-reference
to the file on disk, which is owned by the file store.
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field, Relationship, SQLModel

from investor_intake.core.config import settings
from investor_intake.validation.rules import (
    ALLOWED_MIME_TYPES,
    MAX_FILENAME_LENGTH,
    MAX_MIME_TYPE_LENGTH,
    MAX_STORED_PATH_LENGTH,
)

if TYPE_CHECKING:
    from investor_intake.models.investor import Investor

_MIME_LIST = ", ".join(f"'{m}'" for m in ALLOWED_MIME_TYPES)


class InvestorFile(SQLModel, table=True):
    """SQLModel / SQLAlchemy table definition for investor documents."""

    __tablename__ = "investor_files"  # type: ignore[assignment]

    # SQLite does not enforce VARCHAR lengths, hence the explicit checks.
    __table_args__ = (
        CheckConstraint(
            f"LENGTH(file_path) >= 1 AND LENGTH(file_path) <= {MAX_STORED_PATH_LENGTH}",
            name="chk_file_path_length",
        ),
        CheckConstraint(
            f"LENGTH(file_original_name) >= 1 "
            f"AND LENGTH(file_original_name) <= {MAX_FILENAME_LENGTH}",
            name="chk_file_original_name_length",
        ),
        CheckConstraint(
            f"file_size >= 0 AND file_size <= {settings.MAX_FILE_SIZE}",
            name="chk_file_size",
        ),
        CheckConstraint(
            f"LENGTH(mime_type) <= {MAX_MIME_TYPE_LENGTH} AND mime_type IN ({_MIME_LIST})",
            name="chk_mime_type",
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    investor_id: uuid.UUID = Field(
        foreign_key="investors.id",
        index=True,
        ondelete="CASCADE",
    )
    file_path: str = Field(max_length=MAX_STORED_PATH_LENGTH)
    file_original_name: str = Field(max_length=MAX_FILENAME_LENGTH)
    file_size: int
    mime_type: str = Field(max_length=MAX_MIME_TYPE_LENGTH)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    # ── Relationships ──
    investor: Optional["Investor"] = Relationship(back_populates="files")

    def __repr__(self) -> str:
        return f"<InvestorFile id={self.id} investor={self.investor_id} name='{self.file_original_name}'>"
