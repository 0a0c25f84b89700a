"""InvestorFile repository — read-only; rows are written by ``InvestorRepository``."""

from typing import Set

from sqlalchemy.future import select

from investor_intake.models import InvestorFile
from investor_intake.repositories.base import BaseRepository


class InvestorFileRepository(BaseRepository[InvestorFile]):
    def __init__(self, db):
        super().__init__(InvestorFile, db)

    async def get_stored_paths(self) -> Set[str]:
        """Every ``file_path`` currently referenced by a row."""
        paths = await self._scalars(select(InvestorFile.file_path))
        return set(paths)
