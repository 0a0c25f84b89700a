"""SQLModel table models — import here so metadata is populated."""

from investor_intake.models.investor import Investor  # noqa: F401
from investor_intake.models.investor_file import InvestorFile  # noqa: F401
