"""
V1 API router aggregation.

All versioned endpoint routers are mounted here; ``main.py`` mounts this
router at ``/api/v1``.
"""

from fastapi import APIRouter

from investor_intake.api.v1.endpoints import investors

api_router = APIRouter()

api_router.include_router(investors.router, prefix="/investors", tags=["Investors"])
