"""API v1 router that aggregates all endpoint routers."""

from fastapi import APIRouter

from profit_service.api.v1 import (
    costs,
    health,
    reports,
    sync,
    websites,
)

api_router = APIRouter()

# Include all routers
api_router.include_router(
    health.router,
    tags=["Health"],
)

api_router.include_router(
    sync.router,
    prefix="/sync",
    tags=["Sync"],
)

api_router.include_router(
    websites.router,
    prefix="/websites",
    tags=["Websites"],
)

api_router.include_router(
    costs.router,
    prefix="/costs",
    tags=["Costs"],
)

api_router.include_router(
    reports.router,
    prefix="/reports",
    tags=["Reports"],
)
