"""API v1 router that aggregates all endpoint routers."""

from fastapi import APIRouter

from catalog_service.api.v1 import batch_jobs, health

api_router = APIRouter()

# Include all routers
api_router.include_router(
    health.router,
    tags=["Health"],
)

api_router.include_router(
    batch_jobs.router,
    prefix="/batch-jobs",
    tags=["Batch Jobs"],
)
