"""Batch job API endpoints.

Lets an admin trigger a Magento import on demand and poll its progress.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from catalog_service.exceptions import BatchJobNotFoundError
from catalog_service.infrastructure.database.connection import UnitOfWork
from catalog_service.services.batch_job import BatchJobService
from shared.constants import IMPORT_BATCH_TYPE

logger = structlog.get_logger()

router = APIRouter()

SUPPORTED_BATCH_TYPES = {IMPORT_BATCH_TYPE}


# =============================================================================
# Models
# =============================================================================


class BatchJobCreateRequest(BaseModel):
    """Request model for creating a batch job."""

    type: str = Field(..., description="Batch job type, e.g. 'import-magento'")
    context: dict[str, Any] = Field(
        default_factory=dict,
        description="Job context; 'store_id' selects the destination store",
    )


class BatchJobResponse(BaseModel):
    """Batch job as returned by the API."""

    id: str
    type: str
    status: str
    context: dict[str, Any] | None = None
    result: dict[str, Any] | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None


# =============================================================================
# Dependencies
# =============================================================================


def get_unit_of_work() -> UnitOfWork:
    return UnitOfWork()


def get_batch_job_service() -> BatchJobService:
    return BatchJobService()


def get_job_dispatcher() -> Callable[[str], None]:
    """Return a callable that enqueues the import task for a batch job."""
    # Importing the worker app makes it the current Celery app for .delay()
    import sync_worker.main  # noqa: F401
    from sync_worker.tasks.import_catalog import import_magento_catalog

    def dispatch(batch_job_id: str) -> None:
        import_magento_catalog.delay(batch_job_id)

    return dispatch


def _to_response(batch_job: Any) -> BatchJobResponse:
    status = getattr(batch_job.status, "value", batch_job.status)
    return BatchJobResponse(
        id=batch_job.id,
        type=batch_job.type,
        status=status,
        context=batch_job.context,
        result=batch_job.result,
        created_at=getattr(batch_job, "created_at", None),
        completed_at=getattr(batch_job, "completed_at", None),
        failed_at=getattr(batch_job, "failed_at", None),
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=BatchJobResponse, status_code=201)
async def create_batch_job(
    request: BatchJobCreateRequest,
    unit_of_work: UnitOfWork = Depends(get_unit_of_work),
    batch_jobs: BatchJobService = Depends(get_batch_job_service),
    dispatch: Callable[[str], None] = Depends(get_job_dispatcher),
) -> BatchJobResponse:
    """
    Create a batch job and enqueue it for processing.

    Only ``import-magento`` jobs are supported.
    """
    if request.type not in SUPPORTED_BATCH_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported batch job type '{request.type}'",
        )

    async with unit_of_work.transaction() as session:
        batch_job = await batch_jobs.with_transaction(session).create(
            request.type, context=request.context
        )
        response = _to_response(batch_job)

    # Enqueue only after the job row is committed
    dispatch(response.id)
    logger.info("Enqueued batch job", batch_job_id=response.id, type=response.type)
    return response


@router.get("/{batch_job_id}", response_model=BatchJobResponse)
async def get_batch_job(
    batch_job_id: str,
    unit_of_work: UnitOfWork = Depends(get_unit_of_work),
    batch_jobs: BatchJobService = Depends(get_batch_job_service),
) -> BatchJobResponse:
    """Get a batch job with its status and result counts."""
    try:
        async with unit_of_work.transaction() as session:
            batch_job = await batch_jobs.with_transaction(session).retrieve(batch_job_id)
            return _to_response(batch_job)
    except BatchJobNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
