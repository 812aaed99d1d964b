"""Batch job persistence and status transitions."""

from datetime import datetime
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.exceptions import BatchJobNotFoundError
from catalog_service.infrastructure.database.models import BatchJob, BatchJobStatus

logger = structlog.get_logger()


class BatchJobService:
    """Service for creating batch jobs and recording their progress."""

    def __init__(self, session: AsyncSession | None = None):
        self.session = session

    def with_transaction(self, session: AsyncSession) -> "BatchJobService":
        """Return a copy bound to the caller's transactional scope."""
        return type(self)(session)

    async def create(
        self,
        job_type: str,
        context: dict[str, Any] | None = None,
    ) -> BatchJob:
        """Create a batch job in the ``created`` state."""
        batch_job = BatchJob(
            type=job_type,
            status=BatchJobStatus.CREATED,
            context=context or {},
        )
        self.session.add(batch_job)
        await self.session.flush()
        logger.info("Created batch job", batch_job_id=batch_job.id, type=job_type)
        return batch_job

    async def retrieve(self, batch_job_id: str) -> BatchJob:
        """Get a batch job by id.

        Raises:
            BatchJobNotFoundError: When no such job exists.
        """
        batch_job = await self.session.get(BatchJob, batch_job_id)
        if batch_job is None:
            raise BatchJobNotFoundError(batch_job_id)
        return batch_job

    async def update(
        self,
        batch_job_id: str,
        result: dict[str, Any] | None = None,
        status: BatchJobStatus | None = None,
    ) -> BatchJob:
        """Merge ``result`` into the job's result and optionally move its status."""
        batch_job = await self.retrieve(batch_job_id)
        if result is not None:
            batch_job.result = {**(batch_job.result or {}), **result}
        if status is not None:
            batch_job.status = status
            now = datetime.now()  # Use naive datetime for DB
            if status == BatchJobStatus.PRE_PROCESSED:
                batch_job.pre_processed_at = now
            elif status == BatchJobStatus.PROCESSING:
                batch_job.processing_at = now
            elif status == BatchJobStatus.COMPLETED:
                batch_job.completed_at = now
            elif status == BatchJobStatus.FAILED:
                batch_job.failed_at = now
        await self.session.flush()
        return batch_job

    async def set_pre_processed(self, batch_job_id: str) -> BatchJob:
        return await self.update(batch_job_id, status=BatchJobStatus.PRE_PROCESSED)

    async def set_processing(self, batch_job_id: str) -> BatchJob:
        return await self.update(batch_job_id, status=BatchJobStatus.PROCESSING)

    async def complete(self, batch_job_id: str, result: dict[str, Any]) -> BatchJob:
        return await self.update(batch_job_id, result=result, status=BatchJobStatus.COMPLETED)

    async def set_failed(self, batch_job_id: str, error: str) -> BatchJob:
        return await self.update(
            batch_job_id,
            result={"errors": [error]},
            status=BatchJobStatus.FAILED,
        )
