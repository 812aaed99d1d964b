"""Batch-job strategy for the Magento import.

The job runner calls ``pre_process_batch_job`` once, then ``process_job``.
Processing failures are always retryable: the next attempt re-reads the
same watermark window and the upserts make reprocessing harmless.
"""

from typing import Any

import structlog

from catalog_service.config import Settings, get_settings
from catalog_service.infrastructure.database.connection import UnitOfWork
from catalog_service.services.batch_job import BatchJobService
from catalog_service.services.catalog_sync import CatalogSyncService
from shared.constants import IMPORT_BATCH_TYPE, IMPORT_STRATEGY_IDENTIFIER

logger = structlog.get_logger()


class MagentoImportStrategy:
    """Lifecycle hooks for ``import-magento`` batch jobs."""

    identifier = IMPORT_STRATEGY_IDENTIFIER
    batch_type = IMPORT_BATCH_TYPE

    def __init__(
        self,
        sync_service: CatalogSyncService,
        batch_jobs: BatchJobService | None = None,
        unit_of_work: Any = None,
        settings: Settings | None = None,
    ):
        self.sync_service = sync_service
        self.batch_jobs = batch_jobs or BatchJobService()
        self.unit_of_work = unit_of_work or UnitOfWork()
        self.settings = settings or get_settings()

    async def pre_process_batch_job(self, batch_job_id: str) -> None:
        """Reset the job's progress counter."""
        async with self.unit_of_work.transaction() as session:
            batch_jobs = self.batch_jobs.with_transaction(session)
            await batch_jobs.update(batch_job_id, result={"progress": 0})
            await batch_jobs.set_pre_processed(batch_job_id)

    async def process_job(self, batch_job_id: str) -> dict[str, Any]:
        """Run the sync pass for the job's store and record the outcome."""
        async with self.unit_of_work.transaction() as session:
            batch_jobs = self.batch_jobs.with_transaction(session)
            batch_job = await batch_jobs.retrieve(batch_job_id)
            store_id = self._store_id(batch_job)
            await batch_jobs.set_processing(batch_job_id)

        logger.info("Processing batch job", batch_job_id=batch_job_id, store_id=store_id)

        async def report_progress(processed: int) -> None:
            async with self.unit_of_work.transaction() as session:
                await self.batch_jobs.with_transaction(session).update(
                    batch_job_id, result={"progress": processed}
                )

        try:
            summary = await self.sync_service.run_sync(store_id, on_progress=report_progress)
        except Exception as e:
            logger.error("Batch job failed", batch_job_id=batch_job_id, error=str(e))
            await self.mark_failed(batch_job_id, str(e))
            raise

        result = {"progress": self._processed_count(summary), **summary}
        async with self.unit_of_work.transaction() as session:
            await self.batch_jobs.with_transaction(session).complete(batch_job_id, result)

        logger.info("Batch job completed", batch_job_id=batch_job_id, progress=result["progress"])
        return result

    async def mark_failed(self, batch_job_id: str, error: str) -> None:
        async with self.unit_of_work.transaction() as session:
            await self.batch_jobs.with_transaction(session).set_failed(batch_job_id, error)

    async def store_id_for(self, batch_job_id: str) -> str:
        """Resolve the store a job targets (job context, else the default store)."""
        async with self.unit_of_work.transaction() as session:
            batch_job = await self.batch_jobs.with_transaction(session).retrieve(batch_job_id)
            return self._store_id(batch_job)

    async def should_retry_on_processing_error(self, batch_job: Any, err: BaseException) -> bool:
        return True

    def _store_id(self, batch_job: Any) -> str:
        return (batch_job.context or {}).get("store_id") or self.settings.default_store_id

    @staticmethod
    def _processed_count(summary: dict[str, Any]) -> int:
        if summary.get("skipped"):
            return 0
        return summary["categories"]["seen"] + summary["products"]["seen"]
