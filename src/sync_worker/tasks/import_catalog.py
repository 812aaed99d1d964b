"""Magento catalog import tasks."""

import asyncio
from typing import Any

import structlog
from celery import shared_task

from catalog_service.config import get_settings
from catalog_service.exceptions import SyncLockedError
from catalog_service.infrastructure.database.connection import UnitOfWork, dispose_engine
from catalog_service.infrastructure.magento import MagentoClient
from catalog_service.infrastructure.redis import (
    CacheService,
    SyncLock,
    close_redis,
    get_redis_client,
)
from catalog_service.services.batch_job import BatchJobService
from catalog_service.services.catalog_sync import CatalogSyncService
from catalog_service.services.import_strategy import MagentoImportStrategy
from shared.constants import IMPORT_BATCH_TYPE

logger = structlog.get_logger()


async def process_import_job(
    strategy: MagentoImportStrategy,
    redis_client: Any,
    batch_job_id: str,
    lock_ttl_seconds: int,
) -> dict:
    """Pre-process and process one import batch job under the store's run lock.

    A job whose store is already being synced is marked failed and raises
    ``SyncLockedError``; the running pass covers its window.
    """
    store_id = await strategy.store_id_for(batch_job_id)
    lock = SyncLock(redis_client, store_id, lock_ttl_seconds)
    if not await lock.acquire():
        error = SyncLockedError(store_id)
        logger.warning("Store sync already running", batch_job_id=batch_job_id, store_id=store_id)
        await strategy.mark_failed(batch_job_id, error.message)
        raise error

    try:
        await strategy.pre_process_batch_job(batch_job_id)
        return await strategy.process_job(batch_job_id)
    finally:
        await lock.release()


async def run_import_job(batch_job_id: str) -> dict:
    """Wire the Magento client, cache and strategy, then process the job."""
    settings = get_settings()
    try:
        redis_client = await get_redis_client()
        async with MagentoClient() as client:
            sync_service = CatalogSyncService.create(client, cache=CacheService(redis_client))
            return await process_import_job(
                MagentoImportStrategy(sync_service),
                redis_client,
                batch_job_id,
                settings.sync_lock_ttl_seconds,
            )
    finally:
        await close_redis()
        await dispose_engine()


async def create_import_job(store_id: str) -> str:
    """Create an ``import-magento`` batch job for ``store_id``."""
    try:
        async with UnitOfWork().transaction() as session:
            batch_job = await BatchJobService(session).create(
                IMPORT_BATCH_TYPE, context={"store_id": store_id}
            )
            return batch_job.id
    finally:
        await dispose_engine()


@shared_task(bind=True, max_retries=3, default_retry_delay=300)
def import_magento_catalog(self, batch_job_id: str) -> dict:
    """
    Run a Magento import batch job.

    This task:
    1. Resets the job's progress
    2. Imports categories, attribute metadata, configurable and simple products
    3. Advances the store's sync watermark

    Any failure is retried; the retry re-reads the same watermark window.
    A job refused because the store is already syncing is not retried.

    Args:
        batch_job_id: The batch job to process

    Returns:
        dict: Summary of the sync pass
    """
    logger.info("Starting Magento import", batch_job_id=batch_job_id)
    try:
        return asyncio.run(run_import_job(batch_job_id))
    except SyncLockedError as e:
        logger.info("Magento import skipped", batch_job_id=batch_job_id, reason=e.message)
        return {"batch_job_id": batch_job_id, "skipped": True, "error": e.message}
    except Exception as e:
        logger.error(
            "Magento import failed, retrying",
            batch_job_id=batch_job_id,
            attempt=self.request.retries + 1,
            error=str(e),
        )
        raise self.retry(exc=e)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def schedule_magento_import(self, store_id: str | None = None) -> dict:
    """
    Create an import batch job for a store and enqueue it.

    Triggered by the beat schedule for the default store.

    Args:
        store_id: Destination store; defaults to the configured store

    Returns:
        dict: The created batch job id
    """
    store_id = store_id or get_settings().default_store_id
    batch_job_id = asyncio.run(create_import_job(store_id))
    import_magento_catalog.delay(batch_job_id)
    logger.info("Scheduled Magento import", store_id=store_id, batch_job_id=batch_job_id)
    return {"batch_job_id": batch_job_id, "store_id": store_id}
