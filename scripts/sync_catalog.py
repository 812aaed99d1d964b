#!/usr/bin/env python3
"""CLI script to run one Magento catalog sync pass for a store."""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import structlog

from catalog_service.config import get_settings
from catalog_service.infrastructure.database.connection import dispose_engine
from catalog_service.infrastructure.magento import MagentoClient
from catalog_service.infrastructure.redis import CacheService, close_redis, get_redis_client
from catalog_service.logging_config import configure_logging
from catalog_service.services.catalog_sync import CatalogSyncService

logger = structlog.get_logger()


async def main(store_id: str) -> None:
    """Main sync function."""
    logger.info("Starting catalog sync", store_id=store_id)

    try:
        redis_client = await get_redis_client()
        async with MagentoClient() as client:
            sync_service = CatalogSyncService.create(client, cache=CacheService(redis_client))
            summary = await sync_service.run_sync(store_id)
    finally:
        await close_redis()
        await dispose_engine()

    if summary["skipped"]:
        logger.info("Store not found, nothing synced", store_id=store_id)
        return

    logger.info(
        "All operations completed successfully",
        categories=summary["categories"],
        products=summary["products"],
        watermark=summary["watermark"],
    )


if __name__ == "__main__":
    configure_logging()
    parser = argparse.ArgumentParser(description="Sync the Magento catalog into a store")
    parser.add_argument(
        "--store-id",
        default=get_settings().default_store_id,
        help="Destination store id (defaults to DEFAULT_STORE_ID)",
    )
    args = parser.parse_args()
    asyncio.run(main(args.store_id))
