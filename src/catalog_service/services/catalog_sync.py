"""Catalog synchronization pass.

Runs one Magento import for a store as a strictly sequential pipeline:

    categories -> attribute metadata -> configurable products
    -> simple products -> watermark commit

Every item is awaited before the next one starts. Per-item failures are
logged and counted; anything else aborts the pass before the watermark is
advanced, so the next run re-reads the same window.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from catalog_service.config import Settings, get_settings
from catalog_service.exceptions import MagentoNotFoundError, StoreNotFoundError
from catalog_service.infrastructure.database.connection import UnitOfWork
from catalog_service.infrastructure.magento.schemas import AttributeMetadata, SourceProduct
from catalog_service.infrastructure.redis import CacheService
from catalog_service.services.category_reconciler import CategoryReconciler
from catalog_service.services.product import ProductService
from catalog_service.services.product_category import ProductCategoryService
from catalog_service.services.product_import import ProductImportService
from catalog_service.services.store import StoreService
from shared.constants import (
    ATTRIBUTE_CACHE_PREFIX,
    PRODUCT_TYPE_CONFIGURABLE,
    PRODUCT_TYPE_SIMPLE,
    WATERMARK_METADATA_KEY,
)

logger = structlog.get_logger()


def get_watermark(store: Any) -> str | None:
    """Read the last-sync timestamp from store metadata (``None`` on first run)."""
    metadata = getattr(store, "metadata_", None) or {}
    return metadata.get(WATERMARK_METADATA_KEY) or None


def next_watermark(previous: str | None, now: datetime | None = None) -> str:
    """Return the new watermark, always strictly later than ``previous``."""
    now = now or datetime.now(timezone.utc)
    if previous:
        try:
            last = datetime.fromisoformat(previous)
        except ValueError:
            logger.warning("Ignoring unparseable watermark", watermark=previous)
        else:
            if last.tzinfo is None:
                last = last.replace(tzinfo=timezone.utc)
            if now <= last:
                now = last + timedelta(microseconds=1)
    return now.isoformat()


class CatalogSyncService:
    """Service that drives one full or incremental Magento import."""

    def __init__(
        self,
        client: Any,
        unit_of_work: Any,
        stores: Any,
        category_reconciler: CategoryReconciler,
        product_importer: ProductImportService,
        cache: CacheService | None = None,
        settings: Settings | None = None,
    ):
        self.client = client
        self.unit_of_work = unit_of_work
        self.stores = stores
        self.category_reconciler = category_reconciler
        self.product_importer = product_importer
        self.cache = cache or CacheService(None)
        self.settings = settings or get_settings()

    @classmethod
    def create(cls, client: Any, cache: CacheService | None = None) -> "CatalogSyncService":
        """Wire the service against the database-backed stores."""
        unit_of_work = UnitOfWork()
        return cls(
            client=client,
            unit_of_work=unit_of_work,
            stores=StoreService(),
            category_reconciler=CategoryReconciler(ProductCategoryService(), unit_of_work),
            product_importer=ProductImportService(ProductService(), unit_of_work, client),
            cache=cache,
        )

    async def run_sync(
        self,
        store_id: str,
        on_progress: Callable[[int], Awaitable[None]] | None = None,
    ) -> dict[str, Any]:
        """
        Run one sync pass for ``store_id``.

        ``on_progress`` is awaited with the running count of processed
        categories and products after each step.

        Returns:
            Summary of the pass; ``{"skipped": True}`` when the store does
            not exist.
        """
        try:
            store = await self._retrieve_store(store_id)
        except StoreNotFoundError:
            logger.info("Skipping Magento import since no store is configured", store_id=store_id)
            return {"store_id": store_id, "skipped": True}

        watermark = get_watermark(store)
        logger.info(
            "Starting catalog sync",
            store_id=store_id,
            updated_since=watermark,
            mode="incremental" if watermark else "full",
        )

        # Anything Magento changes from here on is picked up by the next pass
        started_at = datetime.now(timezone.utc)

        # Categories
        logger.info("Importing categories from Magento")
        category_list = await self.client.list_categories(watermark)
        categories = await self.category_reconciler.reconcile_batch(category_list.items)
        if category_list.items:
            logger.info("Categories imported or updated", **categories)
        else:
            logger.info("No categories have been imported or updated")
        if on_progress:
            await on_progress(categories["seen"])

        # Attribute metadata for product normalization
        attribute_data = await self.load_attribute_data()

        # Products: configurables first so their children are skipped as simples
        products = {
            "seen": 0,
            "created": 0,
            "updated": 0,
            "unchanged": 0,
            "skipped": 0,
            "failed": 0,
        }
        for type_id in (PRODUCT_TYPE_CONFIGURABLE, PRODUCT_TYPE_SIMPLE):
            logger.info("Importing products from Magento", type_id=type_id)
            items = await self.client.list_products(type_id, watermark)
            logger.info("Products retrieved", type_id=type_id, count=len(items))
            await self._import_products(items, attribute_data, products)
            if on_progress:
                await on_progress(categories["seen"] + products["seen"])

        if products["seen"]:
            logger.info("Products imported or updated", **products)
        else:
            logger.info("No products have been imported or updated")

        new_watermark = await self.update_watermark(store_id, watermark, started_at)

        summary = {
            "store_id": store_id,
            "skipped": False,
            "previous_watermark": watermark,
            "watermark": new_watermark,
            "categories": categories,
            "products": products,
        }
        logger.info(
            "Catalog sync completed",
            store_id=store_id,
            categories=categories["seen"],
            products=products["seen"],
            watermark=new_watermark,
        )
        return summary

    async def load_attribute_data(self) -> dict[str, AttributeMetadata]:
        """Fetch metadata for every configured custom field, Redis-cached."""
        logger.info("Fetching custom attribute data")
        attribute_data: dict[str, AttributeMetadata] = {}

        for field_name in self.client.list_custom_field_names():
            cache_key = f"{ATTRIBUTE_CACHE_PREFIX}{field_name}"
            cached = await self.cache.get(cache_key)
            if cached:
                attribute_data[field_name] = AttributeMetadata.model_validate(cached)
                continue

            logger.info("Fetching custom field", field=field_name)
            try:
                metadata = await self.client.get_attribute_metadata(field_name)
            except MagentoNotFoundError:
                logger.warning("Custom field does not exist in Magento", field=field_name)
                continue

            attribute_data[field_name] = metadata
            await self.cache.set(
                cache_key,
                metadata.model_dump(),
                ttl_seconds=self.settings.attribute_cache_ttl_seconds,
            )

        return attribute_data

    async def update_watermark(
        self,
        store_id: str,
        previous: str | None,
        started_at: datetime | None = None,
    ) -> str:
        """Persist a new watermark on the store and return it.

        ``started_at`` is the moment the pass began listing the source, so
        changes made while the pass ran fall inside the next window.
        """
        watermark = next_watermark(previous, now=started_at)
        async with self.unit_of_work.transaction() as session:
            await self.stores.with_transaction(session).update_metadata(
                store_id, {WATERMARK_METADATA_KEY: watermark}
            )
        return watermark

    async def _retrieve_store(self, store_id: str) -> Any:
        async with self.unit_of_work.transaction() as session:
            return await self.stores.with_transaction(session).retrieve(store_id)

    async def _import_products(
        self,
        items: list[SourceProduct],
        attribute_data: dict[str, AttributeMetadata],
        summary: dict[str, int],
    ) -> None:
        for product in items:
            summary["seen"] += 1
            try:
                outcome = await self.product_importer.import_product(product, attribute_data)
                summary[outcome.value] += 1
            except Exception as e:
                logger.error(
                    "Error importing product",
                    magento_id=product.id,
                    sku=product.sku,
                    type_id=product.type_id,
                    error=str(e),
                )
                summary["failed"] += 1
