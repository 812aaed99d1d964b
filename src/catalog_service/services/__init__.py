"""Business logic services."""

from catalog_service.services.batch_job import BatchJobService
from catalog_service.services.catalog_sync import CatalogSyncService
from catalog_service.services.category_reconciler import CategoryReconciler
from catalog_service.services.import_strategy import MagentoImportStrategy
from catalog_service.services.product import ProductService
from catalog_service.services.product_category import ProductCategoryService
from catalog_service.services.product_import import ProductImportService
from catalog_service.services.store import StoreService

__all__ = [
    "BatchJobService",
    "CatalogSyncService",
    "CategoryReconciler",
    "MagentoImportStrategy",
    "ProductCategoryService",
    "ProductImportService",
    "ProductService",
    "StoreService",
]
