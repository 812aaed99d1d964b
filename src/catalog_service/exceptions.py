"""Catalog sync exceptions.

Lookup misses that have a fallback path (a category handle that is not in
the destination yet) are not exceptions; they are returned as ``None``.
Everything here either aborts one item or the whole pass.
"""

from typing import Any


class CatalogSyncError(Exception):
    """Base class for all catalog sync errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Lookup Errors
# ============================================================================


class NotFoundError(CatalogSyncError):
    """Base class for entities that must exist but do not."""

    pass


class StoreNotFoundError(NotFoundError):
    """Raised when the destination store is not configured."""

    def __init__(self, store_id: str) -> None:
        super().__init__(
            f"Store {store_id} not found",
            details={"store_id": store_id},
        )


class BatchJobNotFoundError(NotFoundError):
    """Raised when a batch job id does not resolve."""

    def __init__(self, batch_job_id: str) -> None:
        super().__init__(
            f"Batch job {batch_job_id} not found",
            details={"batch_job_id": batch_job_id},
        )


# ============================================================================
# Reconciliation Errors
# ============================================================================


class CategoryCycleError(CatalogSyncError):
    """Raised when linking a parent would make a category its own ancestor."""

    def __init__(self, category_id: str, parent_category_id: str) -> None:
        super().__init__(
            f"Linking category {category_id} under {parent_category_id} would create a cycle",
            details={
                "category_id": category_id,
                "parent_category_id": parent_category_id,
            },
        )


class SyncLockedError(CatalogSyncError):
    """Raised when another sync pass already runs for the same store."""

    def __init__(self, store_id: str) -> None:
        super().__init__(
            f"A catalog sync is already running for store {store_id}",
            details={"store_id": store_id},
        )


# ============================================================================
# Magento Client Errors
# ============================================================================


class MagentoClientError(CatalogSyncError):
    """Error from a Magento REST API call."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, details={"status_code": status_code})
        self.status_code = status_code


class MagentoNotFoundError(MagentoClientError):
    """Raised when Magento answers 404."""

    pass
