"""Destination category store.

CRUD and handle lookups over ``product_categories``.
"""

from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.infrastructure.database.models import ProductCategory

logger = structlog.get_logger()

# Payload keys that map onto model attributes with a different name
_COLUMN_ALIASES = {"metadata": "metadata_"}


def _to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    columns = {_COLUMN_ALIASES.get(key, key): value for key, value in fields.items()}
    # Identity-less categories are stored without a handle so they never collide
    if "handle" in columns and not columns["handle"]:
        columns["handle"] = None
    return columns


class ProductCategoryService:
    """Service for reading and writing destination categories."""

    def __init__(self, session: AsyncSession | None = None):
        self.session = session

    def with_transaction(self, session: AsyncSession) -> "ProductCategoryService":
        """Return a copy bound to the caller's transactional scope."""
        return type(self)(session)

    async def retrieve(self, category_id: str) -> ProductCategory | None:
        """Get a category by primary id."""
        return await self.session.get(ProductCategory, category_id)

    async def retrieve_by_handle(self, handle: str) -> ProductCategory | None:
        """Get a category by handle. An empty handle never matches."""
        if not handle:
            return None
        result = await self.session.execute(
            select(ProductCategory).where(ProductCategory.handle == handle)
        )
        return result.scalar_one_or_none()

    async def create(self, fields: dict[str, Any]) -> ProductCategory:
        """Insert a new category and return it with its assigned id."""
        category = ProductCategory(**_to_columns(fields))
        self.session.add(category)
        await self.session.flush()
        logger.debug("Created product category", category_id=category.id, handle=category.handle)
        return category

    async def update(self, category_id: str, fields: dict[str, Any]) -> None:
        """Apply a partial update to one category."""
        if not fields:
            return
        await self.session.execute(
            update(ProductCategory)
            .where(ProductCategory.id == category_id)
            .values(
                {getattr(ProductCategory, key): value for key, value in _to_columns(fields).items()}
            )
            .execution_options(synchronize_session="fetch")
        )
        logger.debug("Updated product category", category_id=category_id, fields=list(fields))
