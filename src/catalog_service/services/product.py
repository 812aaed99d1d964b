"""Destination product store."""

from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.infrastructure.database.models import Product, ProductVariant

logger = structlog.get_logger()

_COLUMN_ALIASES = {"metadata": "metadata_"}


def _to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    return {_COLUMN_ALIASES.get(key, key): value for key, value in fields.items()}


class ProductService:
    """Service for reading and writing products and their variants."""

    def __init__(self, session: AsyncSession | None = None):
        self.session = session

    def with_transaction(self, session: AsyncSession) -> "ProductService":
        """Return a copy bound to the caller's transactional scope."""
        return type(self)(session)

    async def retrieve_by_handle(self, handle: str) -> Product | None:
        if not handle:
            return None
        result = await self.session.execute(select(Product).where(Product.handle == handle))
        return result.scalar_one_or_none()

    async def create(self, fields: dict[str, Any]) -> Product:
        product = Product(**_to_columns(fields))
        self.session.add(product)
        await self.session.flush()
        logger.debug("Created product", product_id=product.id, handle=product.handle)
        return product

    async def update(self, product_id: str, fields: dict[str, Any]) -> None:
        if not fields:
            return
        await self.session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values({getattr(Product, key): value for key, value in _to_columns(fields).items()})
            .execution_options(synchronize_session="fetch")
        )

    async def retrieve_variant_by_sku(self, sku: str) -> ProductVariant | None:
        result = await self.session.execute(
            select(ProductVariant).where(ProductVariant.sku == sku)
        )
        return result.scalar_one_or_none()

    async def create_variant(self, product_id: str, fields: dict[str, Any]) -> ProductVariant:
        variant = ProductVariant(product_id=product_id, **_to_columns(fields))
        self.session.add(variant)
        await self.session.flush()
        return variant

    async def update_variant(self, variant_id: str, fields: dict[str, Any]) -> None:
        if not fields:
            return
        await self.session.execute(
            update(ProductVariant)
            .where(ProductVariant.id == variant_id)
            .values(
                {getattr(ProductVariant, key): value for key, value in _to_columns(fields).items()}
            )
            .execution_options(synchronize_session="fetch")
        )
