"""Product import from Magento.

A thin per-item upsert: products are matched by handle, variants by sku,
and only changed fields are written back.
"""

from enum import Enum
from typing import Any

import structlog

from catalog_service.config import get_settings
from catalog_service.infrastructure.database.models import ProductStatus
from catalog_service.infrastructure.magento.schemas import AttributeMetadata, SourceProduct
from catalog_service.services.diffing import diff_fields
from shared.constants import (
    DESCRIPTION_ATTRIBUTE,
    PRODUCT_STATUS_ENABLED,
    PRODUCT_TYPE_CONFIGURABLE,
    VISIBILITY_NOT_VISIBLE,
)

logger = structlog.get_logger()


class ImportOutcome(str, Enum):
    """What ``import_product`` did to the destination."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


def to_minor_units(price: float | None) -> int | None:
    if price is None:
        return None
    return int(round(price * 100))


class ProductImportService:
    """Service for upserting Magento products and their variants."""

    def __init__(
        self,
        products: Any,
        unit_of_work: Any,
        client: Any,
        currency_code: str | None = None,
    ):
        self.products = products
        self.unit_of_work = unit_of_work
        self.client = client
        self.currency_code = currency_code or get_settings().default_currency_code

    def normalize_product(self, product: SourceProduct) -> dict[str, Any]:
        """Map a Magento product onto destination product fields."""
        description = product.get_custom_attribute(DESCRIPTION_ATTRIBUTE)
        return {
            "title": product.name,
            "handle": product.url_key or product.sku.lower(),
            "description": str(description) if description else None,
            "status": (
                ProductStatus.PUBLISHED
                if product.status == PRODUCT_STATUS_ENABLED
                else ProductStatus.DRAFT
            ),
            "external_id": str(product.id),
            "metadata": {"magento_id": product.id},
        }

    def normalize_variant(
        self,
        product: SourceProduct,
        options: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Map a Magento simple product onto destination variant fields."""
        options = options or {}
        amount = to_minor_units(product.price)
        return {
            "title": " / ".join(options.values()) or product.name,
            "sku": product.sku,
            "options": options,
            "prices": (
                [{"currency_code": self.currency_code, "amount": amount}]
                if amount is not None
                else []
            ),
            "inventory_quantity": product.stock_quantity,
            "metadata": {"magento_id": product.id},
        }

    def variant_options(
        self,
        child: SourceProduct,
        attribute_data: dict[str, AttributeMetadata],
        attribute_ids: set[str] | None = None,
    ) -> dict[str, str]:
        """Label a child product's option values with the attribute metadata.

        With ``attribute_ids`` (the parent's configurable options) only those
        attributes become options; otherwise every configured field does.
        """
        options: dict[str, str] = {}
        for code, attribute in attribute_data.items():
            if attribute_ids and str(attribute.attribute_id) not in attribute_ids:
                continue
            value = child.get_custom_attribute(code)
            if value is None or value == "":
                continue
            options[attribute.label] = attribute.label_for(value)
        return options

    async def build_variants(
        self,
        product: SourceProduct,
        attribute_data: dict[str, AttributeMetadata],
    ) -> list[dict[str, Any]]:
        """Collect the variants for a product (children for configurables)."""
        if product.type_id != PRODUCT_TYPE_CONFIGURABLE:
            return [self.normalize_variant(product)]

        children = await self.client.list_configurable_children(product.sku)
        attribute_ids = product.configurable_attribute_ids
        return [
            self.normalize_variant(
                child, self.variant_options(child, attribute_data, attribute_ids)
            )
            for child in children
        ]

    async def import_product(
        self,
        product: SourceProduct,
        attribute_data: dict[str, AttributeMetadata],
    ) -> ImportOutcome:
        """Upsert one product with its variants inside a single transaction."""
        if (
            product.type_id != PRODUCT_TYPE_CONFIGURABLE
            and product.visibility == VISIBILITY_NOT_VISIBLE
        ):
            # Imported as a variant of its configurable parent
            return ImportOutcome.SKIPPED

        normalized = self.normalize_product(product)
        variants = await self.build_variants(product, attribute_data)

        async with self.unit_of_work.transaction() as session:
            products = self.products.with_transaction(session)
            existing = await products.retrieve_by_handle(normalized["handle"])

            if existing is None:
                created = await products.create(normalized)
                product_id = created.id
                outcome = ImportOutcome.CREATED
            else:
                product_id = existing.id
                changes = diff_fields(normalized, existing)
                if changes:
                    await products.update(product_id, changes)
                    outcome = ImportOutcome.UPDATED
                else:
                    outcome = ImportOutcome.UNCHANGED

            for variant in variants:
                stored = await products.retrieve_variant_by_sku(variant["sku"])
                if stored is None:
                    await products.create_variant(product_id, variant)
                    variant_changed = True
                else:
                    changes = diff_fields(variant, stored)
                    if stored.product_id != product_id:
                        changes["product_id"] = product_id
                    if changes:
                        await products.update_variant(stored.id, changes)
                    variant_changed = bool(changes)

                if variant_changed and outcome == ImportOutcome.UNCHANGED:
                    outcome = ImportOutcome.UPDATED

        logger.debug(
            "Imported product",
            magento_id=product.id,
            sku=product.sku,
            outcome=outcome.value,
            variants=len(variants),
        )
        return outcome
