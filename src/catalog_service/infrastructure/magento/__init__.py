"""Magento REST API integration."""

from catalog_service.infrastructure.magento.client import MagentoClient
from catalog_service.infrastructure.magento.schemas import (
    AttributeMetadata,
    CategoryList,
    SourceCategory,
    SourceProduct,
)

__all__ = [
    "AttributeMetadata",
    "CategoryList",
    "MagentoClient",
    "SourceCategory",
    "SourceProduct",
]
