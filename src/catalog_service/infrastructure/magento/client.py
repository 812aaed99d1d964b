"""Magento 2 REST client.

Reads categories, products and attribute metadata from the source catalog.
All listings accept an ``updated_since`` watermark (ISO-8601 UTC string) and
are fetched page by page until Magento's ``total_count`` is exhausted.
"""

from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from catalog_service.config import Settings, get_settings
from catalog_service.exceptions import MagentoClientError, MagentoNotFoundError
from catalog_service.infrastructure.magento.schemas import (
    AttributeMetadata,
    CategoryList,
    SourceCategory,
    SourceProduct,
)
from shared.constants import MAGENTO_DATETIME_FORMAT

logger = structlog.get_logger()


def to_magento_datetime(watermark: str) -> str:
    """Convert an ISO-8601 watermark into Magento's ``updated_at`` format (UTC)."""
    parsed = datetime.fromisoformat(watermark)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime(MAGENTO_DATETIME_FORMAT)


def build_search_criteria(
    filter_groups: list[list[tuple[str, Any, str]]],
    page_size: int,
    current_page: int,
) -> dict[str, Any]:
    """Flatten filter groups into Magento ``searchCriteria`` query params.

    Filters inside one group are OR-ed, groups are AND-ed.
    """
    params: dict[str, Any] = {
        "searchCriteria[pageSize]": page_size,
        "searchCriteria[currentPage]": current_page,
    }
    for group_index, filters in enumerate(filter_groups):
        for filter_index, (field, value, condition) in enumerate(filters):
            prefix = f"searchCriteria[filterGroups][{group_index}][filters][{filter_index}]"
            params[f"{prefix}[field]"] = field
            params[f"{prefix}[value]"] = value
            params[f"{prefix}[conditionType]"] = condition
    return params


class MagentoClient:
    """HTTP client for the Magento REST API.

    Example usage:
        async with MagentoClient() as client:
            categories = await client.list_categories(updated_since=None)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "MagentoClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.settings.magento_access_token:
                headers["Authorization"] = f"Bearer {self.settings.magento_access_token}"
            self._client = httpx.AsyncClient(
                base_url=self.settings.magento_api_url,
                timeout=self.settings.magento_timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        client = self._get_client()
        try:
            response = await client.get(path, params=params)
        except httpx.HTTPError as e:
            raise MagentoClientError(f"Request to {path} failed: {e}") from e

        if response.status_code == 404:
            raise MagentoNotFoundError(f"{path} not found", status_code=404)
        if response.status_code != 200:
            raise MagentoClientError(
                f"{path} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response.json()

    async def _search(
        self,
        path: str,
        filter_groups: list[list[tuple[str, Any, str]]],
    ) -> tuple[list[dict[str, Any]], int]:
        """Fetch every page of a search endpoint."""
        page_size = self.settings.magento_page_size
        items: list[dict[str, Any]] = []
        current_page = 1
        total_count = 0

        while True:
            data = await self._get(
                path, params=build_search_criteria(filter_groups, page_size, current_page)
            )
            page_items = data.get("items") or []
            total_count = data.get("total_count", len(page_items))
            items.extend(page_items)

            logger.debug(
                "Fetched Magento page",
                path=path,
                page=current_page,
                fetched=len(items),
                total=total_count,
            )

            if not page_items or len(items) >= total_count:
                break
            current_page += 1

        return items, total_count

    async def list_categories(self, updated_since: str | None = None) -> CategoryList:
        """List categories updated since the watermark (all when ``None``)."""
        filter_groups: list[list[tuple[str, Any, str]]] = []
        if updated_since:
            filter_groups.append(
                [("updated_at", to_magento_datetime(updated_since), "gteq")]
            )

        items, total_count = await self._search("/categories/list", filter_groups)
        return CategoryList(
            items=[SourceCategory.model_validate(item) for item in items],
            total_count=total_count,
        )

    async def list_products(
        self, type_id: str, updated_since: str | None = None
    ) -> list[SourceProduct]:
        """List products of one Magento type updated since the watermark."""
        filter_groups: list[list[tuple[str, Any, str]]] = [[("type_id", type_id, "eq")]]
        if updated_since:
            filter_groups.append(
                [("updated_at", to_magento_datetime(updated_since), "gteq")]
            )

        items, _ = await self._search("/products", filter_groups)
        return [SourceProduct.model_validate(item) for item in items]

    async def list_configurable_children(self, sku: str) -> list[SourceProduct]:
        """List the simple products attached to a configurable product."""
        data = await self._get(f"/configurable-products/{quote(sku, safe='')}/children")
        return [SourceProduct.model_validate(item) for item in data or []]

    def list_custom_field_names(self) -> list[str]:
        """Attribute codes whose metadata the import needs."""
        return list(self.settings.magento_custom_fields)

    async def get_attribute_metadata(self, field_name: str) -> AttributeMetadata:
        """Fetch one product attribute definition with its options."""
        data = await self._get(f"/products/attributes/{field_name}")
        return AttributeMetadata.model_validate(data)
