"""Payload builders and in-memory stand-ins shared by the unit tests."""

import copy
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any

from redis.exceptions import LockNotOwnedError

from catalog_service.exceptions import MagentoNotFoundError, StoreNotFoundError
from catalog_service.infrastructure.database.models import generate_id
from catalog_service.infrastructure.magento.schemas import (
    AttributeMetadata,
    CategoryList,
    SourceCategory,
    SourceProduct,
)


# =============================================================================
# Source payload builders
# =============================================================================


def make_category(
    category_id: int,
    name: str,
    url_key: str | None = None,
    parent_id: int | None = None,
    position: int = 0,
    is_active: bool | None = True,
) -> SourceCategory:
    """Build a Magento category as returned by ``/categories/list``."""
    custom_attributes = []
    if url_key is not None:
        custom_attributes.append({"attribute_code": "url_key", "value": url_key})
    return SourceCategory.model_validate(
        {
            "id": category_id,
            "name": name,
            "parent_id": parent_id or 0,
            "position": position,
            "is_active": is_active,
            "custom_attributes": custom_attributes,
        }
    )


def make_product(
    product_id: int,
    sku: str,
    name: str | None = None,
    type_id: str = "simple",
    visibility: int = 4,
    price: float | None = 19.99,
    qty: int = 5,
    option_attribute_ids: list[int] | None = None,
    **custom_attributes: Any,
) -> SourceProduct:
    """Build a Magento product as returned by ``/products``."""
    extension_attributes: dict[str, Any] = {"stock_item": {"qty": qty}}
    if option_attribute_ids:
        extension_attributes["configurable_product_options"] = [
            {"attribute_id": str(attribute_id), "position": position}
            for position, attribute_id in enumerate(option_attribute_ids)
        ]
    return SourceProduct.model_validate(
        {
            "id": product_id,
            "sku": sku,
            "name": name or sku,
            "type_id": type_id,
            "status": 1,
            "visibility": visibility,
            "price": price,
            "extension_attributes": extension_attributes,
            "custom_attributes": [
                {"attribute_code": code, "value": value}
                for code, value in custom_attributes.items()
            ],
        }
    )


def make_attribute(
    code: str, label: str, options: dict[str, str], attribute_id: int = 93
) -> AttributeMetadata:
    """Build attribute metadata with ``{value: label}`` options."""
    return AttributeMetadata.model_validate(
        {
            "attribute_id": attribute_id,
            "attribute_code": code,
            "default_frontend_label": label,
            "options": [{"value": value, "label": text} for value, text in options.items()],
        }
    )


# =============================================================================
# In-memory fakes
# =============================================================================


def _attribute_name(key: str) -> str:
    return "metadata_" if key == "metadata" else key


class FakeCategoryStore:
    """Destination categories kept in a dict, with a log of every write."""

    def __init__(self) -> None:
        self.records: dict[str, SimpleNamespace] = {}
        self.writes: list[tuple[str, str, dict[str, Any]]] = []

    def with_transaction(self, session: Any) -> "FakeCategoryStore":
        return self

    def add(
        self,
        handle: str | None,
        name: str = "",
        parent_category_id: str | None = None,
        rank: int | None = None,
        is_active: bool = True,
        metadata: dict[str, Any] | None = None,
    ) -> SimpleNamespace:
        """Seed an existing destination category without logging a write."""
        record = SimpleNamespace(
            id=generate_id("pcat"),
            name=name or (handle or "").title(),
            handle=handle,
            is_active=is_active,
            parent_category_id=parent_category_id,
            rank=rank,
            metadata_=metadata or {},
        )
        self.records[record.id] = record
        return record

    async def retrieve(self, category_id: str) -> SimpleNamespace | None:
        return self.records.get(category_id)

    async def retrieve_by_handle(self, handle: str) -> SimpleNamespace | None:
        if not handle:
            return None
        for record in self.records.values():
            if record.handle == handle:
                return record
        return None

    async def create(self, fields: dict[str, Any]) -> SimpleNamespace:
        record = self.add(
            handle=fields.get("handle") or None,
            name=fields["name"],
            parent_category_id=fields.get("parent_category_id"),
            rank=fields.get("rank"),
            is_active=fields.get("is_active", True),
            metadata=dict(fields.get("metadata") or {}),
        )
        self.writes.append(("create", record.id, dict(fields)))
        return record

    async def update(self, category_id: str, fields: dict[str, Any]) -> None:
        record = self.records[category_id]
        for key, value in fields.items():
            setattr(record, _attribute_name(key), value)
        self.writes.append(("update", category_id, dict(fields)))

    def snapshot(self) -> Any:
        return copy.deepcopy((self.records, self.writes))

    def restore(self, state: Any) -> None:
        self.records, self.writes = state

    def by_handle(self, handle: str) -> SimpleNamespace:
        return next(r for r in self.records.values() if r.handle == handle)


class FakeProductStore:
    """Destination products and variants kept in dicts."""

    def __init__(self, fail_on_sku: str | None = None) -> None:
        self.products: dict[str, SimpleNamespace] = {}
        self.variants: dict[str, SimpleNamespace] = {}
        self.fail_on_sku = fail_on_sku

    def with_transaction(self, session: Any) -> "FakeProductStore":
        return self

    async def retrieve_by_handle(self, handle: str) -> SimpleNamespace | None:
        for product in self.products.values():
            if product.handle == handle:
                return product
        return None

    async def create(self, fields: dict[str, Any]) -> SimpleNamespace:
        product = SimpleNamespace(
            id=generate_id("prod"),
            **{_attribute_name(k): v for k, v in fields.items()},
        )
        self.products[product.id] = product
        return product

    async def update(self, product_id: str, fields: dict[str, Any]) -> None:
        for key, value in fields.items():
            setattr(self.products[product_id], _attribute_name(key), value)

    async def retrieve_variant_by_sku(self, sku: str) -> SimpleNamespace | None:
        for variant in self.variants.values():
            if variant.sku == sku:
                return variant
        return None

    async def create_variant(self, product_id: str, fields: dict[str, Any]) -> SimpleNamespace:
        if fields["sku"] == self.fail_on_sku:
            raise RuntimeError(f"duplicate sku {fields['sku']}")
        variant = SimpleNamespace(
            id=generate_id("variant"),
            product_id=product_id,
            **{_attribute_name(k): v for k, v in fields.items()},
        )
        self.variants[variant.id] = variant
        return variant

    async def update_variant(self, variant_id: str, fields: dict[str, Any]) -> None:
        for key, value in fields.items():
            setattr(self.variants[variant_id], _attribute_name(key), value)

    def snapshot(self) -> Any:
        return copy.deepcopy((self.products, self.variants))

    def restore(self, state: Any) -> None:
        self.products, self.variants = state


class FakeStoreService:
    """Stores keyed by id; watermark writes are appended to ``events``."""

    def __init__(self, events: list[Any] | None = None) -> None:
        self.stores: dict[str, SimpleNamespace] = {}
        self.events = events if events is not None else []

    def with_transaction(self, session: Any) -> "FakeStoreService":
        return self

    def add(self, store_id: str, metadata: dict[str, Any] | None = None) -> SimpleNamespace:
        store = SimpleNamespace(id=store_id, name=store_id, metadata_=metadata or {})
        self.stores[store_id] = store
        return store

    async def retrieve(self, store_id: str) -> SimpleNamespace:
        if store_id not in self.stores:
            raise StoreNotFoundError(store_id)
        return self.stores[store_id]

    async def update_metadata(self, store_id: str, metadata: dict[str, Any]) -> SimpleNamespace:
        store = await self.retrieve(store_id)
        store.metadata_ = {**store.metadata_, **metadata}
        self.events.append(("update_metadata", store_id))
        return store


class FakeSession:
    """Just enough of ``AsyncSession`` for services that add, flush and get."""

    def __init__(self) -> None:
        self.objects: dict[tuple[type, str], Any] = {}
        self._pending: list[Any] = []

    def add(self, obj: Any) -> None:
        self._pending.append(obj)

    async def flush(self) -> None:
        for obj in self._pending:
            if obj.id is None:
                obj.id = generate_id("batch")
            self.objects[(type(obj), obj.id)] = obj
        self._pending.clear()

    async def get(self, model: type, object_id: str) -> Any | None:
        return self.objects.get((model, object_id))


class FakeUnitOfWork:
    """Transaction boundary over in-memory stores.

    Each store taking part is snapshotted on entry and restored when the
    block raises.
    """

    def __init__(self, *stores: Any, session: Any = None) -> None:
        self.stores = stores
        self.session = session
        self.transactions = 0

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Any, None]:
        self.transactions += 1
        states = [store.snapshot() for store in self.stores]
        try:
            yield self.session
        except Exception:
            for store, state in zip(self.stores, states):
                store.restore(state)
            raise


class FakeMagentoClient:
    """Magento client serving canned payloads and recording each call."""

    def __init__(
        self,
        categories: list[SourceCategory] | None = None,
        products: dict[str, list[SourceProduct]] | None = None,
        children: dict[str, list[SourceProduct]] | None = None,
        attributes: dict[str, AttributeMetadata] | None = None,
        custom_fields: list[str] | None = None,
        events: list[Any] | None = None,
    ) -> None:
        self.categories = categories or []
        self.products = products or {}
        self.children = children or {}
        self.attributes = attributes or {}
        self.custom_fields = custom_fields if custom_fields is not None else list(self.attributes)
        self.events = events if events is not None else []
        self.failures: dict[str, Exception] = {}

    def _record(self, *event: Any) -> None:
        self.events.append(event)
        if event[0] in self.failures:
            raise self.failures[event[0]]

    async def list_categories(self, updated_since: str | None = None) -> CategoryList:
        self._record("list_categories", updated_since)
        return CategoryList(items=self.categories, total_count=len(self.categories))

    async def list_products(
        self, type_id: str, updated_since: str | None = None
    ) -> list[SourceProduct]:
        self._record("list_products", type_id, updated_since)
        return self.products.get(type_id, [])

    async def list_configurable_children(self, sku: str) -> list[SourceProduct]:
        self._record("list_configurable_children", sku)
        if sku not in self.children:
            raise MagentoNotFoundError(f"/configurable-products/{sku}/children not found", 404)
        return self.children[sku]

    def list_custom_field_names(self) -> list[str]:
        return list(self.custom_fields)

    async def get_attribute_metadata(self, field_name: str) -> AttributeMetadata:
        self._record("get_attribute_metadata", field_name)
        if field_name not in self.attributes:
            raise MagentoNotFoundError(f"/products/attributes/{field_name} not found", 404)
        return self.attributes[field_name]


class FakeLock:
    """Token-checked stand-in for ``redis.asyncio.lock.Lock``."""

    def __init__(self, redis: "FakeRedis", name: str) -> None:
        self.redis = redis
        self.name = name
        self.token = uuid.uuid4().hex.encode()

    async def acquire(self) -> bool:
        return bool(await self.redis.set(self.name, self.token, nx=True))

    async def release(self) -> None:
        if self.redis.data.get(self.name) != self.token:
            raise LockNotOwnedError("Cannot release a lock that's no longer owned")
        del self.redis.data[self.name]


class FakeRedis:
    """Dict-backed stand-in for ``redis.asyncio.Redis``."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}

    async def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    async def set(self, key: str, value: bytes, ex: int | None = None, nx: bool = False) -> bool | None:
        if nx and key in self.data:
            return None
        self.data[key] = value
        return True

    async def ping(self) -> bool:
        return True

    def lock(self, name: str, timeout: float | None = None, blocking: bool = True) -> FakeLock:
        return FakeLock(self, name)




class StubSyncService:
    """Stands in for ``CatalogSyncService.run_sync``; reports progress of 2."""

    def __init__(self, summary: dict[str, Any] | None = None, error: Exception | None = None):
        self.summary = summary
        self.error = error
        self.calls: list[str] = []

    async def run_sync(self, store_id: str, on_progress: Any = None) -> dict[str, Any]:
        self.calls.append(store_id)
        if on_progress:
            await on_progress(2)
        if self.error:
            raise self.error
        return self.summary
