"""Destination store configuration."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.exceptions import StoreNotFoundError
from catalog_service.infrastructure.database.models import Store


class StoreService:
    """Service for reading a store and its metadata."""

    def __init__(self, session: AsyncSession | None = None):
        self.session = session

    def with_transaction(self, session: AsyncSession) -> "StoreService":
        """Return a copy bound to the caller's transactional scope."""
        return type(self)(session)

    async def retrieve(self, store_id: str) -> Store:
        """Get a store by id.

        Raises:
            StoreNotFoundError: When no such store exists.
        """
        store = await self.session.get(Store, store_id)
        if store is None:
            raise StoreNotFoundError(store_id)
        return store

    async def update_metadata(self, store_id: str, metadata: dict[str, Any]) -> Store:
        """Merge ``metadata`` into the store's existing metadata."""
        store = await self.retrieve(store_id)
        # Reassign so the JSON column is flagged dirty
        store.metadata_ = {**(store.metadata_ or {}), **metadata}
        await self.session.flush()
        return store
